"""Tests for the tracer module."""

import threading

import numpy as np
import pytest


class TestSummarize:
    """Tests for object summarization."""

    def test_numpy_array_summary(self):
        """Arrays are summarized with dtype and shape."""
        from quiltsim.tracer import summarize

        summary = summarize(np.zeros((20, 20, 20)))

        assert "ndarray" in summary
        assert "20x20x20" in summary
        assert "float64" in summary

    def test_generator_summary(self):
        from quiltsim.tracer import summarize

        assert "Generator" in summarize(np.random.default_rng(0))

    def test_graph_summary(self):
        """networkx graphs report node and edge counts."""
        import networkx as nx
        from quiltsim.tracer import summarize

        graph = nx.DiGraph()
        graph.add_edge("source", 0)
        graph.add_edge(0, "sink")

        assert summarize(graph) == "DiGraph(nodes=3,edges=2)"

    def test_pydantic_model_summary(self):
        from quiltsim.models import TileMode, TileRecord
        from quiltsim.tracer import summarize

        record = TileRecord(tile_index=3, mode=TileMode.PATTERN)

        assert "TileRecord" in summarize(record)

    def test_small_int_tuple_is_shown(self):
        from quiltsim.tracer import summarize

        assert summarize((3, 3, 1)) == "(3, 3, 1)"

    def test_summary_capped_length(self):
        from quiltsim.tracer import summarize

        large_dict = {f"key_{i}": i for i in range(100)}

        assert len(summarize(large_dict, max_len=50)) <= 50

    def test_none_summary(self):
        from quiltsim.tracer import summarize

        assert summarize(None) == "None"


class TestTracerSpan:
    """Tests for tracer span functionality."""

    def test_span_nesting(self, capsys):
        """Nested spans produce start/end lines plus events."""
        from quiltsim.tracer import configure_tracer, get_tracer

        configure_tracer(enabled=True, level="INFO")
        tracer = get_tracer()
        try:
            with tracer.span("outer", module="test"):
                with tracer.span("inner", module="test"):
                    tracer.event("inside")
        finally:
            configure_tracer(enabled=False)

        lines = capsys.readouterr().err.strip().split("\n")
        assert len(lines) == 5
        assert "test:inner" in lines[2]

    def test_debug_span_hidden_at_info(self, capsys):
        from quiltsim.tracer import configure_tracer, get_tracer

        configure_tracer(enabled=True, level="INFO")
        tracer = get_tracer()
        try:
            with tracer.span("tile_0", module="test", level="DEBUG"):
                tracer.event("detail", level="DEBUG")
        finally:
            configure_tracer(enabled=False)

        assert capsys.readouterr().err == ""

    def test_tracer_disabled_no_output(self, capsys):
        from quiltsim.tracer import configure_tracer, get_tracer

        configure_tracer(enabled=False)
        tracer = get_tracer()

        with tracer.span("test", module="test"):
            tracer.event("should not appear")

        assert capsys.readouterr().err == ""

    def test_failed_span_logs_error(self, capsys):
        from quiltsim.tracer import configure_tracer, get_tracer

        configure_tracer(enabled=True, level="INFO")
        tracer = get_tracer()
        try:
            with pytest.raises(RuntimeError):
                with tracer.span("boom", module="test"):
                    raise RuntimeError("bad tile")
        finally:
            configure_tracer(enabled=False)

        err = capsys.readouterr().err
        assert "ERROR" in err
        assert "RuntimeError" in err

    def test_span_depth_is_per_thread(self):
        """A span open on one thread does not indent another thread."""
        from quiltsim.tracer import configure_tracer, get_tracer

        configure_tracer(enabled=True, level="INFO")
        tracer = get_tracer()
        depths = []
        try:
            with tracer.span("main", module="test"):
                worker = threading.Thread(target=lambda: depths.append(len(tracer._stack)))
                worker.start()
                worker.join()
                depths.append(len(tracer._stack))
        finally:
            configure_tracer(enabled=False)

        assert depths == [0, 1]

    def test_trace_file(self, temp_dir):
        import os

        from quiltsim.tracer import configure_tracer, get_tracer

        path = os.path.join(temp_dir, "trace.log")
        configure_tracer(enabled=True, level="INFO", file_path=path, json_output=True)
        try:
            get_tracer().event("written", tiles=4)
        finally:
            configure_tracer(enabled=False)

        with open(path, encoding="utf-8") as f:
            content = f.read()
        assert "written tiles=4" in content
        assert '"message": "written tiles=4"' in content
        assert '"meta": {"tiles": "4"}' in content


class TestTraceDecorator:
    """Tests for the @trace decorator."""

    def test_decorator_runs_function(self):
        from quiltsim.tracer import configure_tracer, trace

        configure_tracer(enabled=False)

        @trace(label="double")
        def double(x):
            return x * 2

        assert double(5) == 10

    def test_decorator_with_exception(self):
        from quiltsim.tracer import configure_tracer, trace

        configure_tracer(enabled=True)

        @trace(label="failing")
        def failing():
            raise ValueError("test error")

        try:
            with pytest.raises(ValueError):
                failing()
        finally:
            configure_tracer(enabled=False)
