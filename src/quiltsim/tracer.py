"""
Hierarchical runtime tracing for quiltsim.

Every public operation runs inside a named span; spans nest per realization
and per tile so a trace reads like the quilting loop itself. Output goes to
stderr, optionally mirrored to a file and as JSON records.

Span depth is kept per thread because realizations may run on worker threads.
"""

import functools
import hashlib
import json
import sys
import threading
import time
from contextlib import contextmanager
from datetime import datetime


class TracerConfig:
    """Runtime settings for the tracer."""

    def __init__(self):
        self.enabled = False
        self.level = "INFO"
        self.file_path = None
        self.json_output = False
        self._file_handle = None
        self._lock = threading.Lock()

    def configure(self, enabled=False, level="INFO", file_path=None, json_output=False):
        """Apply new settings, reopening the trace file if one is requested."""
        self.close()
        self.enabled = enabled
        self.level = level.upper()
        self.file_path = file_path
        self.json_output = json_output

        if file_path and enabled:
            self._file_handle = open(file_path, "w", encoding="utf-8")

    def close(self):
        """Close the trace file if open."""
        if self._file_handle:
            self._file_handle.close()
            self._file_handle = None


class Tracer:
    """
    Nested span logger with wall-clock timing.

    Spans carry a level so per-tile detail (DEBUG) can be silenced while the
    per-realization structure (INFO) stays visible.
    """

    LEVELS = {"ERROR": 0, "WARN": 1, "INFO": 2, "DEBUG": 3}

    def __init__(self):
        self.config = TracerConfig()
        self._local = threading.local()

    @property
    def _stack(self):
        stack = getattr(self._local, "stack", None)
        if stack is None:
            stack = []
            self._local.stack = stack
        return stack

    def _should_log(self, level):
        if not self.config.enabled:
            return False
        return self.LEVELS.get(level, 2) <= self.LEVELS.get(self.config.level, 2)

    def _timestamp(self):
        now = datetime.now()
        return now.strftime("%H:%M:%S.") + f"{now.microsecond // 1000:03d}"

    def _write(self, level, module, func, message, meta=None):
        if not self._should_log(level):
            return

        timestamp = self._timestamp()
        depth = len(self._stack)
        location = f"{module}:{func}" if func else module
        thread = threading.current_thread().name

        text_line = f"{timestamp} {level:<5} [{thread}] {'  ' * depth}{location}  {message}"

        lines = [text_line]
        if self.config.json_output:
            lines.append(json.dumps({
                "timestamp": timestamp,
                "level": level,
                "thread": thread,
                "depth": depth,
                "module": module,
                "function": func,
                "message": message,
                "meta": {k: summarize(v) for k, v in (meta or {}).items()},
            }))

        with self.config._lock:
            for line in lines:
                print(line, file=sys.stderr)
                if self.config._file_handle:
                    self.config._file_handle.write(line + "\n")
            if self.config._file_handle:
                self.config._file_handle.flush()

    @contextmanager
    def span(self, name, module="", level="INFO", **meta):
        """
        Trace a block of work.

        Logs start and end (or failure) with elapsed milliseconds. Exceptions
        are logged at ERROR and re-raised.
        """
        if not self._should_log(level):
            yield
            return

        start_time = time.perf_counter()
        meta_str = " ".join(f"{k}={summarize(v)}" for k, v in meta.items())
        self._write(level, module, name, f"start {meta_str}".strip(), meta)
        self._stack.append((name, module))

        try:
            yield
        except Exception as e:
            elapsed = (time.perf_counter() - start_time) * 1000
            self._stack.pop()
            self._write("ERROR", module, name, f"failed dt={elapsed:.0f}ms error={type(e).__name__}: {str(e)[:100]}")
            raise

        elapsed = (time.perf_counter() - start_time) * 1000
        self._stack.pop()
        self._write(level, module, name, f"end ok dt={elapsed:.0f}ms")

    def event(self, message, level="INFO", **meta):
        """Log a one-off message inside the innermost open span."""
        if not self._should_log(level):
            return

        func, module = self._stack[-1] if self._stack else ("", "")
        meta_str = " ".join(f"{k}={summarize(v)}" for k, v in meta.items())
        self._write(level, module, func, f"{message} {meta_str}".strip(), meta)


def summarize(obj, max_len=200):
    """
    Compact, length-capped description of an object for trace lines.

    Arrays show dtype, shape and a short content hash; graphs show node and
    edge counts; pydantic models show their first fields.
    """
    try:
        result = _summarize_impl(obj)
    except Exception:
        return f"<{type(obj).__name__}>"
    if len(result) > max_len:
        return result[:max_len - 3] + "..."
    return result


def _summarize_impl(obj):
    if obj is None:
        return "None"

    type_name = type(obj).__name__

    import numpy as np
    if isinstance(obj, np.ndarray):
        shape_str = "x".join(str(s) for s in obj.shape)
        if 0 < obj.size < 1000:
            h = hashlib.md5(np.ascontiguousarray(obj).tobytes()).hexdigest()[:8]
        else:
            h = hashlib.md5(str(obj.shape).encode()).hexdigest()[:8]
        return f"ndarray({obj.dtype},{shape_str},h={h})"
    if isinstance(obj, np.random.Generator):
        return f"Generator({type(obj.bit_generator).__name__})"
    if isinstance(obj, np.generic):
        return str(obj.item())

    import networkx as nx
    if isinstance(obj, (nx.Graph, nx.DiGraph)):
        return f"{type_name}(nodes={obj.number_of_nodes()},edges={obj.number_of_edges()})"

    from pydantic import BaseModel
    if isinstance(obj, BaseModel):
        fields = list(type(obj).model_fields.keys())[:3]
        return f"{type_name}(fields={fields}...)"

    if isinstance(obj, str):
        if len(obj) > 50:
            h = hashlib.md5(obj.encode()).hexdigest()[:8]
            return f"str(len={len(obj)},h={h})"
        return repr(obj)

    if isinstance(obj, tuple) and all(isinstance(v, int) for v in obj) and len(obj) <= 8:
        return repr(obj)

    if isinstance(obj, (list, tuple)):
        if len(obj) == 0:
            return f"{type_name}(len=0)"
        return f"{type_name}(len={len(obj)},first={type(obj[0]).__name__})"

    if isinstance(obj, dict):
        keys = ",".join(str(k) for k in list(obj.keys())[:5])
        return f"dict(len={len(obj)},keys=[{keys}])"

    if isinstance(obj, (bool, int, float)):
        return str(obj)

    return f"<{type_name}>"


def trace(label=None, level="INFO"):
    """Decorator running the wrapped function inside a tracer span."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if not _tracer._should_log(level):
                return func(*args, **kwargs)

            module = func.__module__.split(".")[-1] if func.__module__ else ""
            with _tracer.span(label or func.__name__, module=module, level=level):
                return func(*args, **kwargs)

        return wrapper
    return decorator


_tracer = Tracer()


def get_tracer():
    """Return the process-wide tracer."""
    return _tracer


def configure_tracer(enabled=False, level="INFO", file_path=None, json_output=False):
    """Configure the process-wide tracer."""
    _tracer.config.configure(
        enabled=enabled,
        level=level,
        file_path=file_path,
        json_output=json_output,
    )
