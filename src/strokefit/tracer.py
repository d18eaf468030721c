"""
Runtime tracing for strokefit.

Every line the tracer writes starts life as a record (time, level, depth,
location, message, metadata). Records are rendered either as indented text
or as one JSON object per line, on stderr and optionally into a file.
Spans time a block and indent everything logged inside them.

Tracing is off unless configure_tracer(enabled=True) is called; the
fitting loops then pay one flag check per event.
"""

import functools
import hashlib
import json
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime


LEVELS = {"ERROR": 0, "WARN": 1, "INFO": 2, "DEBUG": 3}


@dataclass
class TracerConfig:
    """Where and how much the tracer writes."""
    enabled: bool = False
    level: str = "INFO"
    file_path: str = None
    json_output: bool = False
    _file_handle: object = field(default=None, repr=False)

    def configure(self, enabled=False, level="INFO", file_path=None, json_output=False):
        self.close()
        self.enabled = enabled
        self.level = level.upper()
        self.file_path = file_path
        self.json_output = json_output
        if enabled and file_path:
            self._file_handle = open(file_path, "w", encoding="utf-8")

    def close(self):
        if self._file_handle is not None:
            self._file_handle.close()
            self._file_handle = None


@dataclass
class _OpenSpan:
    name: str
    module: str
    started: float


class Tracer:
    """Span stack plus leveled record output."""

    def __init__(self):
        self.config = TracerConfig()
        self._open = []

    @property
    def depth(self):
        return len(self._open)

    def is_enabled_for(self, level):
        if not self.config.enabled:
            return False
        return LEVELS.get(level, LEVELS["INFO"]) <= LEVELS.get(self.config.level, LEVELS["INFO"])

    def _record(self, level, module, func, message, meta):
        now = datetime.now()
        return {
            "timestamp": f"{now:%H:%M:%S}.{now.microsecond // 1000:03d}",
            "level": level,
            "depth": self.depth,
            "module": module,
            "function": func,
            "message": message,
            "meta": {k: summarize(v) for k, v in meta.items()},
        }

    def _render(self, record):
        if self.config.json_output:
            return json.dumps(record)
        location = record["module"]
        if record["function"]:
            location = f"{location}:{record['function']}"
        indent = "  " * record["depth"]
        return f"{record['timestamp']} {record['level']:<5} {indent}{location}  {record['message']}"

    def _emit(self, level, module, func, message, meta=None):
        if not self.is_enabled_for(level):
            return
        line = self._render(self._record(level, module, func, message, meta or {}))
        print(line, file=sys.stderr)
        if self.config._file_handle is not None:
            self.config._file_handle.write(line + "\n")
            self.config._file_handle.flush()

    @contextmanager
    def span(self, name, module="", **meta):
        """Time a block; everything logged inside is indented one level."""
        if not self.config.enabled:
            yield
            return

        self._emit("INFO", module, name, _with_meta("start", meta), meta)
        self._open.append(_OpenSpan(name, module, time.perf_counter()))
        try:
            yield
        except Exception as e:
            opened = self._open.pop()
            elapsed = _elapsed_ms(opened.started)
            self._emit("ERROR", module, name,
                       f"failed dt={elapsed:.0f}ms error={type(e).__name__}: {str(e)[:100]}")
            raise
        opened = self._open.pop()
        self._emit("INFO", module, name, f"end ok dt={_elapsed_ms(opened.started):.0f}ms")

    def event(self, message, level="INFO", **meta):
        """Log a message attributed to the innermost open span."""
        if not self.is_enabled_for(level):
            return
        if self._open:
            current = self._open[-1]
            module, func = current.module, current.name
        else:
            module, func = "", ""
        self._emit(level, module, func, _with_meta(message, meta), meta)


def _elapsed_ms(started):
    return (time.perf_counter() - started) * 1000


def _with_meta(message, meta):
    parts = [message] + [f"{k}={summarize(v)}" for k, v in meta.items()]
    return " ".join(p for p in parts if p)


def _short_hash(data):
    return hashlib.md5(data).hexdigest()[:8]


def _summarize_array(arr):
    shape = "x".join(str(s) for s in arr.shape)
    if 0 < arr.size <= 8:
        values = ",".join(f"{v:.4g}" for v in arr.ravel().tolist())
        return f"ndarray({arr.dtype},{shape},[{values}])"
    payload = arr.tobytes() if arr.size < 1000 else str(arr.shape).encode()
    return f"ndarray({arr.dtype},{shape},h={_short_hash(payload)})"


def _summarize_curve(curve):
    return (f"{curve.kind.name}(len={curve.length:.3g},"
            f"k0={curve.start_curvature:.3g},k1={curve.end_curvature:.3g})")


def _summarize_fit(fit):
    return (f"{type(fit).__name__}({fit.curve.kind.name},"
            f"[{fit.start_idx},{fit.end_idx}],err={fit.error:.3g})")


def _summarize_text(text):
    if len(text) > 50:
        return f"str(len={len(text)},h={_short_hash(text.encode())})"
    return repr(text)


def _summarize_sequence(seq):
    if not seq:
        return f"{type(seq).__name__}(len=0)"
    return f"{type(seq).__name__}(len={len(seq)},first={type(seq[0]).__name__})"


def _summarize_mapping(mapping):
    keys = ",".join(str(k) for k in list(mapping)[:5])
    return f"dict(len={len(mapping)},keys=[{keys}])"


def _summarizers():
    """(predicate, formatter) pairs, tried in order."""
    import numpy as np
    from pydantic import BaseModel

    from strokefit.geometry.curves import CurvePrimitive

    return [
        (lambda o: isinstance(o, np.ndarray), _summarize_array),
        (lambda o: isinstance(o, np.generic), lambda o: _summarize_impl(o.item())),
        (lambda o: isinstance(o, CurvePrimitive), _summarize_curve),
        (lambda o: hasattr(o, "curve") and hasattr(o, "start_idx"), _summarize_fit),
        (lambda o: isinstance(o, BaseModel),
         lambda o: f"{type(o).__name__}(fields={list(type(o).model_fields)[:3]}...)"),
        (lambda o: isinstance(o, str), _summarize_text),
        (lambda o: isinstance(o, (list, tuple)), _summarize_sequence),
        (lambda o: isinstance(o, dict), _summarize_mapping),
        (lambda o: isinstance(o, float), lambda o: f"{o:.6g}"),
        (lambda o: isinstance(o, int), str),
    ]


def _summarize_impl(obj):
    if obj is None:
        return "None"
    for matches, fmt in _summarizers():
        if matches(obj):
            return fmt(obj)
    return f"<{type(obj).__name__}>"


def summarize(obj, max_len=200):
    """
    One-line description of obj for trace output, at most max_len chars.

    Arrays show dtype and shape (values when tiny, a content hash otherwise);
    curves and fit candidates show their family and extent.
    """
    try:
        text = _summarize_impl(obj)
    except Exception:
        text = f"<{type(obj).__name__}>"
    if len(text) > max_len:
        text = text[:max_len - 3] + "..."
    return text


def trace(label=None, arg_names=None):
    """
    Run the decorated function inside a span named label (or its own name).

    Keyword arguments listed in arg_names are summarized into the span header.
    """
    def decorator(func):
        module = (func.__module__ or "").rsplit(".", 1)[-1]

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if not _tracer.config.enabled:
                return func(*args, **kwargs)
            meta = {name: kwargs[name] for name in (arg_names or ()) if name in kwargs}
            with _tracer.span(label or func.__name__, module=module, **meta):
                return func(*args, **kwargs)

        return wrapper
    return decorator


_tracer = Tracer()


def get_tracer():
    """The process-wide tracer."""
    return _tracer


def configure_tracer(enabled=False, level="INFO", file_path=None, json_output=False):
    """Reconfigure the process-wide tracer."""
    _tracer.config.configure(
        enabled=enabled,
        level=level,
        file_path=file_path,
        json_output=json_output,
    )
