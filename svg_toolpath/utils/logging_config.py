"""Unified logging configuration for conversion front ends.

The conversion core only ever calls ``logging.getLogger(__name__)``; this
module is what an embedding application (CLI adapter, web worker, batch
job) calls once to decide where those records go:

    - Console handler and optional file handler with rotation
    - JSON output mode for ingestion
    - Contextual fields (conversion id, document name) on every record
    - Warning capture (Python warnings → logging)

Public API:
    setup_logging(log_level="INFO", context={"app": "batch"})
    get_logger(name)
    push_context(conversion=3, document="logo.svg")
    pop_context(keys=["document"])
    conversion_context(conversion=3)   # push/pop around a block

Format examples:
    Human: 2026-03-02T09:12:44.871Z | INFO     | conversion=3 | Converted 12 elements
    JSON:  {"t":"2026-03-02T09:12:44.871Z","lvl":"INFO","conversion":3,"msg":"..."}

Context uses contextvars, so concurrent conversions in different threads
or tasks never see each other's fields.  Repeated setup_logging() calls
don't duplicate handlers.
"""

import contextlib
import contextvars
import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional


_context_var: contextvars.ContextVar = contextvars.ContextVar(
    'svg_toolpath_logging_context', default={}
)

_configured = False


class ContextFormatter(logging.Formatter):
    """Formatter that appends the current contextual fields.

    Supports a human-readable format (optionally colored) and a JSON
    line format.
    """

    _COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
        'RESET': '\033[0m',
    }

    def __init__(self, fmt_mode: str = "human", use_color: bool = True):
        super().__init__()
        if fmt_mode not in ("human", "json"):
            raise ValueError(f"fmt_mode must be 'human' or 'json', got {fmt_mode!r}")
        self.fmt_mode = fmt_mode
        self.use_color = use_color and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        context = _context_var.get({})
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        if self.fmt_mode == "json":
            return self._format_json(record, ts, context)
        return self._format_human(record, ts, context)

    def _format_json(
        self,
        record: logging.LogRecord,
        ts: datetime,
        context: dict
    ) -> str:
        log_dict = {
            't': ts.isoformat(),
            'lvl': record.levelname,
            'name': record.name,
            'pid': os.getpid(),
            'msg': record.getMessage(),
        }
        log_dict.update(context)
        if record.exc_info:
            log_dict['exc'] = self.formatException(record.exc_info)
        return json.dumps(log_dict, default=str)

    def _format_human(
        self,
        record: logging.LogRecord,
        ts: datetime,
        context: dict
    ) -> str:
        ts_str = ts.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'

        level = f"{record.levelname:8s}"
        if self.use_color:
            color = self._COLORS.get(record.levelname, '')
            level = f"{color}{level}{self._COLORS['RESET']}"

        parts = [ts_str, '|', level, '|']
        context_str = ' '.join(f"{k}={v}" for k, v in context.items())
        if context_str:
            parts.extend([context_str, '|'])
        parts.append(record.getMessage())

        line = ' '.join(parts)
        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        return line


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    json: bool = False,
    color: bool = True,
    to_stderr: bool = True,
    max_bytes: int = 0,
    backup_count: int = 3,
    capture_warnings: bool = True,
    context: Optional[Dict[str, Any]] = None,
) -> List[logging.Handler]:
    """Configure the root logger (idempotent).

    Parameters
    ----------
    log_level : str
        "DEBUG", "INFO", "WARNING", "ERROR" or "CRITICAL".
    log_file : str, optional
        Log file path; None for no file logging.
    json : bool
        Write JSON lines to the file instead of human-readable lines.
    color : bool
        Use ANSI colors on the console when stderr is a TTY.
    to_stderr : bool
        Attach a console handler.
    max_bytes : int
        Rotate the file once it reaches this size; 0 never rotates.
    backup_count : int
        Rotated files to keep.
    capture_warnings : bool
        Route Python warnings to logging.
    context : dict, optional
        Initial contextual fields (e.g., ``{"app": "batch"}``).

    Returns
    -------
    list[logging.Handler]
        Handlers attached to the root logger.
    """
    global _configured

    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level!r}")

    root = logging.getLogger()
    if _configured:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)

    handlers: List[logging.Handler] = []
    if to_stderr:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(ContextFormatter("human", color))
        handlers.append(console)
    if log_file:
        handlers.append(_file_handler(Path(log_file), json, max_bytes, backup_count))

    for handler in handlers:
        root.addHandler(handler)
    if context:
        push_context(**context)
    if capture_warnings:
        logging.captureWarnings(True)

    _configured = True
    return handlers


def _file_handler(
    path: Path, json_format: bool, max_bytes: int, backup_count: int,
) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8",
    )
    handler.setFormatter(ContextFormatter("json" if json_format else "human", use_color=False))
    return handler


def get_logger(name: str) -> logging.Logger:
    """Get logger by name (typically ``__name__``)."""
    return logging.getLogger(name)


def push_context(**kwargs: Any) -> None:
    """Add contextual fields to all subsequent log records.

    Examples
    --------
    >>> push_context(conversion=3)
    >>> logger.info("Flattened 42 segments")  # → "... | conversion=3 | ..."
    """
    current = _context_var.get({})
    _context_var.set({**current, **kwargs})


def pop_context(keys: Optional[List[str]] = None) -> None:
    """Remove contextual fields; all of them when *keys* is None."""
    if keys is None:
        _context_var.set({})
        return
    current = dict(_context_var.get({}))
    for key in keys:
        current.pop(key, None)
    _context_var.set(current)


def get_context() -> Dict[str, Any]:
    """Return a copy of the current contextual fields."""
    return dict(_context_var.get({}))


@contextlib.contextmanager
def conversion_context(**kwargs: Any) -> Iterator[None]:
    """Push *kwargs* for the duration of a block, then restore."""
    token = _context_var.set({**_context_var.get({}), **kwargs})
    try:
        yield
    finally:
        _context_var.reset(token)
