"""Plain-text structured logging for the extraction pipeline.

Every module gets a ``ContextLogger`` from ``get_logger``. Structured fields
are passed as ``extra_data`` and appended to the message as
``[key=value, ...]``, so the output stays greppable without a JSON formatter.
Lines emitted inside ``request_context`` also carry the upload's ID.
"""

import logging
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, Optional

# Worker threads started with asyncio.to_thread inherit this value
request_id_var: ContextVar[Optional[str]] = ContextVar("upload_request_id", default=None)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ContextLogger:
    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @staticmethod
    def _render(fields: dict[str, Any]) -> str:
        if not fields:
            return ""
        return " [" + ", ".join(f"{key}={value}" for key, value in fields.items()) + "]"

    def _log(self, level: int, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        # Rendering is skipped entirely for filtered levels
        if not self.logger.isEnabledFor(level):
            return

        fields = dict(extra_data or {})
        request_id = request_id_var.get()
        if request_id:
            fields["request_id"] = request_id

        self.logger.log(level, msg + self._render(fields), **kwargs)

    def debug(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        self._log(logging.DEBUG, msg, extra_data, **kwargs)

    def info(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        self._log(logging.INFO, msg, extra_data, **kwargs)

    def warning(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        self._log(logging.WARNING, msg, extra_data, **kwargs)

    def error(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        self._log(logging.ERROR, msg, extra_data, **kwargs)


def setup_logging(log_level: str = "INFO") -> None:
    """Route all records to one stdout handler.

    Handlers installed earlier (by a host application or a previous call)
    are replaced, so calling this twice does not duplicate lines.

    Args:
        log_level: Level name; anything unrecognised means INFO.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root_logger.addHandler(handler)
    root_logger.setLevel(level)


def get_logger(name: str) -> ContextLogger:
    return ContextLogger(logging.getLogger(name))


logger = get_logger(__name__)


@contextmanager
def request_context(request_id: Optional[str] = None) -> Iterator[str]:
    """Tag log lines emitted inside the block with an upload ID.

    Yields the ID in use (a fresh UUID4 when none is given). The previous
    value is restored on exit.
    """
    request_id = request_id or str(uuid.uuid4())
    token = request_id_var.set(request_id)
    try:
        yield request_id
    finally:
        request_id_var.reset(token)


class Timer:
    """Measures one pipeline stage; the duration is logged at DEBUG on exit."""

    def __init__(self, name: str):
        self.name = name
        self.start_time: Optional[float] = None
        self.elapsed_ms: Optional[int] = None

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args):
        if self.start_time is not None:
            self.elapsed_ms = int((time.perf_counter() - self.start_time) * 1000)
            logger.debug(
                "Stage finished",
                extra_data={"stage": self.name, "elapsed_ms": self.elapsed_ms},
            )

    def get_elapsed_ms(self) -> int:
        # A running timer reports the time so far, an unstarted one zero
        if self.elapsed_ms is not None:
            return self.elapsed_ms
        if self.start_time is not None:
            return int((time.perf_counter() - self.start_time) * 1000)
        return 0
