"""Console logging for the Uranus client."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator, Mapping

_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


class SimpleLogger:
    """Thin wrapper around one :mod:`logging` logger.

    Every call takes an optional ``source`` (the component name, rendered as
    ``[source]``) and ``payload`` (a mapping rendered as ``key=value`` pairs).
    """

    def __init__(self, name: str = "uranus") -> None:
        self._logger = logging.getLogger(name)
        if not self._logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
            self._logger.addHandler(handler)
        self.configure()

    def configure(self, level: int = logging.INFO) -> None:
        self._logger.setLevel(level)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    # ------------------------------------------------------------------
    def debug(self, msg: str, source: str | None = None, payload: Any | None = None) -> None:
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug(self._format(msg, source, payload))

    def info(self, msg: str, source: str | None = None, payload: Any | None = None) -> None:
        self._logger.info(self._format(msg, source, payload))

    def warning(self, msg: str, source: str | None = None, payload: Any | None = None) -> None:
        self._logger.warning(self._format(msg, source, payload))

    def error(self, msg: str, source: str | None = None, payload: Any | None = None) -> None:
        self._logger.error(self._format(msg, source, payload))

    @contextmanager
    def timed(self, label: str, source: str | None = None) -> Iterator[None]:
        """Log ``label`` with its wall time at debug level once the block exits."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self.debug(f"{label} took {elapsed_ms:.1f} ms", source)

    # ------------------------------------------------------------------
    @staticmethod
    def _format(msg: str, source: str | None, payload: Any | None = None) -> str:
        base = f"[{source}] {msg}" if source else msg
        if payload is None:
            return base
        if isinstance(payload, Mapping):
            pairs = " ".join(f"{k}={v}" for k, v in payload.items())
            return f"{base} {pairs}" if pairs else base
        return f"{base} {payload}"


log = SimpleLogger()


def configure_console_log(debug: bool = False) -> None:
    log.configure(logging.DEBUG if debug else logging.INFO)


__all__ = ["log", "configure_console_log", "SimpleLogger"]
