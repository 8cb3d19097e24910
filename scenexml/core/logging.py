import logging
from typing import Iterator, List, Tuple

_ERROR_LEVELS = ("ERROR", "CRITICAL")


class SceneLogger:
    """Collects scene loading messages so callers can report them afterwards.

    Everything is forwarded to the "scenexml" logger. DEBUG output is only
    forwarded; INFO and above are also kept, up to `max_messages`.
    """

    def __init__(self, max_messages: int = 500):
        self.max_messages = max_messages
        self.dropped = 0  # kept-level messages past the limit
        self._records: List[Tuple[str, str]] = []  # (level, message)
        self._logger = logging.getLogger("scenexml")

    def debug(self, msg: str) -> None:
        self._logger.debug(msg)

    def info(self, msg: str) -> None:
        self._record("INFO", msg)

    def warning(self, msg: str) -> None:
        self._record("WARNING", msg)

    def error(self, msg: str) -> None:
        self._record("ERROR", msg)

    def critical(self, msg: str) -> None:
        self._record("CRITICAL", msg)

    def _record(self, level: str, msg: str) -> None:
        if len(self._records) < self.max_messages:
            self._records.append((level, msg))
        else:
            self.dropped += 1
        self._logger.log(getattr(logging, level), msg)

    @property
    def messages(self) -> List[Tuple[str, str]]:
        return self._records

    def at_level(self, *levels: str) -> Iterator[str]:
        return (msg for lvl, msg in self._records if lvl in levels)

    @property
    def has_errors(self) -> bool:
        return self.error_count > 0

    @property
    def error_count(self) -> int:
        return sum(1 for _ in self.at_level(*_ERROR_LEVELS))

    @property
    def warning_count(self) -> int:
        return sum(1 for _ in self.at_level("WARNING"))

    def summary(self) -> str:
        return f"{self.warning_count} warnings, {self.error_count} errors"

    def clear(self) -> None:
        self._records.clear()
        self.dropped = 0
