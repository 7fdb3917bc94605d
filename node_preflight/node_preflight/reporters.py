"""Sinks that record the observations emitted by checks.

Every sink implements :class:`BaseReporter`.  A sink that cannot record
an observation raises :class:`ReportingError`; it never decides whether
a check passed.
"""

from __future__ import annotations

import abc
import logging

from rich.console import Console
from rich.text import Text

from node_preflight.errors import ReportingError
from node_preflight.models import ReportEntry, ResultCategory

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Category colour mapping
# ---------------------------------------------------------------------------

_CATEGORY_COLOURS: dict[ResultCategory, str] = {
    ResultCategory.GOOD: "green",
    ResultCategory.WARN: "yellow",
    ResultCategory.BAD: "red",
}

_CATEGORY_LOG_LEVELS: dict[ResultCategory, int] = {
    ResultCategory.GOOD: logging.INFO,
    ResultCategory.WARN: logging.WARNING,
    ResultCategory.BAD: logging.ERROR,
}


class BaseReporter(abc.ABC):
    """Abstract base for all sinks.

    Implementations must tolerate being called many times per check and
    across checks.
    """

    @abc.abstractmethod
    def report(self, item: str, detail: str, category: ResultCategory) -> None:
        """Record one observation.

        Raises
        ------
        ReportingError
            If the observation could not be recorded.
        """


class ConsoleReporter(BaseReporter):
    """Write ``ITEM: detail`` lines to a rich console.

    The detail is coloured by category.  The console defaults to stdout.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(highlight=False)

    @property
    def console(self) -> Console:
        return self._console

    def report(self, item: str, detail: str, category: ResultCategory) -> None:
        colour = _CATEGORY_COLOURS.get(category, "white")
        line = Text.assemble((f"{item}: ", "white"), (detail, colour))
        try:
            self._console.print(line, soft_wrap=True)
        except OSError as exc:
            raise ReportingError(f"failed to write report for {item}: {exc}", item=item) from exc


class RecordingReporter(BaseReporter):
    """Keep every observation in memory, in the order received."""

    def __init__(self) -> None:
        self.entries: list[ReportEntry] = []

    def report(self, item: str, detail: str, category: ResultCategory) -> None:
        self.entries.append(ReportEntry(item=item, detail=detail, category=category))

    def items(self) -> list[str]:
        return [e.item for e in self.entries]

    def by_category(self, category: ResultCategory) -> list[ReportEntry]:
        return [e for e in self.entries if e.category == category]

    def __len__(self) -> int:
        return len(self.entries)


class LoggingReporter(BaseReporter):
    """Emit observations as log records.

    ``good`` maps to INFO, ``warn`` to WARNING and ``bad`` to ERROR.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def report(self, item: str, detail: str, category: ResultCategory) -> None:
        level = _CATEGORY_LOG_LEVELS.get(category, logging.INFO)
        self._log.log(level, "%s: %s", item, detail, extra={"item": item, "category": category.value})


class FilteringReporter(BaseReporter):
    """Forward only observations at or above a severity threshold."""

    def __init__(self, inner: BaseReporter, minimum: ResultCategory = ResultCategory.GOOD) -> None:
        self._inner = inner
        self._minimum = minimum

    @property
    def minimum(self) -> ResultCategory:
        return self._minimum

    def report(self, item: str, detail: str, category: ResultCategory) -> None:
        if category >= self._minimum:
            self._inner.report(item, detail, category)
