import logging
from typing import List, Optional, Protocol, Tuple


class DiagnosticSink(Protocol):
    def report(self, severity: int, message: str) -> None:
        ...


class LoggingSink:
    """Forwards parser diagnostics to a stdlib logger. Severity is a logging level."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("jstack_analyzer_mcp.parser")

    def report(self, severity: int, message: str) -> None:
        self.logger.log(severity, message)


class CollectingSink:
    """Keeps every diagnostic in memory, in the order it was reported."""

    def __init__(self) -> None:
        self.records: List[Tuple[int, str]] = []

    def report(self, severity: int, message: str) -> None:
        self.records.append((severity, message))

    def messages(self, min_severity: int = logging.NOTSET) -> List[str]:
        return [msg for sev, msg in self.records if sev >= min_severity]
