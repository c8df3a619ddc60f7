from typing import Optional


class JStackError(Exception):
    """Base class for errors raised while reading a jstack dump."""


class InvalidFormat(JStackError):
    """No "Full thread dump" marker was found anywhere in the input.

    The partially filled dump (capture date only) is kept on ``dump`` so
    callers can still look at it.
    """

    def __init__(self, message: str, dump=None):
        super().__init__(message)
        self.dump = dump


class MalformedLine(JStackError):
    """A line carried a known prefix but its payload could not be extracted.

    Never escapes ``parse_jstack``; it is only handed to the diagnostic sink.
    """

    def __init__(self, message: str, line_number: int, line: Optional[str] = None):
        super().__init__(message)
        self.line_number = line_number
        self.line = line

    def __str__(self) -> str:
        text = super().__str__()
        if self.line is None:
            return f"line {self.line_number}: {text}"
        return f"line {self.line_number}: {text} {self.line!r}"
