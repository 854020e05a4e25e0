"""Typed compose output lines.

The compose producer speaks plain text: a line equal to "[Complete]" marks a
successful finish and lines starting with "ERROR:" report failures. Those
markers are recognised here, once, and everything past this module works
with OutputKind instead.
"""

from dataclasses import dataclass
from enum import Enum

COMPLETE_TEXT = "[Complete]"
ERROR_PREFIX = "ERROR:"

# Errors after which the command cannot have produced anything useful
CRITICAL_PREFIXES = (
    "ERROR: Failed to start command",
    "ERROR: Failed to create",
)


class OutputKind(Enum):
    """What a line of compose output means to the dashboard."""
    DATA = "data"
    WARNING = "warning"  # Error text, stream keeps going
    FATAL = "fatal"  # Error text, stream is over
    COMPLETE = "complete"


@dataclass(frozen=True)
class OutputLine:
    """One line shown in the output panel."""
    kind: OutputKind
    text: str

    @property
    def is_error(self) -> bool:
        return self.kind in (OutputKind.WARNING, OutputKind.FATAL)

    @property
    def is_terminal(self) -> bool:
        return self.kind in (OutputKind.FATAL, OutputKind.COMPLETE)

    @classmethod
    def data(cls, text: str) -> "OutputLine":
        return cls(OutputKind.DATA, text)

    @classmethod
    def fatal(cls, text: str) -> "OutputLine":
        return cls(OutputKind.FATAL, text)

    @classmethod
    def complete(cls) -> "OutputLine":
        return cls(OutputKind.COMPLETE, COMPLETE_TEXT)


def classify_line(text: str) -> OutputLine:
    """Parse one raw line from the compose producer."""
    if text == COMPLETE_TEXT:
        return OutputLine.complete()
    if text.startswith(CRITICAL_PREFIXES):
        return OutputLine(OutputKind.FATAL, text)
    if text.startswith(ERROR_PREFIX):
        return OutputLine(OutputKind.WARNING, text)
    return OutputLine.data(text)
