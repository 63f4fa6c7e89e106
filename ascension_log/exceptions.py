"""
Custom exceptions for the ascension log parser.

Provides specific exception types for different error scenarios.
"""


class AscensionLogError(Exception):
    """Base exception for all ascension log errors."""
    pass


class LogParseError(AscensionLogError):
    """Error during log file parsing."""

    def __init__(
        self,
        message: str,
        line_number: int = None,
        details: str = None,
        last_turn: int = None,
    ):
        self.line_number = line_number
        self.details = details
        self.last_turn = last_turn

        full_message = message
        if line_number:
            full_message += f" (line {line_number})"
        if details:
            full_message += f": {details}"

        super().__init__(full_message)


class InvalidLogFormatError(LogParseError):
    """Log file format is not recognized or invalid."""
    pass


class MalformedLineError(LogParseError):
    """A line matched a parser but its body has the wrong shape."""
    pass


class SummaryBlockError(LogParseError):
    """A summary block ended early or held a non-numeric field."""
    pass


class UsageError(AscensionLogError, ValueError):
    """A model contract was violated by the caller."""
    pass


class CountableMergeError(UsageError):
    """Attempted to merge two countables with different names."""

    def __init__(self, name: str, other_name: str):
        self.name = name
        self.other_name = other_name
        super().__init__(f"Cannot merge '{other_name}' into '{name}': names differ")


class TurnIntervalError(UsageError):
    """Illegal turn added to a turn interval."""
    pass


class LogDataHolderError(UsageError):
    """Operation not allowed for this kind of log data holder."""
    pass


class LogFileAccessError(AscensionLogError):
    """Log file could not be opened or read."""

    def __init__(self, message: str, path: str = None):
        self.path = path
        full_message = message
        if path:
            full_message += f" ({path})"
        super().__init__(full_message)


class ReferenceDataError(AscensionLogError):
    """Error loading or downloading the reference data tables."""
    pass
