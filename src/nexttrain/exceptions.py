"""Exception types raised by nexttrain."""

from typing import Optional


class NextTrainError(Exception):
    """Base class for all nexttrain errors."""


class MissingRelationError(NextTrainError):
    """A required GTFS relation (e.g. stops.txt) is not present in the feed."""

    def __init__(self, relation: str, source: str = ""):
        self.relation = relation
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"Missing required relation '{relation}'{where}")


class RowParseError(NextTrainError, ValueError):
    """A row could not be coerced to its relation's record type."""

    def __init__(self, line_number: int, field: str, value: Optional[str] = None):
        self.line_number = line_number
        self.field = field
        self.value = value
        super().__init__(f"Line {line_number}: invalid value {value!r} for field '{field}'")


class ClockParseError(NextTrainError, ValueError):
    """A schedule clock string is not in HH:MM[:SS] form."""


class StationNotFoundError(NextTrainError, ValueError):
    """No station matches the given id or name."""


class FeedFetchError(NextTrainError):
    """A live feed could not be downloaded or decoded."""
