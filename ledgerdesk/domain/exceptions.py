"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidDateError(DomainException):
    """Value is not a YYYY-MM-DD calendar date"""

    pass


class InvalidIndexError(DomainException):
    """Event index outside [0, event_count)"""

    def __init__(self, index: int, event_count: int):
        super().__init__(f"Event index {index} out of range for {event_count} events")
        self.index = index
        self.event_count = event_count


class MalformedRecordError(DomainException):
    """Stored schedule record violates its own invariants"""

    pass


class RecordNotFoundError(DomainException):
    """No record with this id for the owner"""

    pass
