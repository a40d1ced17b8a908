"""
This module defines the exception hierarchy for the library.

Two families matter to callers. `DomainError` and its subclasses are
recoverable: an operation was rejected and the aggregate is untouched.
`UnknownEventError` and `EventDecodeError` are fatal: the recorded history
cannot be folded faithfully and the current operation must stop.
"""


class EventSourcingError(Exception):
    """Root of every error raised by aggregate_sourcing."""


class DomainError(EventSourcingError):
    """A domain operation failed its precondition. No event was produced."""


class InsufficientFundsError(DomainError):
    pass


class InvalidAmountError(DomainError):
    pass


class UnknownEventError(EventSourcingError):
    """
    Raised when an event of a kind the aggregate (or codec) does not know is
    applied or decoded. This signals log corruption or a model/log version
    mismatch and must never be swallowed.
    """


class EventDecodeError(EventSourcingError):
    """A persisted event could not be decrypted or validated."""


class AggregateStateError(EventSourcingError):
    """The aggregate was used out of sequence, e.g. replaying over unsaved changes."""
