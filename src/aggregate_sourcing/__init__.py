# aggregate_sourcing package

from .aggregate import Aggregate, applies
from .bank_account import BankAccount
from .clock import FixedClock, SystemClock
from .codec import EventCodec, generate_key
from .errors import (
    AggregateStateError,
    DomainError,
    EventDecodeError,
    EventSourcingError,
    InsufficientFundsError,
    InvalidAmountError,
    UnknownEventError,
)
from .event_log import InMemoryEventLog
from .factories import open_event_log
from .models import (
    AccountOpened,
    AccountState,
    BankAccountEvent,
    Event,
    FundsDeposited,
    FundsWithdrawn,
)
from .protocols import Clock, EventLog
from .repository import Repository

__all__ = [
    "Aggregate",
    "applies",
    "BankAccount",
    "Clock",
    "SystemClock",
    "FixedClock",
    "Event",
    "AccountOpened",
    "FundsDeposited",
    "FundsWithdrawn",
    "BankAccountEvent",
    "AccountState",
    "EventLog",
    "InMemoryEventLog",
    "EventCodec",
    "generate_key",
    "open_event_log",
    "Repository",
    "EventSourcingError",
    "DomainError",
    "InsufficientFundsError",
    "InvalidAmountError",
    "UnknownEventError",
    "EventDecodeError",
    "AggregateStateError",
]
