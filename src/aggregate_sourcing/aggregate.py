"""
This module implements the aggregate replay/mutation engine.

An aggregate's state is the fold of its events. Replayed history and newly
produced changes pass through the same internal step (`_apply` followed by a
version increment); the only difference is that new changes are also
recorded in the uncommitted buffer. This is what guarantees that replaying
a history yields exactly the state that producing it live did.
"""
import logging
from datetime import datetime
from typing import Any, Callable, ClassVar, Dict, Iterable, List, Tuple, Type
from uuid import UUID

from pydantic import BaseModel

from .clock import SystemClock
from .errors import AggregateStateError, UnknownEventError
from .models import Event
from .protocols import Clock

Applier = Callable[[Any, BaseModel, Event], BaseModel]


def applies(event_type: Type[Event]):
    """Marks an aggregate method as the apply function for `event_type`."""

    def decorator(func: Applier) -> Applier:
        func._applies_to = event_type
        return func

    return decorator


class Aggregate:
    """
    Base class for event-sourced aggregates.

    Subclasses declare:
      - `state_type`: a frozen pydantic model whose defaults are the unborn state.
      - `event_types`: every event class the aggregate can apply.
      - one `@applies(EventClass)` method per entry in `event_types`, taking
        the current state and the event and returning the new state.

    Coverage is checked when the subclass is defined, so an event kind added
    to `event_types` without an applier fails at import time rather than
    during a replay.
    """

    state_type: ClassVar[Type[BaseModel]]
    event_types: ClassVar[Tuple[Type[Event], ...]] = ()
    _appliers: ClassVar[Dict[Type[Event], Applier]] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        appliers: Dict[Type[Event], Applier] = {}
        for klass in reversed(cls.__mro__):
            for attr in vars(klass).values():
                event_type = getattr(attr, "_applies_to", None)
                if event_type is not None:
                    appliers[event_type] = attr
        cls._appliers = appliers

        if not cls.event_types:
            return
        missing = [t.__name__ for t in cls.event_types if t not in appliers]
        if missing:
            raise TypeError(
                f"{cls.__name__} has no apply function for: {', '.join(missing)}"
            )
        unexpected = [t.__name__ for t in appliers if t not in cls.event_types]
        if unexpected:
            raise TypeError(
                f"{cls.__name__} applies events outside event_types: {', '.join(unexpected)}"
            )

    def __init__(self, aggregate_id: UUID, *, clock: Clock | None = None):
        self.id = aggregate_id
        self.version = -1  # Unborn
        self.state = self.initial_state()
        self.clock = clock or SystemClock()
        self.last_timestamp: datetime | None = None
        self._changes: List[Event] = []

    @classmethod
    def initial_state(cls) -> BaseModel:
        return cls.state_type()

    @classmethod
    def from_history(
        cls, aggregate_id: UUID, events: Iterable[Event], *, clock: Clock | None = None
    ):
        """Creates a fresh aggregate and replays `events` into it."""
        aggregate = cls(aggregate_id, clock=clock)
        aggregate.load_from_history(events)
        return aggregate

    @property
    def is_new(self) -> bool:
        return self.version == -1

    def load_from_history(self, events: Iterable[Event]):
        """
        Replays already-committed events. Each one is applied and counted in
        `version`, but none is added to the uncommitted changes.

        Replaying on top of unsaved changes would fold events twice, so that
        is refused with `AggregateStateError`.
        """
        if self._changes:
            raise AggregateStateError(
                f"Cannot replay history into {type(self).__name__} {self.id}: "
                f"{len(self._changes)} uncommitted change(s) pending"
            )
        count = 0
        for event in events:
            self._apply_change(event, is_new=False)
            count += 1
        logging.debug(
            f"Replayed {count} events into {type(self).__name__} {self.id}, now at version {self.version}"
        )

    def get_uncommitted_changes(self) -> Tuple[Event, ...]:
        return tuple(self._changes)

    def mark_changes_as_committed(self):
        self._changes.clear()

    def _now(self) -> datetime:
        """
        Timestamp for a new event. Never earlier than the last applied event,
        so timestamps stay non-decreasing even when the clock lags the history.
        """
        now = self.clock.now()
        if self.last_timestamp is not None and now < self.last_timestamp:
            return self.last_timestamp
        return now

    def _apply_change(self, event: Event, is_new: bool = True):
        self._apply(event)
        if is_new:
            self._changes.append(event)
        self.version += 1
        self.last_timestamp = event.timestamp

    def _apply(self, event: Event):
        applier = self._appliers.get(type(event))
        if applier is None:
            raise UnknownEventError(
                f"Unknown event type for {type(self).__name__}: {type(event).__name__}"
            )
        self.state = applier(self, self.state, event)
