"""
Converts events to and from their persisted form.

The stored payload is the event's pydantic JSON, which keeps the aggregate
identity, timestamp, `type` discriminator and every subtype field. When a
Fernet key is configured the payload is encrypted at rest.
"""
from typing import Dict, Iterable, Type

import pydantic_core
from cryptography.fernet import Fernet, InvalidToken

from .errors import EventDecodeError, UnknownEventError
from .models import Event


def generate_key() -> bytes:
    return Fernet.generate_key()


def event_type_name(event_type: Type[Event]) -> str:
    """Returns the discriminator a concrete event class is stored under."""
    name = event_type.model_fields["type"].default
    if not isinstance(name, str):
        raise TypeError(f"{event_type.__name__} does not fix its `type` discriminator")
    return name


class EventCodec:
    def __init__(self, event_types: Iterable[Type[Event]], *, key: bytes | str | None = None):
        self._registry: Dict[str, Type[Event]] = {}
        for event_type in event_types:
            name = event_type_name(event_type)
            if name in self._registry:
                raise ValueError(f"Duplicate event type name: {name}")
            self._registry[name] = event_type
        self._fernet = Fernet(key) if key else None

    @property
    def encrypted(self) -> bool:
        return self._fernet is not None

    def encode(self, event: Event) -> bytes:
        # The exact registered class only; anything else could not be decoded back as itself.
        if type(event) is not self._registry.get(event.type):
            raise UnknownEventError(
                f"Unknown event type: {event.type} ({type(event).__name__})"
            )
        data = event.model_dump_json().encode("utf-8")
        if self._fernet:
            data = self._fernet.encrypt(data)
        return data

    def decode(self, type_name: str, data: bytes) -> Event:
        event_type = self._registry.get(type_name)
        if event_type is None:
            raise UnknownEventError(f"Unknown event type: {type_name}")
        if self._fernet:
            try:
                data = self._fernet.decrypt(data)
            except InvalidToken as e:
                raise EventDecodeError(f"Could not decrypt {type_name} event") from e
        try:
            return event_type.model_validate_json(data)
        except pydantic_core.ValidationError as e:
            raise EventDecodeError(f"Invalid {type_name} event payload: {e}") from e
