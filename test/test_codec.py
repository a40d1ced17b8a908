import pytest
from datetime import datetime, timezone
from decimal import Decimal
from typing import get_args
from uuid import uuid4

from aggregate_sourcing import (
    AccountOpened,
    BankAccountEvent,
    Event,
    EventCodec,
    EventDecodeError,
    FundsWithdrawn,
    UnknownEventError,
    generate_key,
)
from aggregate_sourcing.codec import event_type_name

BANK_EVENTS = get_args(BankAccountEvent)


def withdrawal():
    return FundsWithdrawn(
        aggregate_id=uuid4(),
        timestamp=datetime(2024, 3, 4, 5, 6, 7, 890000, tzinfo=timezone.utc),
        amount=Decimal("25.00"),
        balance=Decimal("125.00"),
    )


def test_type_names():
    assert [event_type_name(t) for t in BANK_EVENTS] == [
        "AccountOpened",
        "FundsDeposited",
        "FundsWithdrawn",
    ]
    with pytest.raises(TypeError):
        event_type_name(Event)


def test_decode_restores_every_field():
    codec = EventCodec(BANK_EVENTS)
    event = withdrawal()
    decoded = codec.decode(event.type, codec.encode(event))

    assert isinstance(decoded, FundsWithdrawn)
    assert decoded.model_dump() == event.model_dump()
    assert decoded.balance == Decimal("125.00")


def test_encrypted_payload_hides_plaintext():
    codec = EventCodec(BANK_EVENTS, key=generate_key())
    event = AccountOpened(
        aggregate_id=uuid4(),
        timestamp=datetime.now(timezone.utc),
        account_number="1234567890",
        account_holder="John Doe",
    )
    data = codec.encode(event)
    assert codec.encrypted
    assert b"John Doe" not in data
    assert codec.decode("AccountOpened", data).account_holder == "John Doe"


def test_wrong_key_is_a_decode_error():
    event = withdrawal()
    data = EventCodec(BANK_EVENTS, key=generate_key()).encode(event)
    with pytest.raises(EventDecodeError, match="decrypt"):
        EventCodec(BANK_EVENTS, key=generate_key()).decode(event.type, data)


def test_invalid_payload_is_a_decode_error():
    codec = EventCodec(BANK_EVENTS)
    with pytest.raises(EventDecodeError):
        codec.decode("FundsWithdrawn", b'{"type": "FundsWithdrawn", "amount": "1"}')
    with pytest.raises(EventDecodeError):
        codec.decode("FundsWithdrawn", b"not json")


def test_unknown_type_name():
    codec = EventCodec([AccountOpened])
    with pytest.raises(UnknownEventError, match="Mystery"):
        codec.decode("Mystery", b"{}")
    with pytest.raises(UnknownEventError, match="FundsWithdrawn"):
        codec.encode(withdrawal())


def test_duplicate_type_names_are_rejected():
    with pytest.raises(ValueError, match="Duplicate"):
        EventCodec([AccountOpened, AccountOpened])


def test_encode_requires_the_registered_class():
    codec = EventCodec(BANK_EVENTS)
    bare = Event(type="FundsWithdrawn", aggregate_id=uuid4(), timestamp=datetime.now(timezone.utc))
    with pytest.raises(UnknownEventError, match="FundsWithdrawn"):
        codec.encode(bare)


def test_encode_rejects_subclass_of_registered_event():
    class AuditedWithdrawal(FundsWithdrawn):
        teller: str

    event = AuditedWithdrawal(
        aggregate_id=uuid4(),
        timestamp=datetime.now(timezone.utc),
        amount=Decimal("1"),
        balance=Decimal("0"),
        teller="T-7",
    )
    with pytest.raises(UnknownEventError, match="AuditedWithdrawal"):
        EventCodec(BANK_EVENTS).encode(event)
