"""
This module defines the event and state models using Pydantic.

Events are frozen models: once constructed, none of their fields can be
reassigned. Every concrete event fixes its `type` discriminator with a
`Literal` default, which is also the name it is persisted under.
"""
from datetime import datetime
from decimal import Decimal
from typing import Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    aggregate_id: UUID  # identity of the aggregate this event belongs to
    timestamp: datetime


class AccountOpened(Event):
    type: Literal["AccountOpened"] = "AccountOpened"
    account_number: str
    account_holder: str


class FundsDeposited(Event):
    type: Literal["FundsDeposited"] = "FundsDeposited"
    amount: Decimal
    balance: Decimal  # balance after the deposit


class FundsWithdrawn(Event):
    type: Literal["FundsWithdrawn"] = "FundsWithdrawn"
    amount: Decimal
    balance: Decimal  # balance after the withdrawal


# Every event kind a bank account can record. Adding a kind here without an
# applier on BankAccount fails when the class is defined.
BankAccountEvent = Union[AccountOpened, FundsDeposited, FundsWithdrawn]


class AccountState(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_number: str = ""
    account_holder: str = ""
    balance: Decimal = Decimal("0")
