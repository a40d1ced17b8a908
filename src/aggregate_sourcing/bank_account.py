"""
A bank account aggregate, the reference domain built on the engine.

Every operation validates first and only then builds its event, so a
rejected operation leaves the account exactly as it was.
"""
from decimal import Decimal, InvalidOperation
from typing import get_args
from uuid import UUID

from .aggregate import Aggregate, applies
from .errors import InsufficientFundsError, InvalidAmountError
from .models import (
    AccountOpened,
    AccountState,
    BankAccountEvent,
    FundsDeposited,
    FundsWithdrawn,
)
from .protocols import Clock


def _to_amount(amount) -> Decimal:
    # Route floats through str so 0.1 becomes Decimal("0.1"), not its binary expansion.
    try:
        value = Decimal(str(amount)) if isinstance(amount, float) else Decimal(amount)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidAmountError(f"Amount must be a number, got {amount!r}") from e
    if not value.is_finite() or value <= 0:
        raise InvalidAmountError(f"Amount must be a positive number, got {amount}")
    return value


class BankAccount(Aggregate):
    state_type = AccountState
    event_types = get_args(BankAccountEvent)

    state: AccountState

    @classmethod
    def open(
        cls,
        aggregate_id: UUID,
        account_number: str,
        account_holder: str,
        *,
        clock: Clock | None = None,
    ) -> "BankAccount":
        account = cls(aggregate_id, clock=clock)
        account._apply_change(
            AccountOpened(
                aggregate_id=aggregate_id,
                timestamp=account._now(),
                account_number=account_number,
                account_holder=account_holder,
            )
        )
        return account

    @property
    def balance(self) -> Decimal:
        return self.state.balance

    @property
    def account_number(self) -> str:
        return self.state.account_number

    @property
    def account_holder(self) -> str:
        return self.state.account_holder

    def deposit(self, amount):
        value = _to_amount(amount)
        self._apply_change(
            FundsDeposited(
                aggregate_id=self.id,
                timestamp=self._now(),
                amount=value,
                balance=self.state.balance + value,
            )
        )

    def withdraw(self, amount):
        value = _to_amount(amount)
        if self.state.balance < value:
            raise InsufficientFundsError("Insufficient funds.")
        self._apply_change(
            FundsWithdrawn(
                aggregate_id=self.id,
                timestamp=self._now(),
                amount=value,
                balance=self.state.balance - value,
            )
        )

    @applies(AccountOpened)
    def _opened(self, state: AccountState, event: AccountOpened) -> AccountState:
        return state.model_copy(
            update={
                "account_number": event.account_number,
                "account_holder": event.account_holder,
            }
        )

    @applies(FundsDeposited)
    def _deposited(self, state: AccountState, event: FundsDeposited) -> AccountState:
        return state.model_copy(update={"balance": event.balance})

    @applies(FundsWithdrawn)
    def _withdrawn(self, state: AccountState, event: FundsWithdrawn) -> AccountState:
        return state.model_copy(update={"balance": event.balance})
