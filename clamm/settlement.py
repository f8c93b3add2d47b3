"""
In-memory token ledger and payment callbacks.

The pool never trusts a promise of payment. It delivers what it owes, calls
the payment callback with the signed amounts (positive = owed to the pool),
and then checks its own balances. The callback settles by moving tokens into
the pool's account on the same ledger.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Hashable, Iterator, List, Tuple

from .exceptions import InsufficientBalance

logger = logging.getLogger(__name__)

# callback(amount0, amount1); amounts are from the pool's point of view
PaymentCallback = Callable[[int, int], None]

# (account, token, signed change) recorded by an open transaction
_Entry = Tuple[Hashable, str, int]


class TokenLedger:
    """Balances keyed by (account, token); zero balances are not stored."""

    def __init__(self):
        self._balances: Dict[Tuple[Hashable, str], int] = {}
        # guards single balance updates only, never a whole transaction
        self._lock = threading.RLock()
        self._local = threading.local()

    def _journals(self) -> List[List[_Entry]]:
        """This thread's stack of open transactions, innermost last."""
        journals = getattr(self._local, "journals", None)
        if journals is None:
            journals = self._local.journals = []
        return journals

    def _adjust(self, account: Hashable, token: str, delta: int) -> None:
        key = (account, token)
        balance = self._balances.get(key, 0) + delta
        if balance:
            self._balances[key] = balance
        else:
            self._balances.pop(key, None)

    def _record(self, account: Hashable, token: str, delta: int) -> None:
        journals = self._journals()
        if journals:
            journals[-1].append((account, token, delta))

    def balance_of(self, account: Hashable, token: str) -> int:
        with self._lock:
            return self._balances.get((account, token), 0)

    def credit(self, account: Hashable, token: str, amount: int) -> None:
        """Mint ``amount`` of ``token`` to ``account`` (test / scenario funding)."""
        if amount < 0:
            raise ValueError(f"credit amount must be non-negative: {amount}")
        with self._lock:
            self._adjust(account, token, amount)
            self._record(account, token, amount)

    def transfer(self, token: str, sender: Hashable, recipient: Hashable, amount: int) -> None:
        """Move ``amount`` of ``token`` from ``sender`` to ``recipient``.

        Raises:
            ValueError: negative amount
            InsufficientBalance: sender balance below amount
        """
        if amount < 0:
            raise ValueError(f"transfer amount must be non-negative: {amount}")
        if amount == 0:
            return
        with self._lock:
            balance = self.balance_of(sender, token)
            if balance < amount:
                raise InsufficientBalance(
                    f"{sender} holds {balance} {token}, cannot send {amount}"
                )
            self._adjust(sender, token, -amount)
            self._adjust(recipient, token, amount)
            self._record(sender, token, -amount)
            self._record(recipient, token, amount)

    @contextmanager
    def transaction(self) -> Iterator["TokenLedger"]:
        """Reverse the transfers this thread makes inside the block if it raises.

        The lock is not held across the block, so a payment callback may trade
        on other pools sharing this ledger while other threads keep settling.
        A nested transaction that completed is final; a failing block reverses
        only its own entries.
        """
        journals = self._journals()
        journal: List[_Entry] = []
        journals.append(journal)
        try:
            yield self
        except BaseException:
            with self._lock:
                for account, token, delta in reversed(journal):
                    self._adjust(account, token, -delta)
            logger.warning("Token ledger transaction rolled back (%d entries)", len(journal))
            raise
        finally:
            journals.pop()

    def balances(self) -> Dict[Tuple[Hashable, str], int]:
        with self._lock:
            return dict(self._balances)


def make_payer(
    ledger: TokenLedger,
    payer: Hashable,
    pool_account: Hashable,
    token0: str,
    token1: str,
) -> PaymentCallback:
    """Callback that pays whatever the pool asks for out of ``payer``'s balance."""

    def pay(amount0: int, amount1: int) -> None:
        if amount0 > 0:
            ledger.transfer(token0, payer, pool_account, amount0)
        if amount1 > 0:
            ledger.transfer(token1, payer, pool_account, amount1)

    return pay
