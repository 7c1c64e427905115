"""
Credit ledger: the balance of every account.

Operations:
    - get_balance(account_id) -> int
    - credit(account_id, amount) -> new balance
    - try_debit(account_id, amount) -> new balance, or InsufficientCredits
    - refund(account_id, amount) -> new balance
    - apply_order_credit(order_id, account_id, amount) -> CreditGrant

Invariants:
    1. A balance is never negative; a debit larger than the balance is
       refused, never clamped.
    2. The check and the decrement of a debit are one atomic step per account.
    3. A captured order credits its account at most once.

Two implementations share the contract: ``InMemoryLedger`` for a single
process, and ``SqlLedger`` which pushes atomicity into the database.
"""

import logging
import threading
from abc import ABC, abstractmethod

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from ..database import session_scope
from ..exceptions import InsufficientCredits
from ..models import CreditGrant
from ..models_db import Account, CapturedOrder

logger = logging.getLogger(__name__)


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValueError(f"Credit amount must be a positive integer, got {amount!r}")


class AccountLedger(ABC):
    """Repository contract for account balances and captured orders."""

    @abstractmethod
    def get_balance(self, account_id: str) -> int:
        """Current balance; 0 for accounts never seen."""

    @abstractmethod
    def credit(self, account_id: str, amount: int) -> int:
        """Add ``amount`` credits, creating the account if needed."""

    @abstractmethod
    def try_debit(self, account_id: str, amount: int) -> int:
        """
        Atomically remove ``amount`` credits.

        Raises:
            InsufficientCredits: If the balance is lower than ``amount``.
                The balance is left unchanged.
        """

    @abstractmethod
    def get_applied_order(self, order_id: str) -> CreditGrant | None:
        """
        The grant recorded for ``order_id``, or None if it was never credited.

        The returned grant has ``already_applied`` set and the account's
        current balance.
        """

    def is_order_applied(self, order_id: str) -> bool:
        """Whether credits for ``order_id`` have already been granted."""
        return self.get_applied_order(order_id) is not None

    @abstractmethod
    def apply_order_credit(self, order_id: str, account_id: str, amount: int) -> CreditGrant:
        """
        Grant ``amount`` credits for a captured order, once.

        A repeated ``order_id`` grants nothing and reports ``already_applied``.
        """

    def refund(self, account_id: str, amount: int) -> int:
        """Return credits taken by a debit whose paid work failed."""
        balance = self.credit(account_id, amount)
        logger.info("Refunded %d credit(s) to %s (balance=%d)", amount, account_id, balance)
        return balance


class InMemoryLedger(AccountLedger):
    """
    Process-local ledger.

    Each account has its own lock, so operations on different accounts never
    wait on each other. Order grants additionally hold ``_orders_lock``;
    lock order is always orders lock, then account lock.
    """

    def __init__(self):
        self._balances: dict[str, int] = {}
        self._applied_orders: dict[str, CreditGrant] = {}
        self._account_locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._orders_lock = threading.Lock()

    def _lock_for(self, account_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._account_locks.get(account_id)
            if lock is None:
                lock = self._account_locks[account_id] = threading.Lock()
            return lock

    def get_balance(self, account_id: str) -> int:
        # Lock-free read; unknown ids leave no lock entry behind
        return self._balances.get(account_id, 0)

    def credit(self, account_id: str, amount: int) -> int:
        _check_amount(amount)
        with self._lock_for(account_id):
            balance = self._balances.get(account_id, 0) + amount
            self._balances[account_id] = balance
        logger.info("Credited %d to %s (balance=%d)", amount, account_id, balance)
        return balance

    def try_debit(self, account_id: str, amount: int) -> int:
        _check_amount(amount)
        with self._lock_for(account_id):
            balance = self._balances.setdefault(account_id, 0)
            if balance < amount:
                logger.warning(
                    "Refused debit of %d from %s (balance=%d)", amount, account_id, balance
                )
                raise InsufficientCredits(account_id, balance, amount)
            balance -= amount
            self._balances[account_id] = balance
        logger.info("Debited %d from %s (balance=%d)", amount, account_id, balance)
        return balance

    def _previous_grant(self, order_id: str) -> CreditGrant | None:
        previous = self._applied_orders.get(order_id)
        if previous is None:
            return None
        return previous.model_copy(
            update={
                "new_balance": self.get_balance(previous.account_id),
                "already_applied": True,
            }
        )

    def get_applied_order(self, order_id: str) -> CreditGrant | None:
        with self._orders_lock:
            return self._previous_grant(order_id)

    def apply_order_credit(self, order_id: str, account_id: str, amount: int) -> CreditGrant:
        _check_amount(amount)
        with self._orders_lock:
            previous = self._previous_grant(order_id)
            if previous is not None:
                logger.warning("Order %s already credited to %s", order_id, previous.account_id)
                return previous
            balance = self.credit(account_id, amount)
            grant = CreditGrant(
                order_id=order_id,
                account_id=account_id,
                credits_added=amount,
                new_balance=balance,
            )
            self._applied_orders[order_id] = grant
        return grant


class SqlLedger(AccountLedger):
    """
    Ledger persisted through SQLAlchemy.

    Debits are a single conditional UPDATE (``credits >= amount``), so the
    database serializes concurrent debits of the same account. Captured
    orders are keyed by order id; a duplicate insert loses the race and
    grants nothing.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @staticmethod
    def _balance(session: Session, account_id: str) -> int:
        balance = session.scalar(select(Account.credits).where(Account.account_id == account_id))
        return balance or 0

    @staticmethod
    def _increment(session: Session, account_id: str, amount: int) -> bool:
        result = session.execute(
            update(Account)
            .where(Account.account_id == account_id)
            .values(credits=Account.credits + amount)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _add(self, session: Session, account_id: str, amount: int) -> int:
        if not self._increment(session, account_id, amount):
            try:
                with session.begin_nested():
                    session.add(Account(account_id=account_id, credits=amount))
            except IntegrityError:
                # Another transaction created the account after our UPDATE
                logger.info("Account %s created concurrently; retrying update", account_id)
                if not self._increment(session, account_id, amount):
                    raise
        return self._balance(session, account_id)

    def get_balance(self, account_id: str) -> int:
        with session_scope(self._session_factory) as session:
            return self._balance(session, account_id)

    def credit(self, account_id: str, amount: int) -> int:
        _check_amount(amount)
        with session_scope(self._session_factory) as session:
            balance = self._add(session, account_id, amount)
        logger.info("Credited %d to %s (balance=%d)", amount, account_id, balance)
        return balance

    def try_debit(self, account_id: str, amount: int) -> int:
        _check_amount(amount)
        with session_scope(self._session_factory) as session:
            result = session.execute(
                update(Account)
                .where(Account.account_id == account_id, Account.credits >= amount)
                .values(credits=Account.credits - amount)
                .execution_options(synchronize_session=False)
            )
            debited = result.rowcount == 1
            balance = self._balance(session, account_id)

        if not debited:
            logger.warning("Refused debit of %d from %s (balance=%d)", amount, account_id, balance)
            raise InsufficientCredits(account_id, balance, amount)

        logger.info("Debited %d from %s (balance=%d)", amount, account_id, balance)
        return balance

    def get_applied_order(self, order_id: str) -> CreditGrant | None:
        with session_scope(self._session_factory) as session:
            order = session.get(CapturedOrder, order_id)
            if order is None:
                return None
            return CreditGrant(
                order_id=order.order_id,
                account_id=order.account_id,
                credits_added=order.credits_added,
                new_balance=self._balance(session, order.account_id),
                already_applied=True,
            )

    def apply_order_credit(self, order_id: str, account_id: str, amount: int) -> CreditGrant:
        _check_amount(amount)

        existing = self.get_applied_order(order_id)
        if existing is not None:
            logger.warning("Order %s already credited to %s", order_id, existing.account_id)
            return existing

        try:
            with session_scope(self._session_factory) as session:
                session.add(
                    CapturedOrder(order_id=order_id, account_id=account_id, credits_added=amount)
                )
                session.flush()
                balance = self._add(session, account_id, amount)
        except IntegrityError:
            existing = self.get_applied_order(order_id)
            if existing is None:
                raise
            logger.warning("Order %s was credited concurrently", order_id)
            return existing

        logger.info("Credited %d to %s for order %s (balance=%d)", amount, account_id, order_id, balance)
        return CreditGrant(
            order_id=order_id,
            account_id=account_id,
            credits_added=amount,
            new_balance=balance,
        )
