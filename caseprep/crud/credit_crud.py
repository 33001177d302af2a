"""Persistence helpers for the credit ledger.

Every mutation appends exactly one ``CreditTransaction`` and adjusts the
materialised ``CreditBalance`` inside the same database transaction, so the
balance always equals the sum of the user's transaction amounts. Balance
updates are single conditional ``UPDATE`` statements: two concurrent debits
cannot both pass the funds check.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from caseprep.models.credits.credit_model import (
    CreditBalance,
    CreditTransaction,
    CreditTransactionType,
)

logger = logging.getLogger(__name__)


class InsufficientCredits(Exception):
    """Raised when a debit would drive the balance below zero."""

    def __init__(self, user_id: str, balance: int, requested: int):
        super().__init__("Insufficient credits")
        self.user_id = user_id
        self.balance = balance
        self.requested = requested


class DuplicateCreditTransaction(Exception):
    """Raised when a transaction with the same external reference already exists."""

    def __init__(self, external_reference: str):
        super().__init__(f"Credit transaction already recorded for {external_reference}")
        self.external_reference = external_reference


def _ensure_balance_row(db: Session, user_id: str) -> None:
    if db.get(CreditBalance, user_id) is not None:
        return

    # Savepoint: un insert concurrent ne doit pas annuler la transaction englobante.
    try:
        with db.begin_nested():
            db.add(CreditBalance(user_id=user_id, current_balance=0))
    except IntegrityError:
        logger.debug("Solde déjà créé en parallèle pour l'utilisateur %s", user_id)


def _validate_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValueError("amount must be a positive integer")


def get_balance(db: Session, user_id: str) -> int:
    balance = db.scalar(select(CreditBalance.current_balance).where(CreditBalance.user_id == user_id))
    return int(balance or 0)


def list_transactions(db: Session, user_id: str, *, limit: int = 50) -> list[CreditTransaction]:
    return list(
        db.scalars(
            select(CreditTransaction)
            .where(CreditTransaction.user_id == user_id)
            .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
            .limit(limit)
        )
    )


def find_by_external_reference(db: Session, external_reference: str) -> CreditTransaction | None:
    return db.scalar(
        select(CreditTransaction).where(CreditTransaction.external_reference == external_reference)
    )


def add_credits(
    db: Session,
    user_id: str,
    amount: int,
    transaction_type: CreditTransactionType,
    description: str,
    metadata: dict[str, Any] | None = None,
    *,
    external_reference: str | None = None,
    commit: bool = True,
) -> CreditTransaction:
    """Credit ``amount`` to the user and return the new ledger entry.

    ``external_reference`` makes the call idempotent: a second call with the
    same reference raises :class:`DuplicateCreditTransaction` and applies
    nothing.
    """

    _validate_amount(amount)
    transaction_type = CreditTransactionType(transaction_type)
    if transaction_type == CreditTransactionType.USAGE:
        raise ValueError("usage transactions must go through debit_credits")

    if external_reference and find_by_external_reference(db, external_reference) is not None:
        raise DuplicateCreditTransaction(external_reference)

    _ensure_balance_row(db, user_id)

    transaction = CreditTransaction(
        user_id=user_id,
        amount=amount,
        transaction_type=transaction_type,
        description=description,
        metadata_=metadata or {},
        external_reference=external_reference,
    )
    try:
        with db.begin_nested():
            db.add(transaction)
            db.flush([transaction])
    except IntegrityError as exc:
        # Course perdue contre une livraison concurrente du même événement.
        if external_reference:
            raise DuplicateCreditTransaction(external_reference) from exc
        raise

    db.execute(
        update(CreditBalance)
        .where(CreditBalance.user_id == user_id)
        .values(current_balance=CreditBalance.current_balance + amount)
        .execution_options(synchronize_session=False)
    )

    if commit:
        db.commit()
        db.refresh(transaction)

    logger.info(
        "Crédits ajoutés: user=%s montant=%s type=%s",
        user_id,
        amount,
        transaction_type.value,
    )
    return transaction


def debit_credits(
    db: Session,
    user_id: str,
    amount: int,
    description: str,
    metadata: dict[str, Any] | None = None,
    *,
    commit: bool = True,
) -> CreditTransaction:
    """Atomically withdraw ``amount`` or raise :class:`InsufficientCredits`."""

    _validate_amount(amount)

    result = db.execute(
        update(CreditBalance)
        .where(CreditBalance.user_id == user_id, CreditBalance.current_balance >= amount)
        .values(current_balance=CreditBalance.current_balance - amount)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        balance = get_balance(db, user_id)
        logger.info(
            "Débit refusé pour l'utilisateur %s: solde %s < %s",
            user_id,
            balance,
            amount,
        )
        raise InsufficientCredits(user_id, balance, amount)

    transaction = CreditTransaction(
        user_id=user_id,
        amount=-amount,
        transaction_type=CreditTransactionType.USAGE,
        description=description,
        metadata_=metadata or {},
    )
    db.add(transaction)
    db.flush([transaction])

    if commit:
        db.commit()
        db.refresh(transaction)

    logger.info("Crédits débités: user=%s montant=%s", user_id, amount)
    return transaction
