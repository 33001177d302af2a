"""Ledger de crédits: journal de transactions + solde matérialisé."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Optional, TYPE_CHECKING

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from caseprep.db.base_class import Base

if TYPE_CHECKING:
    from ..user.user_model import User


class CreditTransactionType(str, enum.Enum):
    PROMOTION = "promotion"
    PURCHASE = "purchase"
    TEST = "test"
    USAGE = "usage"


class CreditTransaction(Base):
    __tablename__ = "credit_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_type: Mapped[CreditTransactionType] = mapped_column(
        Enum(
            CreditTransactionType,
            name="credittransactiontype",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(String(255))
    metadata_: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", JSON)
    # Identifiant externe (session Stripe) : une seule écriture par référence.
    external_reference: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    user: Mapped["User"] = relationship(back_populates="credit_transactions")

    __table_args__ = (CheckConstraint("amount <> 0", name="ck_credit_transaction_non_zero"),)

    def __repr__(self):
        return f"<CreditTransaction(user_id='{self.user_id}', amount={self.amount}, type={self.transaction_type.value})>"


class CreditBalance(Base):
    """Somme des transactions d'un utilisateur, tenue à jour par ``credit_crud`` uniquement."""

    __tablename__ = "credit_balances"

    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    current_balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    user: Mapped["User"] = relationship(back_populates="credit_balance")

    __table_args__ = (CheckConstraint("current_balance >= 0", name="ck_credit_balance_non_negative"),)
