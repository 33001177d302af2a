from sqlalchemy import String, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from caseprep.db.base_class import Base
from typing import List, Optional, TYPE_CHECKING
from datetime import datetime

if TYPE_CHECKING:
    from ..progress.user_case_progress_model import UserCaseProgress
    from ..progress.user_response_model import UserResponse
    from ..credits.credit_model import CreditBalance, CreditTransaction


class User(Base):
    """Miroir local de l'identité fournie par le fournisseur OAuth."""

    __tablename__ = "users"

    # Le ``sub`` du fournisseur d'identité, jamais généré côté API.
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    case_progress: Mapped[List["UserCaseProgress"]] = relationship(back_populates="user")
    responses: Mapped[List["UserResponse"]] = relationship(back_populates="user")
    credit_transactions: Mapped[List["CreditTransaction"]] = relationship(back_populates="user")
    credit_balance: Mapped[Optional["CreditBalance"]] = relationship(back_populates="user", uselist=False)

    def __repr__(self):
        return f"<User(id='{self.id}', email='{self.email}')>"
