# Fichier: caseprep/models/progress/user_case_progress_model.py

from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    false,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from caseprep.db.base_class import Base

if TYPE_CHECKING:
    from ..user.user_model import User
    from ..case.business_case_model import BusinessCase


class UserCaseProgress(Base):
    """Compteur de sections validées par (utilisateur, case).

    Une ligne avec ``case_id`` NULL sert de marqueur « compte initialisé »:
    elle matérialise l'attribution unique du bonus d'inscription.
    """

    __tablename__ = "user_case_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    case_id: Mapped[Optional[int]] = mapped_column(ForeignKey("business_cases.id", ondelete="CASCADE"), nullable=True)

    completed_sections: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_sections: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    last_activity: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    user: Mapped["User"] = relationship(back_populates="case_progress")
    business_case: Mapped[Optional["BusinessCase"]] = relationship()

    __table_args__ = (
        UniqueConstraint("user_id", "case_id", name="uq_user_case_progress"),
        # NULL n'étant jamais égal à NULL, la contrainte ci-dessus ne couvre pas
        # la ligne marqueur: index partiel dédié.
        Index(
            "uq_user_case_progress_bootstrap",
            "user_id",
            unique=True,
            postgresql_where=text("case_id IS NULL"),
            sqlite_where=text("case_id IS NULL"),
        ),
        CheckConstraint("completed_sections <= total_sections", name="ck_progress_within_total"),
        CheckConstraint("completed_sections >= 0", name="ck_progress_non_negative"),
    )

    @property
    def is_bootstrap(self) -> bool:
        return self.case_id is None

    def __repr__(self):
        return (
            f"<UserCaseProgress(user_id='{self.user_id}', case_id={self.case_id}, "
            f"completed={self.completed_sections}/{self.total_sections})>"
        )
