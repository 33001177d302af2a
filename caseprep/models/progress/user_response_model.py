# Fichier: caseprep/models/progress/user_response_model.py
from sqlalchemy import Boolean, Integer, String, Text, DateTime, ForeignKey, JSON, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from caseprep.db.base_class import Base
from typing import Any, List, Optional, TYPE_CHECKING
from datetime import datetime

if TYPE_CHECKING:
    from ..user.user_model import User


class UserResponse(Base):
    """Journal append-only des soumissions (audit et historique)."""

    __tablename__ = "user_responses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), index=True)
    case_id: Mapped[int] = mapped_column(Integer, ForeignKey("business_cases.id", ondelete="CASCADE"), index=True)
    section_id: Mapped[int] = mapped_column(Integer, ForeignKey("case_sections.id", ondelete="CASCADE"), index=True)

    response_text: Mapped[str] = mapped_column(Text, nullable=False)
    feedback: Mapped[str] = mapped_column(Text, nullable=False)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    sketch_image_url: Mapped[Optional[str]] = mapped_column(String(1024))
    sketch_description: Mapped[Optional[str]] = mapped_column(Text)
    conversation_history: Mapped[List[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    user: Mapped["User"] = relationship(back_populates="responses")
