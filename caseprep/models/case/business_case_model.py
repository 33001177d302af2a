# Fichier: caseprep/models/case/business_case_model.py

from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from caseprep.db.base_class import Base


class BusinessCase(Base):
    __tablename__ = "business_cases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str] = mapped_column(String(255), nullable=False)
    industry: Mapped[str] = mapped_column(String(120), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(50), nullable=False, default="medium")
    estimated_time: Mapped[Optional[str]] = mapped_column(String(50))
    description: Mapped[Optional[str]] = mapped_column(Text)
    language: Mapped[str] = mapped_column(String(10), nullable=False, default="en", server_default="en")
    author_note: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    sections: Mapped[List["CaseSection"]] = relationship(
        back_populates="business_case",
        order_by="CaseSection.order_index",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<BusinessCase(id={self.id}, title='{self.title}')>"


class CaseSection(Base):
    __tablename__ = "case_sections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    case_id: Mapped[int] = mapped_column(ForeignKey("business_cases.id", ondelete="CASCADE"), index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False, default="question")
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)

    ai_instructions: Mapped[Optional[str]] = mapped_column(Text)
    criteria: Mapped[Optional[str]] = mapped_column(Text)
    case_data: Mapped[Optional[str]] = mapped_column(Text)
    graph_description: Mapped[Optional[str]] = mapped_column(Text)
    hint: Mapped[Optional[str]] = mapped_column(Text)
    image_url: Mapped[Optional[str]] = mapped_column(String(1024))

    business_case: Mapped["BusinessCase"] = relationship(back_populates="sections")

    # L'ordre définit le seul chemin de progression valide dans un case.
    __table_args__ = (UniqueConstraint("case_id", "order_index", name="uq_case_section_order"),)

    def __repr__(self):
        return f"<CaseSection(id={self.id}, case_id={self.case_id}, order_index={self.order_index})>"
