# Fichier: caseprep/schemas/case/case_schema.py

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class CaseSectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    case_id: int
    title: str
    type: str
    prompt: str
    order_index: int
    hint: Optional[str] = None
    graph_description: Optional[str] = None
    image_url: Optional[str] = None


class BusinessCaseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    company: str
    industry: str
    difficulty: str
    estimated_time: Optional[str] = None
    description: Optional[str] = None
    language: str
    author_note: Optional[str] = None
    created_at: Optional[datetime] = None
    section_count: int = 0


class CaseDetailOut(BaseModel):
    case: BusinessCaseOut
    sections: List[CaseSectionOut]
