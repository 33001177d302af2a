# Fichier: caseprep/schemas/feedback/case_feedback_schema.py

import enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ConversationRole(str, enum.Enum):
    INTERVIEWER = "interviewer"
    CANDIDATE = "candidate"


class ConversationTurn(BaseModel):
    """Un tour de l'échange d'une section (jamais stocké sous forme de texte brut)."""

    role: ConversationRole
    content: str
    attachments: List[str] = Field(default_factory=list)


class CaseFeedbackRequest(BaseModel):
    case_id: int = Field(gt=0)
    section_id: int = Field(gt=0)
    response_text: str
    # Historique de la section *avant* le message courant.
    conversation_history: List[ConversationTurn] = Field(default_factory=list)
    sketch_image_url: Optional[str] = Field(default=None, max_length=1024)


class ProgressOut(BaseModel):
    completed_sections: int
    total_sections: int
    is_completed: bool


class CaseFeedbackResponse(BaseModel):
    feedback: str
    is_complete: bool
    progress: ProgressOut
