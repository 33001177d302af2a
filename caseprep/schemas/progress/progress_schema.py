# Fichier: caseprep/schemas/progress/progress_schema.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class UserCaseProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    case_id: Optional[int]
    completed_sections: int
    total_sections: int
    is_completed: bool
    last_activity: Optional[datetime] = None


class BootstrapOut(BaseModel):
    progress: UserCaseProgressOut
    created: bool
    balance: int


class CaseStartOut(BaseModel):
    progress: UserCaseProgressOut
    balance: int
    first_section_id: Optional[int]
    bootstrapped: bool
