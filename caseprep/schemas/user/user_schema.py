# Fichier: caseprep/schemas/user/user_schema.py
from pydantic import BaseModel, ConfigDict
from typing import Optional


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: Optional[str] = None


class CurrentUserOut(UserOut):
    credit_balance: int
