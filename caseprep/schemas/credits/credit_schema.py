# Fichier: caseprep/schemas/credits/credit_schema.py

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from caseprep.models.credits.credit_model import CreditTransactionType


class CreditBalanceOut(BaseModel):
    balance: int


class CreditTransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount: int
    transaction_type: CreditTransactionType
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="metadata_")
    created_at: Optional[datetime] = None


class CreditTransactionList(BaseModel):
    balance: int
    transactions: List[CreditTransactionOut]


class CreditGrantIn(BaseModel):
    amount: int = Field(default=5, gt=0, le=100)


class CheckoutSessionIn(BaseModel):
    price_id: str = Field(min_length=1)
    credit_amount: int = Field(gt=0)


class CheckoutSessionOut(BaseModel):
    url: str
