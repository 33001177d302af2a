# Fichier: caseprep/api/v1/endpoints/credit_router.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from caseprep.api.v1.dependencies import get_current_user, get_db
from caseprep.core.config import settings
from caseprep.crud import credit_crud
from caseprep.models.credits.credit_model import CreditTransactionType
from caseprep.models.user.user_model import User
from caseprep.schemas.credits.credit_schema import (
    CreditBalanceOut,
    CreditGrantIn,
    CreditTransactionList,
    CreditTransactionOut,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/balance", response_model=CreditBalanceOut, summary="Solde de crédits")
def read_balance(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CreditBalanceOut:
    return CreditBalanceOut(balance=credit_crud.get_balance(db, current_user.id))


@router.get("/transactions", response_model=CreditTransactionList, summary="Historique des crédits")
def read_transactions(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CreditTransactionList:
    transactions = credit_crud.list_transactions(db, current_user.id, limit=limit)
    return CreditTransactionList(
        balance=credit_crud.get_balance(db, current_user.id),
        transactions=[CreditTransactionOut.model_validate(item) for item in transactions],
    )


@router.post("/test-grant", response_model=CreditBalanceOut, summary="Crédits de test (hors production)")
def grant_test_credits(
    payload: CreditGrantIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CreditBalanceOut:
    if settings.is_production:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    credit_crud.add_credits(
        db,
        current_user.id,
        payload.amount,
        CreditTransactionType.TEST,
        f"Test credits - {payload.amount}",
        {"source": "test_grant"},
    )
    logger.info("Crédits de test accordés à %s: %s", current_user.id, payload.amount)
    return CreditBalanceOut(balance=credit_crud.get_balance(db, current_user.id))
