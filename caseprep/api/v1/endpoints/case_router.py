# Fichier: caseprep/api/v1/endpoints/case_router.py
"""Bibliothèque de cases et démarrage d'un case (débit d'un crédit)."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from caseprep.api.v1.dependencies import get_current_user, get_db
from caseprep.core.config import settings
from caseprep.crud import case_crud
from caseprep.crud.case_crud import CaseNotFound
from caseprep.crud.credit_crud import InsufficientCredits
from caseprep.models.user.user_model import User
from caseprep.schemas.case.case_schema import BusinessCaseOut, CaseDetailOut, CaseSectionOut
from caseprep.schemas.progress.progress_schema import CaseStartOut, UserCaseProgressOut
from caseprep.services.case_start_service import start_case_for_user

router = APIRouter()
logger = logging.getLogger(__name__)


def insufficient_credits_error(exc: InsufficientCredits) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_402_PAYMENT_REQUIRED,
        detail={"code": "insufficient_credits", "balance": exc.balance},
    )


@router.get("", response_model=List[BusinessCaseOut], summary="Lister les cases")
def list_cases(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[BusinessCaseOut]:
    return [
        BusinessCaseOut.model_validate(item).model_copy(
            update={"section_count": case_crud.count_sections(db, item.id)}
        )
        for item in case_crud.list_cases(db)
    ]


@router.get("/{case_id}", response_model=CaseDetailOut, summary="Détail d'un case et de ses sections")
def read_case(
    case_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CaseDetailOut:
    try:
        business_case, sections = case_crud.get_case(db, case_id)
    except CaseNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="case_not_found")

    return CaseDetailOut(
        case=BusinessCaseOut.model_validate(business_case),
        sections=[CaseSectionOut.model_validate(section) for section in sections],
    )


@router.post("/{case_id}/start", response_model=CaseStartOut, summary="Démarrer un case")
def start_case(
    case_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CaseStartOut:
    """Débite ``CASE_START_COST`` crédits et remet la progression du case à zéro."""
    try:
        result = start_case_for_user(
            db,
            current_user.id,
            case_id,
            signup_bonus=settings.SIGNUP_BONUS_CREDITS,
            cost=settings.CASE_START_COST,
        )
    except CaseNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="case_not_found")
    except InsufficientCredits as exc:
        raise insufficient_credits_error(exc)

    return CaseStartOut(
        progress=UserCaseProgressOut.model_validate(result.progress),
        balance=result.balance,
        first_section_id=result.first_section_id,
        bootstrapped=result.bootstrapped,
    )
