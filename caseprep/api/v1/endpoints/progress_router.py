# Fichier: caseprep/api/v1/endpoints/progress_router.py
"""Progression par case et bootstrap initial (bonus de bienvenue)."""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from caseprep.api.v1.dependencies import get_current_user, get_db
from caseprep.core.config import settings
from caseprep.crud import credit_crud, progress_crud
from caseprep.models.user.user_model import User
from caseprep.schemas.progress.progress_schema import BootstrapOut, UserCaseProgressOut

router = APIRouter()


@router.get("", response_model=List[UserCaseProgressOut], summary="Progression de l'utilisateur")
def list_my_progress(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[UserCaseProgressOut]:
    return [UserCaseProgressOut.model_validate(row) for row in progress_crud.list_progress(db, current_user.id)]


@router.post("/bootstrap", response_model=BootstrapOut, summary="Initialiser la progression")
def bootstrap_progress(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> BootstrapOut:
    """Idempotent: le bonus n'est crédité qu'au premier appel."""
    row, created = progress_crud.ensure_bootstrap(db, current_user.id, bonus=settings.SIGNUP_BONUS_CREDITS)
    return BootstrapOut(
        progress=UserCaseProgressOut.model_validate(row),
        created=created,
        balance=credit_crud.get_balance(db, current_user.id),
    )
