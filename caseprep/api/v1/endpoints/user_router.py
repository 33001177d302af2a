# Fichier: caseprep/api/v1/endpoints/user_router.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from caseprep.api.v1.dependencies import get_current_user, get_db
from caseprep.crud import credit_crud
from caseprep.models.user.user_model import User
from caseprep.schemas.user.user_schema import CurrentUserOut

router = APIRouter()


@router.get("/me", response_model=CurrentUserOut, summary="Utilisateur courant")
def read_current_user(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CurrentUserOut:
    return CurrentUserOut(
        id=current_user.id,
        email=current_user.email,
        name=current_user.name,
        credit_balance=credit_crud.get_balance(db, current_user.id),
    )
