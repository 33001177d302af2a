# Fichier: caseprep/services/case_start_service.py
"""Starting (or restarting) a case: bootstrap, one-credit debit, progress reset."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from caseprep.crud import case_crud, credit_crud, progress_crud
from caseprep.models.progress.user_case_progress_model import UserCaseProgress

logger = logging.getLogger(__name__)


@dataclass
class CaseStartResult:
    progress: UserCaseProgress
    balance: int
    first_section_id: Optional[int]
    bootstrapped: bool


def start_case_for_user(
    db: Session,
    user_id: str,
    case_id: int,
    *,
    signup_bonus: int,
    cost: int,
) -> CaseStartResult:
    """Charge ``cost`` credits and reset the user's progress on the case.

    The debit and the progress reset share one commit: a refused debit leaves
    progress untouched. The signup bonus is granted first when the user has
    never been bootstrapped.

    Raises:
        CaseNotFound: unknown case.
        InsufficientCredits: balance below ``cost``.
    """

    business_case, sections = case_crud.get_case(db, case_id)
    _, bootstrapped = progress_crud.ensure_bootstrap(db, user_id, bonus=signup_bonus)

    try:
        credit_crud.debit_credits(
            db,
            user_id,
            cost,
            f"Case started: {business_case.title}",
            {"case_id": business_case.id},
            commit=False,
        )
        progress = progress_crud.start_case(db, user_id, business_case.id, len(sections), commit=False)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(progress)
    balance = credit_crud.get_balance(db, user_id)
    logger.info("Case %s démarré par %s, solde restant %s", case_id, user_id, balance)
    return CaseStartResult(
        progress=progress,
        balance=balance,
        first_section_id=sections[0].id if sections else None,
        bootstrapped=bootstrapped,
    )
