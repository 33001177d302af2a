"""Persistence helpers for per-case progress and the signup bootstrap marker."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from caseprep.crud import credit_crud
from caseprep.models.credits.credit_model import CreditTransactionType
from caseprep.models.progress.user_case_progress_model import UserCaseProgress

logger = logging.getLogger(__name__)


class ProgressNotFound(Exception):
    """Raised when no progress row exists for (user, case): the case was never started."""

    def __init__(self, user_id: str, case_id: int):
        super().__init__(f"No progress for user {user_id} on case {case_id}")
        self.user_id = user_id
        self.case_id = case_id


@dataclass(frozen=True)
class ProgressSnapshot:
    completed_sections: int
    total_sections: int
    is_completed: bool

    @classmethod
    def from_row(cls, row: UserCaseProgress) -> "ProgressSnapshot":
        return cls(
            completed_sections=row.completed_sections,
            total_sections=row.total_sections,
            is_completed=row.is_completed,
        )


def _now(override: datetime | None = None) -> datetime:
    return override or datetime.now(timezone.utc)


def get_progress(db: Session, user_id: str, case_id: int) -> UserCaseProgress | None:
    return db.scalar(
        select(UserCaseProgress)
        .where(UserCaseProgress.user_id == user_id, UserCaseProgress.case_id == case_id)
        .execution_options(populate_existing=True)
    )


def get_bootstrap_row(db: Session, user_id: str) -> UserCaseProgress | None:
    return db.scalar(
        select(UserCaseProgress).where(
            UserCaseProgress.user_id == user_id,
            UserCaseProgress.case_id.is_(None),
        )
    )


def list_progress(db: Session, user_id: str) -> list[UserCaseProgress]:
    """Toutes les progressions réelles (hors ligne marqueur), activité la plus récente d'abord."""
    return list(
        db.scalars(
            select(UserCaseProgress)
            .where(UserCaseProgress.user_id == user_id, UserCaseProgress.case_id.is_not(None))
            .order_by(UserCaseProgress.last_activity.desc())
        )
    )


def start_case(
    db: Session,
    user_id: str,
    case_id: int,
    total_sections: int,
    *,
    now: datetime | None = None,
    commit: bool = True,
) -> UserCaseProgress:
    """Create or reset the progress row keyed by (user_id, case_id).

    Safe to retry: a second call simply resets the same row.
    """

    if total_sections < 0:
        raise ValueError("total_sections must be >= 0")

    current_time = _now(now)
    row = get_progress(db, user_id, case_id)
    if row is None:
        row = UserCaseProgress(user_id=user_id, case_id=case_id)
        try:
            with db.begin_nested():
                db.add(row)
                _reset(row, total_sections, current_time)
                db.flush([row])
        except IntegrityError:
            logger.info("Progression créée en parallèle pour (%s, %s), réinitialisation.", user_id, case_id)
            row = get_progress(db, user_id, case_id)
            _reset(row, total_sections, current_time)
    else:
        _reset(row, total_sections, current_time)

    db.flush([row])
    if commit:
        db.commit()
        db.refresh(row)

    logger.info("Case %s démarré pour l'utilisateur %s (%s sections)", case_id, user_id, total_sections)
    return row


def _reset(row: UserCaseProgress, total_sections: int, current_time: datetime) -> None:
    row.completed_sections = 0
    row.total_sections = total_sections
    row.is_completed = False
    row.last_activity = current_time


def touch_activity(db: Session, user_id: str, case_id: int, *, now: datetime | None = None) -> None:
    db.execute(
        update(UserCaseProgress)
        .where(UserCaseProgress.user_id == user_id, UserCaseProgress.case_id == case_id)
        .values(last_activity=_now(now))
        .execution_options(synchronize_session=False)
    )


def record_section_completion(
    db: Session,
    user_id: str,
    case_id: int,
    *,
    section_position: int | None = None,
    now: datetime | None = None,
    commit: bool = True,
) -> ProgressSnapshot:
    """Increment ``completed_sections`` by exactly one.

    The increment is a single conditional ``UPDATE`` guarded by
    ``completed_sections < total_sections``. With ``section_position`` (0-based
    index of the passed section) the guard also requires
    ``completed_sections == section_position``: a section passed twice, or
    out of order, is counted at most once.
    """

    current_time = _now(now)
    next_value = UserCaseProgress.completed_sections + 1

    conditions = [
        UserCaseProgress.user_id == user_id,
        UserCaseProgress.case_id == case_id,
        UserCaseProgress.completed_sections < UserCaseProgress.total_sections,
    ]
    if section_position is not None:
        conditions.append(UserCaseProgress.completed_sections == section_position)

    result = db.execute(
        update(UserCaseProgress)
        .where(*conditions)
        .values(
            completed_sections=next_value,
            is_completed=case((next_value == UserCaseProgress.total_sections, True), else_=False),
            last_activity=current_time,
        )
        .execution_options(synchronize_session=False)
    )

    row = get_progress(db, user_id, case_id)
    if row is None:
        raise ProgressNotFound(user_id, case_id)

    if result.rowcount != 1:
        logger.info(
            "Section %s ignorée pour (%s, %s): progression déjà à %s/%s",
            section_position,
            user_id,
            case_id,
            row.completed_sections,
            row.total_sections,
        )
        row.last_activity = current_time
        db.flush([row])

    snapshot = ProgressSnapshot.from_row(row)
    if commit:
        db.commit()
    return snapshot


def ensure_bootstrap(db: Session, user_id: str, *, bonus: int) -> tuple[UserCaseProgress, bool]:
    """Create the ``case_id=NULL`` marker and grant the signup bonus exactly once.

    Returns the marker row and whether it was created by this call. The
    marker insert and the promotion transaction share one database
    transaction; a concurrent call loses on the partial unique index and gets
    the existing row back without a second bonus.
    """

    existing = get_bootstrap_row(db, user_id)
    if existing is not None:
        return existing, False

    marker = UserCaseProgress(
        user_id=user_id,
        case_id=None,
        completed_sections=0,
        total_sections=0,
        is_completed=False,
        last_activity=_now(),
    )
    try:
        with db.begin_nested():
            db.add(marker)
            db.flush([marker])
    except IntegrityError:
        logger.info("Bootstrap déjà effectué en parallèle pour l'utilisateur %s", user_id)
        existing = get_bootstrap_row(db, user_id)
        if existing is None:
            raise
        return existing, False

    try:
        if bonus > 0:
            credit_crud.add_credits(
                db,
                user_id,
                bonus,
                CreditTransactionType.PROMOTION,
                f"Welcome bonus - {bonus} free credits",
                {"source": "initial_signup"},
                commit=False,
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(marker)
    logger.info("Bootstrap créé pour l'utilisateur %s (bonus=%s)", user_id, bonus)
    return marker, True
