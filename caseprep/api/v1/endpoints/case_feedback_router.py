# Fichier: caseprep/api/v1/endpoints/case_feedback_router.py
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from caseprep.api.v1.dependencies import (
    get_current_user,
    get_db,
    get_feedback_evaluator,
    get_sketch_describer,
)
from caseprep.crud.case_crud import CaseNotFound, SectionNotFound
from caseprep.crud.progress_crud import ProgressNotFound
from caseprep.models.user.user_model import User
from caseprep.schemas.feedback.case_feedback_schema import (
    CaseFeedbackRequest,
    CaseFeedbackResponse,
    ProgressOut,
)
from caseprep.services.case_feedback_service import (
    MissingRequiredFields,
    PersistenceFailure,
    SketchDescriber,
    submit_case_feedback,
)
from caseprep.services.feedback_evaluator import FeedbackEvaluator

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=CaseFeedbackResponse, summary="Soumettre une réponse de section")
def post_case_feedback(
    payload: CaseFeedbackRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    evaluator: FeedbackEvaluator = Depends(get_feedback_evaluator),
    describe_sketch: SketchDescriber = Depends(get_sketch_describer),
) -> CaseFeedbackResponse:
    """Évalue la réponse du candidat et fait avancer la progression si les critères sont remplis."""
    try:
        outcome = submit_case_feedback(
            db,
            current_user.id,
            payload,
            evaluator,
            describe_sketch=describe_sketch,
        )
    except MissingRequiredFields:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="missing_required_fields")
    except CaseNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="case_not_found")
    except SectionNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="section_not_found")
    except ProgressNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="progress_not_found")
    except PersistenceFailure:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="persistence_failed")

    return CaseFeedbackResponse(
        feedback=outcome.feedback,
        is_complete=outcome.is_complete,
        progress=ProgressOut(
            completed_sections=outcome.progress.completed_sections,
            total_sections=outcome.progress.total_sections,
            is_completed=outcome.progress.is_completed,
        ),
    )
