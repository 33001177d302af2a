# Fichier: caseprep/services/case_feedback_service.py
"""Submission pipeline for one candidate answer.

validate -> catalog -> sketch description -> prompt -> evaluation -> persistence.
The response row and the progress update are committed together; nothing is
reported to the client as a success unless that commit went through.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from caseprep.crud import case_crud, progress_crud, response_crud
from caseprep.crud.progress_crud import ProgressNotFound, ProgressSnapshot
from caseprep.schemas.feedback.case_feedback_schema import CaseFeedbackRequest
from caseprep.services import prompt_builder
from caseprep.services.feedback_evaluator import FeedbackEvaluator

logger = logging.getLogger(__name__)

# (image_url, language name) -> description
SketchDescriber = Callable[[str, str], str]


class MissingRequiredFields(Exception):
    pass


class PersistenceFailure(Exception):
    pass


@dataclass(frozen=True)
class SubmissionOutcome:
    feedback: str
    is_complete: bool
    progress: ProgressSnapshot
    used_fallback: bool = False


def submit_case_feedback(
    db: Session,
    user_id: str,
    submission: CaseFeedbackRequest,
    evaluator: FeedbackEvaluator,
    *,
    describe_sketch: Optional[SketchDescriber] = None,
) -> SubmissionOutcome:
    if not submission.response_text or not submission.response_text.strip():
        raise MissingRequiredFields("response_text")

    business_case, sections = case_crud.get_case(db, submission.case_id)
    section = case_crud.get_section(db, submission.case_id, submission.section_id)
    position = case_crud.section_position(sections, section.id)

    # Checked before the model call: an unstarted case never costs an evaluation.
    if progress_crud.get_progress(db, user_id, submission.case_id) is None:
        raise ProgressNotFound(user_id, submission.case_id)

    sketch_description = None
    if submission.sketch_image_url and describe_sketch is not None:
        sketch_description = describe_sketch(
            submission.sketch_image_url,
            prompt_builder.language_name(business_case.language),
        )

    prompt = prompt_builder.build_prompt(
        business_case,
        section,
        submission.conversation_history,
        submission.response_text,
        sketch_description=sketch_description,
    )
    result = evaluator.evaluate(prompt)
    logger.info(
        "Évaluation section %s (case %s, user %s): passed=%s fallback=%s",
        section.id,
        business_case.id,
        user_id,
        result.passed,
        result.used_fallback,
    )

    try:
        response_crud.record_response(
            db,
            user_id=user_id,
            case_id=business_case.id,
            section_id=section.id,
            response_text=submission.response_text,
            feedback=result.feedback_text,
            passed=result.passed,
            conversation_history=[turn.model_dump(mode="json") for turn in submission.conversation_history],
            sketch_image_url=submission.sketch_image_url,
            sketch_description=sketch_description,
        )

        if result.passed:
            snapshot = progress_crud.record_section_completion(
                db,
                user_id,
                business_case.id,
                section_position=position,
                commit=False,
            )
        else:
            progress_crud.touch_activity(db, user_id, business_case.id)
            snapshot = ProgressSnapshot.from_row(progress_crud.get_progress(db, user_id, business_case.id))

        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Échec de l'enregistrement de la réponse: %s", exc, exc_info=True)
        raise PersistenceFailure(str(exc)) from exc

    return SubmissionOutcome(
        feedback=result.feedback_text,
        is_complete=result.passed,
        progress=snapshot,
        used_fallback=result.used_fallback,
    )
