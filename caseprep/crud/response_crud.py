"""Append-only storage of case submissions."""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from caseprep.models.progress.user_response_model import UserResponse


def record_response(
    db: Session,
    *,
    user_id: str,
    case_id: int,
    section_id: int,
    response_text: str,
    feedback: str,
    passed: bool,
    conversation_history: list[dict[str, Any]],
    sketch_image_url: str | None = None,
    sketch_description: str | None = None,
) -> UserResponse:
    """Stage a new response row; the caller owns the commit."""

    response = UserResponse(
        user_id=user_id,
        case_id=case_id,
        section_id=section_id,
        response_text=response_text,
        feedback=feedback,
        passed=passed,
        conversation_history=conversation_history,
        sketch_image_url=sketch_image_url,
        sketch_description=sketch_description,
    )
    db.add(response)
    db.flush([response])
    return response

