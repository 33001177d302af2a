# Fichier: caseprep/api/v1/dependencies.py

import logging
import re
from functools import lru_cache
from typing import Generator, Optional
from urllib.parse import unquote

from fastapi import Depends, HTTPException, Request, status
from openai import OpenAI, OpenAIError
from sqlalchemy.orm import Session

from caseprep.core import security
from caseprep.core.config import settings
from caseprep.core.llm_backends import build_feedback_backend, build_openai_client
from caseprep.crud import user_crud
from caseprep.db import session as db_session
from caseprep.models.user.user_model import User
from caseprep.services.feedback_evaluator import FeedbackEvaluator

log = logging.getLogger(__name__)


def get_db() -> Generator[Session, None, None]:
    db = db_session.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _normalize_token_value(raw_token: str | None) -> str | None:
    """Return a clean JWT from a header or cookie value.

    Browsers can percent-encode cookie values (``Bearer%20…``) and some
    frontends send quoted strings; ``Bearer`` prefixes are case-insensitive.
    """

    if raw_token is None:
        return None

    token = unquote(raw_token.strip().strip('"').strip("'"))
    if not token:
        return None

    match = re.match(r"^(bearer|token)[\s,:]+(.+)$", token, flags=re.IGNORECASE)
    if match:
        token = match.group(2)

    token = token.strip()
    return token or None


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    unauthorized = HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="not_authenticated")

    token_sources = (
        request.headers.get("Authorization"),
        request.cookies.get("access_token"),
    )

    identity = None
    for candidate in token_sources:
        token = _normalize_token_value(candidate)
        if not token:
            continue
        try:
            identity = security.decode_identity(token)
            break
        except security.TokenExpired:
            log.warning("Validation échouée: Le token a expiré.")
        except security.InvalidToken as exc:
            log.warning("Validation échouée: token invalide (%s).", exc)

    if identity is None:
        raise unauthorized

    return user_crud.sync_user_from_identity(
        db, user_id=identity.user_id, email=identity.email, name=identity.name
    )


@lru_cache(maxsize=1)
def get_openai_client() -> Optional[OpenAI]:
    """Client partagé pour la vision et la transcription; ``None`` sans clé API."""
    if not settings.OPENAI_API_KEY:
        log.warning("OPENAI_API_KEY absente: vision et transcription désactivées.")
        return None
    try:
        return build_openai_client(settings)
    except OpenAIError as exc:
        log.error("Client OpenAI indisponible: %s", exc)
        return None


@lru_cache(maxsize=1)
def get_feedback_evaluator() -> FeedbackEvaluator:
    """Built once per process: the backend choice is fixed at startup."""
    return FeedbackEvaluator(build_feedback_backend(settings))


def get_sketch_describer():
    """Vision call used to describe whiteboard sketches attached to a submission."""
    from caseprep.services.sketch_service import describe_sketch

    # Client construit au premier croquis seulement.
    def _describe(image_url: str, language: str) -> str:
        return describe_sketch(get_openai_client(), image_url, model=settings.OPENAI_VISION_MODEL, language=language)

    return _describe
