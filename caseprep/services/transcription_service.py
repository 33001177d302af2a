# Fichier: caseprep/services/transcription_service.py
"""Speech to text for spoken candidate answers (OpenAI Whisper)."""

from __future__ import annotations

import logging
from typing import Optional

from openai import OpenAI

from caseprep.core.llm_backends import UpstreamUnavailable

logger = logging.getLogger(__name__)

TRANSCRIPTION_PROMPT = "Transcribe exactly what is said, without adding anything."


def transcribe_audio(
    client: OpenAI,
    audio: bytes,
    *,
    filename: str = "recording.webm",
    model: str = "whisper-1",
    language: Optional[str] = None,
) -> str:
    if not audio:
        raise ValueError("empty audio payload")

    params = {
        "file": (filename, audio),
        "model": model,
        "response_format": "json",
        "prompt": TRANSCRIPTION_PROMPT,
    }
    if language:
        params["language"] = language

    try:
        response = client.audio.transcriptions.create(**params)
    except Exception as exc:
        logger.error("Erreur lors de la transcription audio : %s", exc, exc_info=True)
        raise UpstreamUnavailable(str(exc)) from exc

    text = response if isinstance(response, str) else getattr(response, "text", None)
    if text is None:
        raise UpstreamUnavailable("Réponse de transcription inattendue.")
    return text.strip()
