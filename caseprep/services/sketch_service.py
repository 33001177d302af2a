# Fichier: caseprep/services/sketch_service.py
"""Short text description of a whiteboard sketch, used inside the feedback prompt."""

from __future__ import annotations

import logging
from typing import Optional

from openai import OpenAI

logger = logging.getLogger(__name__)

SKETCH_UNAVAILABLE = "The sketch could not be analysed."

SKETCH_INSTRUCTIONS = (
    "Describe what this whiteboard sketch shows. Be concise and focus on the essentials. "
    "Answer in {language} and use at most 250 characters."
)


def describe_sketch(
    client: Optional[OpenAI],
    image_url: str,
    *,
    model: str,
    language: str = "English",
    max_tokens: int = 150,
) -> str:
    """Return a description of the image, or a placeholder when the call fails.

    A failed description never blocks the submission it belongs to.
    """

    if client is None:
        logger.warning("Aucun client OpenAI configuré: croquis non analysé.")
        return SKETCH_UNAVAILABLE

    logger.info("Analyse du croquis %s avec %s", image_url, model)
    try:
        response = client.chat.completions.create(
            model=model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": SKETCH_INSTRUCTIONS.format(language=language)},
                        {"type": "image_url", "image_url": {"url": image_url, "detail": "low"}},
                    ],
                }
            ],
            max_tokens=max_tokens,
        )
    except Exception as exc:
        logger.warning("Analyse du croquis impossible: %s", exc, exc_info=True)
        return SKETCH_UNAVAILABLE

    content: Optional[str] = response.choices[0].message.content if response.choices else None
    if not content or not content.strip():
        return SKETCH_UNAVAILABLE
    return content.strip()
