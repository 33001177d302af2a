# Fichier: caseprep/services/feedback_evaluator.py
"""Turn a model completion into ``(feedback_text, passed)``.

One backend call per evaluation, no retry. Any upstream failure degrades to a
fixed fallback text with ``passed=False``; the evaluator never raises for an
upstream problem.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from caseprep.core.llm_backends import FeedbackBackend
from caseprep.services.prompt_builder import FAIL_TOKEN, PASS_LINE, PASS_TOKEN, SENTINEL_LABEL

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_TEXT = (
    "We could not generate feedback for this answer right now. "
    "Please try again in a moment."
)

# Le modèle met parfois le verdict en gras ou en italique Markdown.
_MARKUP = r"[*_]*"
_SENTINEL_LINE_RE = re.compile(
    rf"^[ \t]*{_MARKUP}{re.escape(SENTINEL_LABEL)}:[ \t]*{_MARKUP}[ \t]*(?:{PASS_TOKEN}|{FAIL_TOKEN})[ \t]*{_MARKUP}[ \t]*$",
    re.MULTILINE,
)
_SENTINEL_RE = re.compile(
    rf"{_MARKUP}{re.escape(SENTINEL_LABEL)}:[ \t]*{_MARKUP}[ \t]*(?:{PASS_TOKEN}|{FAIL_TOKEN})(?![A-Za-z0-9]){_MARKUP}"
)
_BLANK_RUN_RE = re.compile(r"\n[ \t]*(?:\n[ \t]*)+\n")


@dataclass(frozen=True)
class EvaluationResult:
    feedback_text: str
    passed: bool
    used_fallback: bool = False


def has_sentinel(raw_text: str) -> bool:
    return _SENTINEL_RE.search(raw_text) is not None


def strip_sentinels(raw_text: str) -> str:
    """Remove sentinel lines, then any inline sentinel left, and tidy blank lines."""

    text = _SENTINEL_LINE_RE.sub("", raw_text)
    text = _SENTINEL_RE.sub("", text)
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()


def parse_verdict(raw_text: str) -> EvaluationResult:
    passed = PASS_LINE in raw_text
    if not has_sentinel(raw_text):
        logger.warning("Réponse du modèle sans ligne de verdict: évaluation considérée comme échouée.")
        return EvaluationResult(feedback_text=raw_text, passed=False)
    return EvaluationResult(feedback_text=strip_sentinels(raw_text), passed=passed)


class FeedbackEvaluator:
    def __init__(self, backend: FeedbackBackend, *, fallback_text: str = DEFAULT_FALLBACK_TEXT):
        self.backend = backend
        self.fallback_text = fallback_text

    def evaluate(self, prompt: str) -> EvaluationResult:
        try:
            raw_text = self.backend.complete(prompt)
        except Exception as exc:
            logger.error(
                "Échec de l'évaluation via le backend %s : %s",
                getattr(self.backend, "name", type(self.backend).__name__),
                exc,
                exc_info=True,
            )
            return EvaluationResult(feedback_text=self.fallback_text, passed=False, used_fallback=True)

        if not raw_text or not raw_text.strip():
            logger.warning("Le backend a renvoyé une réponse vide, utilisation du texte de secours.")
            return EvaluationResult(feedback_text=self.fallback_text, passed=False, used_fallback=True)

        return parse_verdict(raw_text)
