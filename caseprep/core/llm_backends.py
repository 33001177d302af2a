# Fichier: caseprep/core/llm_backends.py
"""Interchangeable text-in/text-out language model backends.

The backend is chosen once, when the application builds its evaluator, from
``settings.USE_LOCAL_MODEL``. Callers only ever see :class:`FeedbackBackend`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import requests
from openai import OpenAI

from caseprep.core.config import Settings

logger = logging.getLogger(__name__)


class UpstreamUnavailable(Exception):
    """An external AI provider failed, timed out or returned nothing usable."""


class FeedbackBackend(Protocol):
    name: str

    def complete(self, prompt: str) -> str:
        ...


class OpenAIChatBackend:
    """Hosted model reached through the OpenAI chat completions API."""

    name = "openai"

    def __init__(
        self,
        client: OpenAI,
        *,
        model: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    def complete(self, prompt: str) -> str:
        params: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if self.temperature is not None:
            params["temperature"] = self.temperature
        if self.max_tokens is not None:
            params["max_tokens"] = self.max_tokens

        logger.info("Appel à l'API OpenAI avec le modèle %s", self.model)
        try:
            response = self.client.chat.completions.create(**params)
        except Exception as exc:
            logger.error("Une erreur API est survenue avec OpenAI : %s", exc)
            raise UpstreamUnavailable(str(exc)) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise UpstreamUnavailable("OpenAI a renvoyé une réponse vide.")
        return content


class LocalModelBackend:
    """Self-hosted model served by Ollama (``POST /api/generate``)."""

    name = "local"

    def __init__(
        self,
        base_url: str,
        *,
        model: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.session = session or requests.Session()

    def complete(self, prompt: str) -> str:
        payload: Dict[str, Any] = {"model": self.model, "prompt": prompt, "stream": False}
        options: Dict[str, Any] = {}
        if self.temperature is not None:
            options["temperature"] = self.temperature
        if self.max_tokens is not None:
            options["num_predict"] = self.max_tokens
        if options:
            payload["options"] = options

        full_url = f"{self.base_url}/api/generate"
        logger.info("Appel au LLM local %s (%s)", self.model, full_url)
        try:
            response = self.session.post(full_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Erreur lors de l'appel au LLM local : %s", exc)
            raise UpstreamUnavailable(str(exc)) from exc

        content = data.get("response") if isinstance(data, dict) else None
        if not content or not content.strip():
            raise UpstreamUnavailable("Le LLM local a renvoyé une réponse vide.")
        return content


def build_openai_client(settings: Settings) -> OpenAI:
    return OpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.OPENAI_TIMEOUT_SECONDS, max_retries=0)


def build_feedback_backend(settings: Settings, *, openai_client: Optional[OpenAI] = None) -> FeedbackBackend:
    """Return the backend selected by ``USE_LOCAL_MODEL``."""

    if settings.USE_LOCAL_MODEL:
        logger.info("Backend de feedback: LLM local (%s)", settings.LOCAL_LLM_MODEL)
        return LocalModelBackend(
            settings.LOCAL_LLM_URL,
            model=settings.LOCAL_LLM_MODEL,
            temperature=settings.LLM_TEMPERATURE,
            max_tokens=settings.LLM_MAX_TOKENS,
            timeout=settings.LLM_TIMEOUT_SECONDS,
        )

    client = openai_client or OpenAI(
        api_key=settings.OPENAI_API_KEY,
        timeout=settings.LLM_TIMEOUT_SECONDS,
        max_retries=0,
    )
    logger.info("Backend de feedback: OpenAI (%s)", settings.OPENAI_FEEDBACK_MODEL)
    return OpenAIChatBackend(
        client,
        model=settings.OPENAI_FEEDBACK_MODEL,
        temperature=settings.LLM_TEMPERATURE,
        max_tokens=settings.LLM_MAX_TOKENS,
    )
