from __future__ import annotations

import pytest
import requests

from caseprep.core.config import Settings
from caseprep.core.llm_backends import (
    LocalModelBackend,
    OpenAIChatBackend,
    UpstreamUnavailable,
    build_feedback_backend,
)
from caseprep.services.feedback_evaluator import DEFAULT_FALLBACK_TEXT, FeedbackEvaluator
from tests.utils import StubBackend, failing_backend


def test_pass_sentinel_is_detected_and_removed():
    reply = "Great structure, you covered both drivers.\n\nCRITERIA MET: Yes\n\nLet's move on."

    result = FeedbackEvaluator(StubBackend(reply)).evaluate("prompt")

    assert result.passed is True
    assert result.used_fallback is False
    assert "CRITERIA MET" not in result.feedback_text
    assert result.feedback_text == "Great structure, you covered both drivers.\n\nLet's move on."


def test_fail_sentinel_is_removed_and_fails():
    reply = "You did not mention costs.\nCRITERIA MET: No"

    result = FeedbackEvaluator(StubBackend(reply)).evaluate("prompt")

    assert result.passed is False
    assert result.feedback_text == "You did not mention costs."


@pytest.mark.parametrize(
    "verdict_line, passed",
    [
        ("**CRITERIA MET: Yes**", True),
        ("__CRITERIA MET: No__", False),
        ("**CRITERIA MET:** No", False),
    ],
)
def test_markdown_wrapped_sentinel_leaves_no_markup(verdict_line, passed):
    reply = f"Good segmentation of the market.\n\n{verdict_line}\n\nWhat next?"

    result = FeedbackEvaluator(StubBackend(reply)).evaluate("prompt")

    assert result.passed is passed
    assert result.feedback_text == "Good segmentation of the market.\n\nWhat next?"


def test_missing_sentinel_fails_closed_and_keeps_text():
    reply = "  Interesting, tell me more about revenue.  \n"

    result = FeedbackEvaluator(StubBackend(reply)).evaluate("prompt")

    assert result.passed is False
    assert result.used_fallback is False
    assert result.feedback_text == reply


def test_partial_verdict_is_not_a_pass():
    reply = "Some progress.\nCRITERIA MET: Partially"

    result = FeedbackEvaluator(StubBackend(reply)).evaluate("prompt")

    assert result.passed is False
    assert result.feedback_text == reply


def test_backend_failure_returns_fallback():
    backend = failing_backend()

    result = FeedbackEvaluator(backend).evaluate("prompt")

    assert result.passed is False
    assert result.used_fallback is True
    assert result.feedback_text == DEFAULT_FALLBACK_TEXT
    assert backend.prompts == ["prompt"]


def test_empty_reply_returns_fallback():
    result = FeedbackEvaluator(StubBackend("   "), fallback_text="try again").evaluate("prompt")

    assert result.feedback_text == "try again"
    assert result.used_fallback is True


class _FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


class _FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def test_local_backend_posts_generate_request():
    session = _FakeSession(_FakeResponse({"response": "CRITERIA MET: Yes"}))
    backend = LocalModelBackend(
        "http://localhost:11434/",
        model="phi3:latest",
        temperature=0.7,
        max_tokens=1000,
        timeout=12,
        session=session,
    )

    assert backend.complete("hello") == "CRITERIA MET: Yes"
    call = session.calls[0]
    assert call["url"] == "http://localhost:11434/api/generate"
    assert call["timeout"] == 12
    assert call["json"] == {
        "model": "phi3:latest",
        "prompt": "hello",
        "stream": False,
        "options": {"temperature": 0.7, "num_predict": 1000},
    }


@pytest.mark.parametrize(
    "session",
    [
        _FakeSession(error=requests.ConnectionError("refused")),
        _FakeSession(_FakeResponse({}, status_code=500)),
        _FakeSession(_FakeResponse({"response": ""})),
    ],
)
def test_local_backend_failures_raise_upstream_unavailable(session):
    backend = LocalModelBackend("http://localhost:11434", model="phi3:latest", session=session)

    with pytest.raises(UpstreamUnavailable):
        backend.complete("hello")


class _FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.params = None

    def create(self, **params):
        self.params = params
        if self.error is not None:
            raise self.error
        message = type("Message", (), {"content": self.content})()
        choice = type("Choice", (), {"message": message})()
        return type("Completion", (), {"choices": [choice]})()


class _FakeOpenAI:
    def __init__(self, completions):
        self.chat = type("Chat", (), {"completions": completions})()


def test_openai_backend_sends_single_user_message():
    completions = _FakeCompletions(content="Well done.\nCRITERIA MET: Yes")
    backend = OpenAIChatBackend(_FakeOpenAI(completions), model="gpt-4o", temperature=0.7, max_tokens=1000)

    assert backend.complete("the prompt").endswith("CRITERIA MET: Yes")
    assert completions.params == {
        "model": "gpt-4o",
        "messages": [{"role": "user", "content": "the prompt"}],
        "temperature": 0.7,
        "max_tokens": 1000,
    }


def test_openai_backend_wraps_errors():
    backend = OpenAIChatBackend(_FakeOpenAI(_FakeCompletions(error=RuntimeError("timeout"))), model="gpt-4o")

    with pytest.raises(UpstreamUnavailable):
        backend.complete("the prompt")


def _settings(**overrides) -> Settings:
    values = {"DATABASE_URL": "sqlite+aiosqlite:///:memory:", "SECRET_KEY": "s", "OPENAI_API_KEY": "sk-test"}
    values.update(overrides)
    return Settings(**values)


def test_backend_selection_is_made_from_settings():
    local = build_feedback_backend(_settings(USE_LOCAL_MODEL=True, LOCAL_LLM_MODEL="llama3"))
    hosted = build_feedback_backend(_settings(USE_LOCAL_MODEL=False, OPENAI_FEEDBACK_MODEL="gpt-4o-mini"))

    assert isinstance(local, LocalModelBackend)
    assert local.model == "llama3"
    assert isinstance(hosted, OpenAIChatBackend)
    assert hosted.model == "gpt-4o-mini"
