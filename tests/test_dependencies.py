from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi import HTTPException
from jose import jwt
from starlette.requests import Request

from caseprep.api.v1 import dependencies
from caseprep.api.v1.dependencies import _normalize_token_value, get_current_user
from caseprep.core.config import settings
from caseprep.core.security import create_access_token
from caseprep.models.user.user_model import User
from caseprep.services.sketch_service import SKETCH_UNAVAILABLE


def _request(authorization: str | None = None, cookie: str | None = None) -> Request:
    headers = []
    if authorization is not None:
        headers.append((b"authorization", authorization.encode()))
    if cookie is not None:
        headers.append((b"cookie", f"access_token={cookie}".encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "query_string": b"", "headers": headers})


def _token(**kwargs) -> str:
    return create_access_token("oauth|42", email=kwargs.pop("email", "ada@example.com"), **kwargs)


def test_bearer_header_creates_local_user(db_session):
    user = get_current_user(_request(authorization=f"Bearer {_token(name='Ada')}"), db=db_session)

    assert user.id == "oauth|42"
    assert user.email == "ada@example.com"
    assert user.name == "Ada"
    assert db_session.query(User).count() == 1


def test_cookie_token_is_accepted_and_profile_synced(db_session):
    get_current_user(_request(authorization=f"Bearer {_token(name='Ada')}"), db=db_session)

    user = get_current_user(_request(cookie=_token(email="ada@new.example.com", name="Ada L.")), db=db_session)

    assert user.email == "ada@new.example.com"
    assert user.name == "Ada L."
    assert db_session.query(User).count() == 1


@pytest.mark.parametrize(
    "authorization",
    [
        None,
        "Bearer not-a-jwt",
        "Bearer " + jwt.encode({"sub": "oauth|42", "email": "a@b.c"}, "wrong-key", algorithm="HS256"),
        "Bearer " + jwt.encode({"sub": "oauth|42"}, "secret-key", algorithm="HS256"),
    ],
)
def test_invalid_credentials_are_unauthorized(db_session, authorization):
    with pytest.raises(HTTPException) as exc:
        get_current_user(_request(authorization=authorization), db=db_session)

    assert exc.value.status_code == 401
    assert exc.value.detail == "not_authenticated"
    assert db_session.query(User).count() == 0


def test_expired_token_is_unauthorized(db_session):
    expired = _token(expires_delta=timedelta(minutes=-5))

    with pytest.raises(HTTPException) as exc:
        get_current_user(_request(authorization=f"Bearer {expired}"), db=db_session)

    assert exc.value.status_code == 401


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("bearer%20abc.def.ghi", "abc.def.ghi"),
        ('"abc.def.ghi"', "abc.def.ghi"),
        ("   ", None),
        (None, None),
    ],
)
def test_normalize_token_value(raw, expected):
    assert _normalize_token_value(raw) == expected


@pytest.fixture()
def local_model_without_openai_key(monkeypatch):
    monkeypatch.setattr(settings, "USE_LOCAL_MODEL", True)
    monkeypatch.setattr(settings, "OPENAI_API_KEY", None)
    dependencies.get_openai_client.cache_clear()
    dependencies.get_feedback_evaluator.cache_clear()
    yield
    dependencies.get_openai_client.cache_clear()
    dependencies.get_feedback_evaluator.cache_clear()


def test_local_model_runs_without_openai_key(local_model_without_openai_key):
    evaluator = dependencies.get_feedback_evaluator()
    describe = dependencies.get_sketch_describer()

    assert evaluator.backend.name == "local"
    assert dependencies.get_openai_client() is None
    assert describe("https://img.test/a.png", "English") == SKETCH_UNAVAILABLE
