from __future__ import annotations

import pytest
from fastapi import HTTPException

from caseprep.api.v1.endpoints.credit_router import grant_test_credits, read_balance, read_transactions
from caseprep.api.v1.endpoints.user_router import read_current_user
from caseprep.core.config import settings
from caseprep.schemas.credits.credit_schema import CreditGrantIn
from tests.utils import create_user


@pytest.fixture()
def user(db_session):
    return create_user(db_session)


def test_test_grant_outside_production(db_session, user):
    result = grant_test_credits(CreditGrantIn(amount=5), db=db_session, current_user=user)

    assert result.balance == 5
    assert read_balance(db=db_session, current_user=user).balance == 5
    assert read_current_user(db=db_session, current_user=user).credit_balance == 5


def test_test_grant_is_hidden_in_production(db_session, user, monkeypatch):
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")

    with pytest.raises(HTTPException) as exc:
        grant_test_credits(CreditGrantIn(amount=5), db=db_session, current_user=user)

    assert exc.value.status_code == 404
    assert read_balance(db=db_session, current_user=user).balance == 0


def test_transactions_expose_metadata(db_session, user):
    grant_test_credits(CreditGrantIn(amount=2), db=db_session, current_user=user)

    result = read_transactions(limit=10, db=db_session, current_user=user)

    assert result.balance == 2
    assert result.transactions[0].transaction_type.value == "test"
    assert result.transactions[0].metadata == {"source": "test_grant"}
