from __future__ import annotations

import pytest
import stripe
from fastapi import HTTPException

from caseprep.api.v1.endpoints.stripe_router import (
    create_checkout_session,
    payment_success,
    stripe_webhook,
)
from caseprep.crud import credit_crud
from caseprep.models.credits.credit_model import CreditTransaction, CreditTransactionType
from caseprep.schemas.credits.credit_schema import CheckoutSessionIn
from caseprep.services import checkout_service
from caseprep.services.checkout_service import WebhookIntegrityError, WebhookPayloadError
from tests.utils import create_user


@pytest.fixture()
def user(db_session):
    return create_user(db_session)


def _completed_event(session_id="cs_test_1", user_id="user-1", credit_amount="5", payment_status="paid"):
    metadata = {}
    if user_id is not None:
        metadata["user_id"] = user_id
    if credit_amount is not None:
        metadata["credit_amount"] = credit_amount
    return {
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "payment_status": payment_status,
                "metadata": metadata,
                "amount_total": 4900,
            }
        },
    }


@pytest.fixture()
def deliver(monkeypatch):
    """Remplace la vérification Stripe par l'événement fourni."""

    def _deliver(event):
        monkeypatch.setattr(stripe.Webhook, "construct_event", lambda payload, sig, secret: event)

    return _deliver


def test_invalid_signature_is_rejected(db_session, user, monkeypatch):
    def _raise(payload, sig, secret):
        raise stripe.SignatureVerificationError("No signatures found", sig)

    monkeypatch.setattr(stripe.Webhook, "construct_event", _raise)

    with pytest.raises(WebhookIntegrityError):
        checkout_service.handle_webhook(db_session, b"{}", "t=1,v1=bad")

    assert credit_crud.get_balance(db_session, user.id) == 0
    assert db_session.query(CreditTransaction).count() == 0


def test_webhook_without_configured_secret_is_rejected(db_session, user, deliver, monkeypatch):
    deliver(_completed_event())
    monkeypatch.setattr(checkout_service.settings, "STRIPE_WEBHOOK_SECRET", None)

    with pytest.raises(WebhookIntegrityError):
        checkout_service.handle_webhook(db_session, b"{}", "t=1,v1=sig")

    assert credit_crud.get_balance(db_session, user.id) == 0


def test_completed_checkout_credits_purchase(db_session, user, deliver):
    deliver(_completed_event())

    result = checkout_service.handle_webhook(db_session, b"{}", "sig")

    assert result == {"status": "credited"}
    assert credit_crud.get_balance(db_session, user.id) == 5
    transaction = db_session.query(CreditTransaction).one()
    assert transaction.transaction_type == CreditTransactionType.PURCHASE
    assert transaction.external_reference == "cs_test_1"


def test_replayed_event_credits_once(db_session, user, deliver):
    deliver(_completed_event())

    first = checkout_service.handle_webhook(db_session, b"{}", "sig")
    second = checkout_service.handle_webhook(db_session, b"{}", "sig")

    assert first == {"status": "credited"}
    assert second == {"status": "duplicate"}
    assert credit_crud.get_balance(db_session, user.id) == 5
    assert db_session.query(CreditTransaction).count() == 1


@pytest.mark.parametrize(
    "event",
    [
        _completed_event(user_id=None),
        _completed_event(credit_amount=None),
        _completed_event(credit_amount="zero"),
        _completed_event(user_id="ghost"),
    ],
)
def test_missing_metadata_is_rejected(db_session, user, deliver, event):
    deliver(event)

    with pytest.raises(WebhookPayloadError):
        checkout_service.handle_webhook(db_session, b"{}", "sig")

    assert credit_crud.get_balance(db_session, user.id) == 0


def test_unpaid_or_other_events_are_ignored(db_session, user, deliver):
    deliver(_completed_event(payment_status="unpaid"))
    assert checkout_service.handle_webhook(db_session, b"{}", "sig") == {"status": "ignored"}

    deliver({"type": "customer.created", "data": {"object": {}}})
    assert checkout_service.handle_webhook(db_session, b"{}", "sig") == {"status": "ignored"}

    assert credit_crud.get_balance(db_session, user.id) == 0


class _FakeRequest:
    def __init__(self, body: bytes, headers: dict[str, str]):
        self._body = body
        self.headers = headers

    async def body(self) -> bytes:
        return self._body


@pytest.mark.asyncio
async def test_webhook_route_maps_bad_signature_to_400(db_session, monkeypatch):
    def _raise(payload, sig, secret):
        raise stripe.SignatureVerificationError("bad", sig)

    monkeypatch.setattr(stripe.Webhook, "construct_event", _raise)

    with pytest.raises(HTTPException) as exc:
        await stripe_webhook(_FakeRequest(b"{}", {"stripe-signature": "bad"}), db=db_session)

    assert exc.value.status_code == 400
    assert exc.value.detail == "invalid_signature"


@pytest.mark.asyncio
async def test_webhook_route_passes_raw_body_and_signature(db_session, user, monkeypatch):
    received = {}

    def _construct(payload, sig, secret):
        received.update(payload=payload, sig=sig, secret=secret)
        return _completed_event(session_id="cs_route")

    monkeypatch.setattr(stripe.Webhook, "construct_event", _construct)

    result = await stripe_webhook(_FakeRequest(b'{"id": "evt"}', {"stripe-signature": "t=1,v1=abc"}), db=db_session)

    assert result == {"status": "credited"}
    assert received == {"payload": b'{"id": "evt"}', "sig": "t=1,v1=abc", "secret": "whsec_test"}


def test_checkout_session_carries_user_metadata(user, monkeypatch):
    captured = {}

    def _create(**params):
        captured.update(params)
        return {"id": "cs_new", "url": "https://checkout.stripe.test/cs_new"}

    monkeypatch.setattr(stripe.checkout.Session, "create", _create)

    result = create_checkout_session(CheckoutSessionIn(price_id="price_five", credit_amount=5), current_user=user)

    assert result.url == "https://checkout.stripe.test/cs_new"
    assert captured["mode"] == "payment"
    assert captured["metadata"] == {"user_id": "user-1", "credit_amount": "5"}
    assert captured["client_reference_id"] == "user-1"
    assert captured["line_items"] == [{"price": "price_five", "quantity": 1}]


def test_checkout_rejects_mismatched_package(user, monkeypatch):
    monkeypatch.setattr(stripe.checkout.Session, "create", lambda **params: pytest.fail("Stripe must not be called"))

    with pytest.raises(HTTPException) as exc:
        create_checkout_session(CheckoutSessionIn(price_id="price_ten", credit_amount=5), current_user=user)

    assert exc.value.status_code == 400
    assert exc.value.detail == "invalid_credit_package"


def test_payment_success_redirects_without_crediting(db_session, user, monkeypatch):
    monkeypatch.setattr(
        stripe.checkout.Session,
        "retrieve",
        lambda session_id: {"id": session_id, "payment_status": "paid", "metadata": {"credit_amount": "10"}},
    )

    response = payment_success(session_id="cs_done")

    assert response.status_code == 303
    assert response.headers["location"] == "http://localhost:3000/dash?success=true&credits=10"
    assert credit_crud.get_balance(db_session, user.id) == 0


def test_payment_success_without_session_id():
    response = payment_success(session_id=None)

    assert response.headers["location"] == "http://localhost:3000/dash?error=no-session-id"
