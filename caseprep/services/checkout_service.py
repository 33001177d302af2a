# Fichier: caseprep/services/checkout_service.py
"""Stripe checkout sessions for credit packs and the webhook that credits them."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import stripe
from sqlalchemy.orm import Session

from caseprep.core.config import settings
from caseprep.crud import credit_crud
from caseprep.crud.credit_crud import DuplicateCreditTransaction
from caseprep.models.credits.credit_model import CreditTransactionType
from caseprep.models.user.user_model import User

logger = logging.getLogger(__name__)

stripe.api_key = settings.STRIPE_SECRET_KEY

CHECKOUT_COMPLETED = "checkout.session.completed"


class InvalidCreditPackage(Exception):
    """The (credit_amount, price_id) pair is not a configured credit pack."""


class CheckoutUnavailable(Exception):
    pass


class WebhookIntegrityError(Exception):
    """The webhook signature could not be verified."""


class WebhookPayloadError(Exception):
    """A verified event is missing the metadata needed to credit the user."""


def _field(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    try:
        return obj[key]
    except (KeyError, TypeError):
        return None


def resolve_package(price_id: str, credit_amount: int) -> str:
    expected = settings.CREDIT_PACKAGES.get(str(credit_amount))
    if expected is None or expected != price_id:
        raise InvalidCreditPackage(f"{credit_amount} credits / {price_id}")
    return expected


def _dashboard_url(**params: Any) -> str:
    base = str(settings.FRONTEND_BASE_URL).rstrip("/")
    query = urlencode(params)
    return f"{base}/dash?{query}" if query else f"{base}/dash"


def create_checkout(user: User, price_id: str, credit_amount: int) -> str:
    """Create a one-off payment session and return its hosted URL."""

    price = resolve_package(price_id, credit_amount)
    metadata = {"user_id": str(user.id), "credit_amount": str(credit_amount)}

    try:
        checkout_session = stripe.checkout.Session.create(
            payment_method_types=["card"],
            line_items=[{"price": price, "quantity": 1}],
            mode="payment",
            client_reference_id=str(user.id),
            customer_email=user.email or None,
            metadata=metadata,
            success_url=(
                f"{str(settings.API_BASE_URL).rstrip('/')}/api/v1/stripe/payment-success"
                "?session_id={CHECKOUT_SESSION_ID}"
            ),
            cancel_url=_dashboard_url(canceled="true"),
        )
    except stripe.StripeError as exc:
        logger.error("Création de la session Stripe échouée: %s", exc)
        raise CheckoutUnavailable(str(exc)) from exc

    url = _field(checkout_session, "url")
    if not url:
        raise CheckoutUnavailable("Stripe did not return a checkout URL")

    logger.info(
        "Session de paiement %s créée pour l'utilisateur %s (%s crédits)",
        _field(checkout_session, "id"),
        user.id,
        credit_amount,
    )
    return url


def _parse_credit_amount(value: Any) -> Optional[int]:
    try:
        amount = int(value)
    except (TypeError, ValueError):
        return None
    return amount if amount > 0 else None


def handle_webhook(db: Session, payload: bytes, signature: Optional[str]) -> Dict[str, str]:
    """Verify and apply one Stripe event.

    Returns ``{"status": ...}`` with ``credited``, ``duplicate`` or ``ignored``.
    """

    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("STRIPE_WEBHOOK_SECRET absent: webhook Stripe rejeté.")
        raise WebhookIntegrityError("webhook secret not configured")

    try:
        event = stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
    except (ValueError, stripe.SignatureVerificationError) as exc:
        logger.warning("Signature de webhook Stripe invalide: %s", exc)
        raise WebhookIntegrityError(str(exc)) from exc

    event_type = _field(event, "type")
    logger.info("Réception webhook Stripe: %s", event_type)

    if event_type != CHECKOUT_COMPLETED:
        return {"status": "ignored"}

    session_data = _field(_field(event, "data"), "object")
    session_id = _field(session_data, "id")
    if _field(session_data, "payment_status") != "paid":
        logger.info("Session %s non payée, aucun crédit ajouté.", session_id)
        return {"status": "ignored"}

    metadata = _field(session_data, "metadata") or {}
    user_id = _field(metadata, "user_id") or _field(session_data, "client_reference_id")
    credit_amount = _parse_credit_amount(_field(metadata, "credit_amount"))
    if not session_id or not user_id or credit_amount is None:
        logger.error("Métadonnées manquantes pour la session Stripe %s: %s", session_id, metadata)
        raise WebhookPayloadError("missing user_id or credit_amount")

    if db.get(User, str(user_id)) is None:
        logger.error("Utilisateur %s introuvable pour la session Stripe %s", user_id, session_id)
        raise WebhookPayloadError("unknown user")

    try:
        credit_crud.add_credits(
            db,
            str(user_id),
            credit_amount,
            CreditTransactionType.PURCHASE,
            f"Purchased {credit_amount} credits",
            {"stripe_session_id": session_id, "amount_total": _field(session_data, "amount_total")},
            external_reference=session_id,
        )
    except DuplicateCreditTransaction:
        db.rollback()
        logger.warning("Webhook Stripe rejoué pour la session %s: déjà crédité.", session_id)
        return {"status": "duplicate"}

    return {"status": "credited"}


def payment_redirect_url(session_id: Optional[str]) -> str:
    """Frontend URL to send the browser to after checkout. Never credits."""

    if not session_id:
        return _dashboard_url(error="no-session-id")

    try:
        checkout_session = stripe.checkout.Session.retrieve(session_id)
    except stripe.StripeError as exc:
        logger.error("Lecture de la session Stripe %s impossible: %s", session_id, exc)
        return _dashboard_url(error="server-error")

    if _field(checkout_session, "payment_status") != "paid":
        return _dashboard_url(error="payment-not-completed")

    credits = _parse_credit_amount(_field(_field(checkout_session, "metadata"), "credit_amount")) or 0
    return _dashboard_url(success="true", credits=credits)
