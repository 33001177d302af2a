# Fichier: caseprep/api/v1/endpoints/stripe_router.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from caseprep.api.v1.dependencies import get_current_user, get_db
from caseprep.models.user.user_model import User
from caseprep.schemas.credits.credit_schema import CheckoutSessionIn, CheckoutSessionOut
from caseprep.services import checkout_service
from caseprep.services.checkout_service import (
    CheckoutUnavailable,
    InvalidCreditPackage,
    WebhookIntegrityError,
    WebhookPayloadError,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/create-checkout-session", response_model=CheckoutSessionOut)
def create_checkout_session(
    payload: CheckoutSessionIn,
    current_user: User = Depends(get_current_user),
) -> CheckoutSessionOut:
    """Crée une session de paiement Stripe pour un pack de crédits."""
    try:
        url = checkout_service.create_checkout(current_user, payload.price_id, payload.credit_amount)
    except InvalidCreditPackage:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_credit_package")
    except CheckoutUnavailable:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="checkout_unavailable")
    return CheckoutSessionOut(url=url)


@router.post("/webhook")
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    """Écoute les événements de Stripe pour créditer les achats."""
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        return checkout_service.handle_webhook(db, payload, signature)
    except WebhookIntegrityError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_signature")
    except WebhookPayloadError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="missing_metadata")


@router.get("/payment-success")
def payment_success(session_id: str | None = None) -> RedirectResponse:
    return RedirectResponse(checkout_service.payment_redirect_url(session_id), status_code=status.HTTP_303_SEE_OTHER)
