import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
from sqladmin import Admin
from sqladmin.authentication import AuthenticationBackend

# Imports de l'application
from caseprep.core.config import settings
from caseprep.core.security import verify_password
from caseprep.db import base  # noqa: F401  (enregistre tous les modèles)
from caseprep.db.base_class import Base
from caseprep.db.session import async_engine
from caseprep.api.v1.api import api_router
from caseprep.admin import ADMIN_VIEWS

# --- Configuration du logging ---
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# --- Initialisation de l'application FastAPI ---
app = FastAPI(
    title="CasePrep API",
    openapi_url="/api/v1/openapi.json",
)


def _sanitize_origin(origin: str | None) -> str | None:
    if not origin:
        return None
    value = origin.strip()
    if not value:
        return None
    if not value.startswith("http"):
        value = f"https://{value}"
    return value.rstrip("/")


def _build_cors_origins() -> list[str]:
    origins = {_sanitize_origin(o) for o in settings.BACKEND_CORS_ORIGINS}
    origins.add(_sanitize_origin(str(settings.FRONTEND_BASE_URL)))
    allow_origins = sorted(origin for origin in origins if origin)
    logger.info("CORS origins configurés: %s", allow_origins)
    return allow_origins


# --- Configuration des Middlewares ---
app.add_middleware(SessionMiddleware, secret_key=settings.SECRET_KEY)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_build_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Authorization", "Content-Type", "Stripe-Signature"],
)


# --- Initialisation de l'Admin ---
class AdminAuth(AuthenticationBackend):
    """Un seul compte opérateur, défini par ADMIN_USERNAME / ADMIN_PASSWORD_HASH."""

    async def login(self, request: Request) -> bool:
        form = await request.form()
        username = form.get("username")
        password = form.get("password")

        if username == settings.ADMIN_USERNAME and verify_password(password, settings.ADMIN_PASSWORD_HASH):
            request.session.update({"token": "admin_logged_in", "user": username})
            return True
        logger.warning("Connexion au back-office refusée pour '%s'", username)
        return False

    async def logout(self, request: Request) -> bool:
        request.session.clear()
        return True

    async def authenticate(self, request: Request) -> bool:
        return "token" in request.session


admin = Admin(
    app,
    async_engine,
    authentication_backend=AdminAuth(secret_key=settings.SECRET_KEY),
    base_url="/admin",
)
for view in ADMIN_VIEWS:
    admin.add_view(view)

app.include_router(api_router, prefix="/api/v1")


# --- Événement de Démarrage ---
@app.on_event("startup")
async def startup():
    logger.info("Vérification et création des tables de la base de données...")
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("✅ Les tables de la base de données sont prêtes.")

    if not settings.ADMIN_PASSWORD_HASH:
        logger.warning("ADMIN_PASSWORD_HASH absent: le back-office refusera toute connexion.")
    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.warning("STRIPE_WEBHOOK_SECRET absent: tous les webhooks Stripe seront rejetés.")


# --- Route Racine ---
@app.get("/")
def read_root():
    return {"message": "Welcome to CasePrep API!"}
