# Fichier: caseprep/api/v1/api.py
from fastapi import APIRouter
from .endpoints import (
    user_router,
    case_router,
    case_feedback_router,
    progress_router,
    credit_router,
    stripe_router,
    media_router,
)

api_router = APIRouter()

api_router.include_router(user_router.router, prefix="/users", tags=["Users"])
api_router.include_router(case_router.router, prefix="/cases", tags=["Cases"])
api_router.include_router(case_feedback_router.router, prefix="/case-feedback", tags=["Feedback"])
api_router.include_router(progress_router.router, prefix="/progress", tags=["Progress"])
api_router.include_router(credit_router.router, prefix="/credits", tags=["Credits"])
api_router.include_router(stripe_router.router, prefix="/stripe", tags=["stripe"])
api_router.include_router(media_router.router, prefix="/media", tags=["Media"])
