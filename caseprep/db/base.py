"""Déclare l'ensemble des modèles SQLAlchemy pour que ``Base.metadata`` les connaisse."""

from caseprep.db.base_class import Base

# Utilisateurs
from caseprep.models.user.user_model import User

# Catalogue des cases
from caseprep.models.case.business_case_model import BusinessCase, CaseSection

# Progression & réponses
from caseprep.models.progress.user_case_progress_model import UserCaseProgress
from caseprep.models.progress.user_response_model import UserResponse

# Crédits
from caseprep.models.credits.credit_model import CreditBalance, CreditTransaction

__all__ = (
    "Base",
    "User",
    "BusinessCase",
    "CaseSection",
    "UserCaseProgress",
    "UserResponse",
    "CreditBalance",
    "CreditTransaction",
)
