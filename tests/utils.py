"""Utility helpers for test factories."""

from __future__ import annotations

from caseprep.crud import credit_crud
from caseprep.core.llm_backends import UpstreamUnavailable
from caseprep.models.case.business_case_model import BusinessCase, CaseSection
from caseprep.models.credits.credit_model import CreditTransactionType
from caseprep.models.user.user_model import User


def create_user(db, **kwargs) -> User:
    defaults = {
        "id": "user-1",
        "email": "user@example.com",
        "name": "Test User",
    }
    defaults.update(kwargs)
    user = User(**defaults)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def grant(db, user_id: str, amount: int) -> None:
    credit_crud.add_credits(db, user_id, amount, CreditTransactionType.TEST, "test credits")


def create_case(db, *, sections: int = 5, language: str = "en", **kwargs) -> BusinessCase:
    defaults = {
        "title": "Coffee chain profitability",
        "company": "Brewline",
        "industry": "Retail",
        "difficulty": "medium",
        "language": language,
    }
    defaults.update(kwargs)
    business_case = BusinessCase(**defaults)
    for index in range(sections):
        business_case.sections.append(
            CaseSection(
                title=f"Section {index + 1}",
                type="question",
                prompt=f"Question {index + 1}?",
                order_index=index,
                criteria=f"Criteria {index + 1}",
            )
        )
    db.add(business_case)
    db.commit()
    db.refresh(business_case)
    return business_case


class StubBackend:
    """Backend de test: renvoie une réponse fixe ou lève l'erreur fournie."""

    name = "stub"

    def __init__(self, reply: str | None = None, error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


def failing_backend() -> StubBackend:
    return StubBackend(error=UpstreamUnavailable("connection reset"))
