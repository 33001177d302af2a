"""SQLAdmin back-office: case authoring and read-only views of progress and the ledger."""

from __future__ import annotations

import json
import textwrap
from typing import Any

from markupsafe import Markup, escape
from sqladmin import ModelView

from caseprep.models.case.business_case_model import BusinessCase, CaseSection
from caseprep.models.credits.credit_model import CreditBalance, CreditTransaction
from caseprep.models.progress.user_case_progress_model import UserCaseProgress
from caseprep.models.progress.user_response_model import UserResponse
from caseprep.models.user.user_model import User


def _json_preview(value: Any, *, max_chars: int = 160) -> Markup:
    """Render JSON content as a trimmed <pre> block for the admin."""
    if value in (None, "", [], {}):
        return Markup("<span style='color:#9ca3af;'>-</span>")

    try:
        text = json.dumps(value, ensure_ascii=False, indent=2)
    except TypeError:
        text = str(value)

    if len(text) > max_chars:
        text = text[:max_chars] + "…"

    return Markup(
        "<pre style='max-width:520px; white-space:pre-wrap; margin:0; font-size:12px;'>{}</pre>"
    ).format(escape(text))


def _shorten(value: str | None, width: int = 90) -> str | None:
    if not value:
        return None
    return textwrap.shorten(value, width=width, placeholder="…")


class UserAdmin(ModelView, model=User):
    name = "Utilisateur"
    name_plural = "Utilisateurs"
    icon = "fa-solid fa-user"
    category = "Utilisateurs & Crédits"
    column_list = [User.id, User.email, User.name, User.created_at, User.updated_at]
    column_searchable_list = [User.email, User.name]
    column_sortable_list = [User.created_at]
    column_default_sort = [(User.created_at, True)]
    form_excluded_columns = ["case_progress", "responses", "credit_transactions", "credit_balance"]
    can_create = False
    can_export = True
    page_size = 50


class BusinessCaseAdmin(ModelView, model=BusinessCase):
    name = "Case"
    name_plural = "Cases"
    icon = "fa-solid fa-briefcase"
    category = "Contenus"
    column_list = [
        BusinessCase.id,
        BusinessCase.title,
        BusinessCase.company,
        BusinessCase.industry,
        BusinessCase.difficulty,
        BusinessCase.language,
        BusinessCase.created_at,
    ]
    column_searchable_list = [BusinessCase.title, BusinessCase.company, BusinessCase.industry]
    column_default_sort = [(BusinessCase.created_at, True)]
    column_formatters = {BusinessCase.title: lambda m, _: _shorten(m.title, 60)}
    form_excluded_columns = ["sections", "created_at"]
    can_export = True


class CaseSectionAdmin(ModelView, model=CaseSection):
    name = "Section"
    name_plural = "Sections"
    icon = "fa-solid fa-list-ol"
    category = "Contenus"
    column_list = [
        CaseSection.id,
        CaseSection.business_case,
        CaseSection.order_index,
        CaseSection.title,
        CaseSection.type,
    ]
    column_searchable_list = [CaseSection.title]
    column_sortable_list = [CaseSection.case_id, CaseSection.order_index]
    column_default_sort = [(CaseSection.case_id, False), (CaseSection.order_index, False)]
    form_ajax_refs = {"business_case": {"fields": ("title", "company")}}
    can_export = True


class UserCaseProgressAdmin(ModelView, model=UserCaseProgress):
    name = "Progression"
    name_plural = "Progressions"
    icon = "fa-solid fa-chart-line"
    category = "Utilisateurs & Crédits"
    column_list = [
        UserCaseProgress.user,
        UserCaseProgress.business_case,
        UserCaseProgress.completed_sections,
        UserCaseProgress.total_sections,
        UserCaseProgress.is_completed,
        UserCaseProgress.last_activity,
    ]
    column_default_sort = [(UserCaseProgress.last_activity, True)]
    can_create = False
    can_edit = False
    can_delete = False
    can_export = True


class UserResponseAdmin(ModelView, model=UserResponse):
    name = "Réponse"
    name_plural = "Réponses"
    icon = "fa-solid fa-comments"
    category = "Apprentissage"
    column_list = [
        UserResponse.user,
        UserResponse.case_id,
        UserResponse.section_id,
        UserResponse.passed,
        UserResponse.response_text,
        UserResponse.created_at,
    ]
    column_formatters = {UserResponse.response_text: lambda m, _: _shorten(m.response_text)}
    column_formatters_detail = {UserResponse.conversation_history: lambda m, _: _json_preview(m.conversation_history, max_chars=10000)}
    column_default_sort = [(UserResponse.created_at, True)]
    can_create = False
    can_edit = False
    can_delete = False
    can_export = True


class CreditTransactionAdmin(ModelView, model=CreditTransaction):
    name = "Transaction"
    name_plural = "Transactions de crédits"
    icon = "fa-solid fa-coins"
    category = "Utilisateurs & Crédits"
    column_list = [
        CreditTransaction.id,
        CreditTransaction.user,
        CreditTransaction.amount,
        CreditTransaction.transaction_type,
        CreditTransaction.description,
        CreditTransaction.external_reference,
        CreditTransaction.created_at,
    ]
    column_searchable_list = [CreditTransaction.external_reference, CreditTransaction.description]
    column_default_sort = [(CreditTransaction.created_at, True)]
    column_formatters = {
        CreditTransaction.transaction_type: lambda m, _: m.transaction_type.value if m.transaction_type else None,
    }
    column_formatters_detail = {CreditTransaction.metadata_: lambda m, _: _json_preview(m.metadata_)}
    # Le registre est en ajout seul.
    can_create = False
    can_edit = False
    can_delete = False
    can_export = True


class CreditBalanceAdmin(ModelView, model=CreditBalance):
    name = "Solde"
    name_plural = "Soldes"
    icon = "fa-solid fa-wallet"
    category = "Utilisateurs & Crédits"
    column_list = [CreditBalance.user, CreditBalance.current_balance, CreditBalance.updated_at]
    column_sortable_list = [CreditBalance.current_balance, CreditBalance.updated_at]
    can_create = False
    can_edit = False
    can_delete = False


ADMIN_VIEWS = (
    UserAdmin,
    BusinessCaseAdmin,
    CaseSectionAdmin,
    UserCaseProgressAdmin,
    UserResponseAdmin,
    CreditTransactionAdmin,
    CreditBalanceAdmin,
)
