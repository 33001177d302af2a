# Fichier: caseprep/crud/case_crud.py

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from caseprep.models.case.business_case_model import BusinessCase, CaseSection


class CaseNotFound(Exception):
    def __init__(self, case_id: int):
        super().__init__(f"Business case {case_id} not found")
        self.case_id = case_id


class SectionNotFound(Exception):
    def __init__(self, case_id: int, section_id: int):
        super().__init__(f"Section {section_id} not found in case {case_id}")
        self.case_id = case_id
        self.section_id = section_id


def list_cases(db: Session) -> list[BusinessCase]:
    """Renvoie la bibliothèque de cases, les plus récents en premier."""
    return list(db.scalars(select(BusinessCase).order_by(BusinessCase.created_at.desc(), BusinessCase.id.desc())))


def get_case(db: Session, case_id: int) -> tuple[BusinessCase, list[CaseSection]]:
    """
    Récupère un case et ses sections triées par ``order_index`` croissant.

    Raises:
        CaseNotFound: si l'identifiant ne correspond à aucun case.
    """
    business_case = db.get(BusinessCase, case_id)
    if business_case is None:
        raise CaseNotFound(case_id)

    sections = list(
        db.scalars(
            select(CaseSection)
            .where(CaseSection.case_id == case_id)
            .order_by(CaseSection.order_index.asc())
        )
    )
    return business_case, sections


def get_section(db: Session, case_id: int, section_id: int) -> CaseSection:
    section = db.get(CaseSection, section_id)
    if section is None or section.case_id != case_id:
        raise SectionNotFound(case_id, section_id)
    return section


def count_sections(db: Session, case_id: int) -> int:
    return int(db.scalar(select(func.count(CaseSection.id)).where(CaseSection.case_id == case_id)) or 0)


def section_position(sections: list[CaseSection], section_id: int) -> int:
    """Index (base 0) de la section dans la progression ordonnée du case."""
    for index, section in enumerate(sections):
        if section.id == section_id:
            return index
    raise SectionNotFound(sections[0].case_id if sections else 0, section_id)
