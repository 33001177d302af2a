from __future__ import annotations

from scripts.seed_cases import DEFAULT_CASES_FILE, load_cases, seed_cases

from caseprep.crud import case_crud
from caseprep.models.case.business_case_model import BusinessCase


def test_sample_cases_are_seeded_once(db_session):
    cases = load_cases(DEFAULT_CASES_FILE)

    assert seed_cases(db_session, cases) == len(cases)
    assert seed_cases(db_session, cases) == 0
    assert db_session.query(BusinessCase).count() == len(cases)


def test_seeded_sections_follow_file_order(db_session):
    seed_cases(db_session, load_cases(DEFAULT_CASES_FILE))
    first = db_session.query(BusinessCase).filter_by(company="Brewline").one()

    _, sections = case_crud.get_case(db_session, first.id)

    assert [section.order_index for section in sections] == [0, 1, 2]
    assert sections[0].title == "Clarify and structure"
