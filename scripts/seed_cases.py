# Fichier: scripts/seed_cases.py
"""Charge des cases (et leurs sections) depuis un fichier JSON.

Usage::

    python -m scripts.seed_cases [chemin/vers/cases.json]

Un case déjà présent (même titre et même entreprise) est ignoré; les sections
ne sont jamais modifiées une fois créées.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

# --- Configuration du chemin et des imports ---
sys.path.append(str(Path(__file__).resolve().parents[1]))
from caseprep.db.base import Base  # noqa: F401,E402 - charge tous les modèles
from caseprep.db import session as db_session  # noqa: E402
from caseprep.models.case.business_case_model import BusinessCase, CaseSection  # noqa: E402

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEFAULT_CASES_FILE = Path(__file__).resolve().parent.parent / "caseprep" / "data" / "sample_cases.json"

CASE_FIELDS = ("title", "company", "industry", "difficulty", "estimated_time", "description", "language", "author_note")
SECTION_FIELDS = (
    "title",
    "type",
    "prompt",
    "ai_instructions",
    "criteria",
    "case_data",
    "graph_description",
    "hint",
    "image_url",
)


def load_cases(path: Path) -> list[dict[str, Any]]:
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, list):
        raise ValueError(f"{path} doit contenir une liste de cases")
    return data


def seed_cases(db: Session, cases: list[dict[str, Any]]) -> int:
    """Insère les cases manquants et renvoie le nombre de cases créés."""
    created = 0
    for raw_case in cases:
        existing = db.scalar(
            select(BusinessCase).where(
                BusinessCase.title == raw_case["title"],
                BusinessCase.company == raw_case["company"],
            )
        )
        if existing is not None:
            logger.info("Case déjà présent, ignoré: %s", raw_case["title"])
            continue

        business_case = BusinessCase(**{key: raw_case[key] for key in CASE_FIELDS if key in raw_case})
        for index, raw_section in enumerate(raw_case.get("sections", [])):
            section = CaseSection(**{key: raw_section[key] for key in SECTION_FIELDS if key in raw_section})
            section.order_index = raw_section.get("order_index", index)
            business_case.sections.append(section)

        db.add(business_case)
        created += 1
        logger.info("Case ajouté: %s (%s sections)", business_case.title, len(business_case.sections))

    db.commit()
    return created


def main(argv: list[str]) -> int:
    path = Path(argv[1]) if len(argv) > 1 else DEFAULT_CASES_FILE
    if not path.exists():
        logger.error("❌ Fichier de cases introuvable : %s", path)
        return 1

    Base.metadata.create_all(bind=db_session.sync_engine)
    with db_session.SessionLocal() as db:
        created = seed_cases(db, load_cases(path))
    logger.info("✅ %s case(s) créé(s).", created)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
