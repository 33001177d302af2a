# Fichier: caseprep/db/base_class.py
from sqlalchemy.orm import DeclarativeBase

class Base(DeclarativeBase):
    """
    Classe de base pour tous les modèles SQLAlchemy.
    Utilisée par ``create_all`` au démarrage et par les fixtures de test.
    """
