# Fichier: caseprep/crud/user_crud.py

from sqlalchemy.orm import Session
from caseprep.models.user.user_model import User
from typing import Optional

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()

def sync_user_from_identity(db: Session, *, user_id: str, email: str, name: Optional[str]) -> User:
    """
    Crée ou met à jour le miroir local d'un utilisateur authentifié.

    Le fournisseur d'identité reste la source de vérité: on se contente de
    recopier l'email et le nom quand ils changent.

    Returns:
        L'objet User persistant.
    """
    user = db.get(User, user_id)
    if user is None:
        user = User(id=user_id, email=email, name=name or "")
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    changed = False
    if email and user.email != email:
        user.email = email
        changed = True
    if name is not None and user.name != name:
        user.name = name
        changed = True

    if changed:
        db.commit()
        db.refresh(user)
    return user
