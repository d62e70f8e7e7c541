from sqlalchemy.orm import Session

from db.models import Profile, User
from services.errors import InvalidArgumentError


def ensure_user(db: Session, *, user_id: str | None = None, email: str | None = None) -> User:
    """Return the user matching id or email, creating it (with an empty profile) if absent.

    Users normally come from the external identity provider; this exists so an
    operator can provision a self-hosted instance from the command line.
    """
    normalized_email = (email or "").strip().lower() or None
    if not user_id and not normalized_email:
        raise InvalidArgumentError("A user id or email is required")

    query = db.query(User)
    user = None
    if user_id:
        user = query.filter(User.id == user_id).first()
    if user is None and normalized_email:
        user = query.filter(User.email == normalized_email).first()

    if user is None:
        user = User(email=normalized_email)
        if user_id:
            user.id = user_id
        db.add(user)
        db.flush()
    if user.profile is None:
        db.add(Profile(id=user.id))
        db.flush()
    return user
