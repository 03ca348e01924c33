import uuid
import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from buspos.core.errors import Conflict, Unauthorized, ValidationError
from buspos.core.security import hash_password, verify_password
from buspos.models.user import User
from buspos.models.vendor import Vendor

logger = logging.getLogger(__name__)

# ADMIN accounts come from the seed or an existing admin, never self-registration
SELF_SERVICE_ROLES = ("USER", "VENDOR")


def register_user(db: Session, name: str, email: str, password: str, role: str = "USER") -> User:
    if not name or not email or not password:
        raise ValidationError("Name, email, and password are required")
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError("role must be USER or VENDOR")

    email_l = email.strip().lower()
    if db.query(User).filter(User.email == email_l).first():
        raise Conflict("User with this email already exists")

    user = User(
        id=str(uuid.uuid4()),
        name=name.strip(),
        email=email_l,
        role=role,
        password_hash=hash_password(password),
        is_active=True,
    )
    db.add(user)
    if role == "VENDOR":
        db.add(Vendor(id=str(uuid.uuid4()), user_id=user.id, name=user.name, email=email_l))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("User with this email already exists")
    db.refresh(user)
    logger.info("registered %s user %s", role, user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == (email or "").strip().lower()).first()
    if not user or not user.is_active:
        raise Unauthorized("Invalid credentials")
    if not verify_password(password, user.password_hash):
        raise Unauthorized("Invalid credentials")
    return user
