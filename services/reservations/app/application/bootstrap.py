"""One-time startup bootstrap: make sure an administrator account exists."""
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from app.domain.models import Role, User
from shared.core import get_logger

logger = get_logger(__name__)

# arbitrary key for the transaction-scoped postgres advisory lock
BOOTSTRAP_LOCK_KEY = 7340021


def _acquire_startup_lock(db: Session) -> None:
    # serialises concurrently starting instances; released on commit/rollback
    if db.get_bind().dialect.name == "postgresql":
        db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": BOOTSTRAP_LOCK_KEY})


def ensure_admin_exists(session_factory: sessionmaker, email: str, name: str) -> User:
    """Idempotent upsert of the default admin; safe to run on every startup."""
    with session_factory() as db:
        _acquire_startup_lock(db)
        admin = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if admin is not None:
            db.commit()
            logger.info(f"Admin account exists: {email}")
            return admin

        admin = User(email=email, name=name, role=Role.ADMIN)
        db.add(admin)
        try:
            db.commit()
        except IntegrityError:
            # another instance inserted it first
            db.rollback()
            admin = db.execute(select(User).where(User.email == email)).scalar_one()
            logger.info(f"Admin account created concurrently: {email}")
            return admin
        db.refresh(admin)
        logger.warning(f"No admin account found, created default admin {email}")
        return admin
