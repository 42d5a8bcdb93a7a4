import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.database import SessionLocal
from app.models.evaluation_criteria import EvaluationCriteria, CriteriaType
from app.models.user import User, UserRole
from app.services import auth as auth_service

logger = logging.getLogger(__name__)

# Global templates HR can copy into a new period (period_id is NULL)
DEFAULT_CRITERIA = [
    ("Work Quality", "Accuracy, thoroughness and reliability of the work delivered"),
    ("Productivity", "Volume of work completed against agreed targets"),
    ("Teamwork", "Cooperation with colleagues and contribution to shared goals"),
    ("Discipline", "Punctuality, attendance and adherence to company rules"),
    ("Communication", "Clarity and timeliness of written and verbal communication"),
    ("Initiative", "Proactively identifying problems and proposing improvements"),
]


def seed_default_criteria(db: Session) -> int:
    """Inserts the default criteria when none exist yet. Returns how many were created."""
    existing = db.query(EvaluationCriteria).filter(EvaluationCriteria.period_id.is_(None)).count()
    if existing:
        logger.info(f"System initialization check: {existing} default criteria found.")
        return 0

    for index, (title, description) in enumerate(DEFAULT_CRITERIA, start=1):
        db.add(EvaluationCriteria(
            period_id=None,
            title=title,
            description=description,
            type=CriteriaType.rating,
            is_default=True,
            order_index=index,
        ))
    db.commit()
    logger.info(f"✓ Seeded {len(DEFAULT_CRITERIA)} default evaluation criteria")
    return len(DEFAULT_CRITERIA)


def ensure_admin(db: Session, email: str, password: str) -> Optional[User]:
    """Creates the first administrator unless an account with that email exists."""
    if not email or not password:
        return None
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        return None

    admin_user = User(
        email=email,
        hashed_password=auth_service.get_password_hash(password),
        full_name="System Administrator",
        role=UserRole.ADMIN,
        is_active=True,
    )
    db.add(admin_user)
    db.commit()
    logger.info(f"✓ Created default Admin: {email}")
    return admin_user


def init_system_data(db: Optional[Session] = None):
    """
    Checks if the system needs initialization:
    the bootstrap administrator and the default criteria.
    """
    owns_session = db is None
    db = db or SessionLocal()
    try:
        ensure_admin(db, settings.admin_email, settings.admin_password)
        if settings.evaluation.seed_default_criteria:
            seed_default_criteria(db)
        else:
            logger.info("Default criteria seeding disabled")
    except Exception as e:
        db.rollback()
        logger.error(f"Error during system initialization check: {str(e)}", exc_info=True)
        raise
    finally:
        if owns_session:
            db.close()
