import logging

from config import get_settings
from create_tables import create_tables
from database import SessionLocal

from modules.documents.models import User, UserRole
from modules.documents.services import TemplateService

logger = logging.getLogger(__name__)

def configure_logging(level: str = None):
    logging.basicConfig(
        level=(level or get_settings().LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

def _create_demo_users(session):
    """One account per role so every approval step can be exercised."""
    if session.query(User).count() > 0:
        logger.info("Demo users already exist")
        return []

    users = [
        User(username="student", full_name="Grace Student", email="student@university.edu",
             role=UserRole.STUDENT),
        User(username="course_unit", full_name="Course Unit Office", email="courseunit@university.edu",
             role=UserRole.COURSE_UNIT),
        User(username="lecturer", full_name="Alan Lecturer", email="lecturer@university.edu",
             role=UserRole.ACADEMIC_STAFF),
        User(username="hod", full_name="Ada Head", email="hod@university.edu",
             role=UserRole.DEPARTMENT_HEAD),
        User(username="dean", full_name="Edsger Dean", email="dean@university.edu",
             role=UserRole.DEAN),
        User(username="registrar", full_name="Barbara Registrar", email="registrar@university.edu",
             role=UserRole.ASSISTANT_REGISTRAR),
        User(username="vc", full_name="Donald Chancellor", email="vc@university.edu",
             role=UserRole.VICE_CHANCELLOR),
        User(username="admin", full_name="Portal Admin", email="admin@university.edu",
             role=UserRole.ADMIN),
    ]
    session.add_all(users)
    session.commit()
    for user in users:
        logger.info("Demo user: %s (%s)", user.username, user.role.value)
    return users

def bootstrap(session_factory=SessionLocal, bind=None):
    """Create tables and seed default templates and demo users on an empty database."""
    create_tables(bind)
    with session_factory() as session:
        TemplateService.seed_default_templates(session)
        _create_demo_users(session)

if __name__ == "__main__":
    configure_logging()
    bootstrap()
    logger.info("Approval engine database ready")
