import logging
from sqlmodel import Session

from core.config import settings
from core.database import engine, create_db_and_tables
from models.user import Role
from services.identity import IdentityStore

logger = logging.getLogger(__name__)

ADMIN_EMAIL = "admin@wastetracker.local"
ADMIN_PASSWORD = "admin123"


def seed_admin(email: str = ADMIN_EMAIL, password: str = ADMIN_PASSWORD):
    """Privileged provisioning of an admin identity and its role."""
    create_db_and_tables()
    with Session(engine) as session:
        store = IdentityStore(session)

        # check if admin already exists
        identity = store.get_by_email(email)
        if identity and Role.admin in store.roles_for(identity.id):
            logger.info("Admin %s already exists", email)
            return identity

        if identity is None:
            identity = store.create_identity(email, password, full_name="Administrator", auto_confirm=True)
        store.grant_role(identity.id, Role.admin)
        session.refresh(identity)
        logger.info("Admin %s seeded successfully", email)
        return identity


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    seed_admin()
