from sqlmodel import SQLModel, Session, create_engine
from core.config import settings

DATABASE_URL = settings.DATABASE_URL

# Some hosts hand out postgres:// which SQLAlchemy no longer accepts
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, echo=settings.SQL_ECHO, connect_args=connect_args)


def create_db_and_tables():
    # Register every table and the storage-boundary hooks before create_all
    import models  # noqa: F401
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
