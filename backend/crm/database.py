from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import SQLModel, create_engine, Session

from crm.config import settings
from crm.exceptions import ConstraintViolation, StorageError

def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

def build_engine(url: str, **kwargs) -> Engine:
    """Create an engine; SQLite connections get FK enforcement so cascades hold."""
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(url, echo=settings.SQL_ECHO, **kwargs)
    if is_sqlite:
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine

engine = build_engine(settings.DATABASE_URL)

def create_db_and_tables(bind: Engine = engine):
    # Table models must be imported before create_all sees them
    from crm.users.models import User  # noqa: F401
    from crm.leads.models import Lead  # noqa: F401
    from crm.activities.models import Activity  # noqa: F401

    SQLModel.metadata.create_all(bind)

def get_session():
    with Session(engine) as session:
        yield session

def commit_or_raise(session: Session, action: str) -> None:
    """Commit the unit of work; on failure roll all of it back and raise StorageError."""
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise ConstraintViolation(f"{action} violated a constraint: {exc.orig}") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        raise StorageError(f"{action} failed: {exc}") from exc
