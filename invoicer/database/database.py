from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from invoicer.core.config import settings
import logging

logger = logging.getLogger(__name__)


def build_engine(url: str, **kwargs):
    """Crea un engine síncrono; SQLite no acepta pool_size ni max_overflow."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
            **kwargs
        )
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        **kwargs
    )


sync_engine = build_engine(settings.database_url, echo=settings.DEBUG and settings.ENVIRONMENT != "test")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=sync_engine)

Base = declarative_base()


def get_db():
    """Genera una sesión de base de datos síncrona por request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_owner_query(session, model, owner_id):
    """Query filtrada por el usuario dueño de los registros."""
    return session.query(model).filter(model.user_id == owner_id)
