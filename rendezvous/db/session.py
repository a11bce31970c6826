import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from rendezvous.core.config import settings

logger = logging.getLogger(__name__)

_engine = None


def _report_connection_failure(exc: Exception) -> None:
    """Log where we tried to connect, without leaking the password."""
    try:
        url = make_url(settings.database_url)
    except Exception as parse_error:  # pragma: no cover
        logger.warning("Could not connect to database (%s); DATABASE_URL unparsable: %s", exc, parse_error)
        return

    masked_url = url._replace(password="***" if url.password else None)
    logger.warning(
        "Could not connect to database %s on %s:%s (%s). "
        "The application will start but imports will fail until the connection succeeds.",
        masked_url.database,
        masked_url.host or "localhost",
        masked_url.port or "(default)",
        exc,
    )


def get_engine():
    global _engine
    if _engine is None:
        _engine = create_engine(settings.database_url)
        try:
            with _engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            _report_connection_failure(e)
    return _engine


SessionLocal = None

Base = declarative_base()


def get_session_local():
    global SessionLocal
    if SessionLocal is None:
        SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return SessionLocal


def get_db():
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(engine=None) -> None:
    """Create the clients / services / appointments tables if missing."""
    from rendezvous.db import models  # noqa: F401  (registers tables on Base)

    Base.metadata.create_all(bind=engine or get_engine())
