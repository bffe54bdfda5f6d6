"""Session scopes that turn driver failures into ``PersistenceError``."""
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from utils.errors import PersistenceError


@contextmanager
def storage_guard(action: str):
    """Wrap reads and flushes; the caller decides when to commit."""
    try:
        yield db.session
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Database error during %s", action)
        raise PersistenceError() from exc


@contextmanager
def transactional(action: str):
    """Commit everything done inside the block, or nothing at all."""
    try:
        yield db.session
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Database error during %s", action)
        raise PersistenceError() from exc
    except Exception:
        db.session.rollback()
        raise
