"""Shared blueprint utilities.

parse_year:          query/body year → int, ValidationError on junk
db_commit_or_error:  commit with rollback + standard error response
"""
import logging
from datetime import date

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from eoms_portal.core.exceptions import ValidationError
from eoms_portal.models import db
from eoms_portal.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def parse_year(value, *, default=None, field="year"):
    """Parse an academic year.

    Returns ``default`` (today's year when ``default`` is None) for empty
    input. Anything that is not a plausible 4-digit year raises
    ValidationError rather than silently falling back.
    """
    if value is None or value == "":
        return default if default is not None else date.today().year
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a 4-digit year", details={field: value})
    try:
        year = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a 4-digit year", details={field: value}) from None
    if not 1900 <= year <= 9999:
        raise ValidationError(f"{field} must be a 4-digit year", details={field: value})
    return year


def db_commit_or_error():
    """Commit the current SQLAlchemy session, returning an error response on failure.

    Returns:
        None on success.
        (response, status_code) tuple on failure — ready for ``return``.

    Usage::

        err = db_commit_or_error()
        if err:
            return err

    IntegrityError → 409 (duplicate / constraint violation)
    OperationalError and anything else from the store → 500
    """
    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Duplicate or constraint violation")
    except OperationalError:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        return api_error(E.DATABASE, "Database error")
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Unexpected database error on commit")
        return api_error(E.DATABASE, "Database error")
