# training_service/core/exceptions.py
"""
Error taxonomy shared by the API, the result store and the access policy.

Every error the service reports to a caller is a ``ServiceError``; the
exception handlers in ``main.py`` turn them into
``{"status": "error", "message": ..., "details": ...}`` envelopes.
Storage errors are translated here, once, so raw database text never
reaches a response.
"""
import logging
import re
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    status_code = 500
    default_message = "An internal server error occurred"

    def __init__(self, message: Optional[str] = None, details: Any = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class BadRequestError(ServiceError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(ServiceError):
    status_code = 401
    default_message = "Authentication required"


class ForbiddenError(ServiceError):
    status_code = 403
    default_message = "You do not have permission to access this resource"


class NotFoundError(ServiceError):
    status_code = 404
    default_message = "The resource could not be found"


class ConflictError(ServiceError):
    """Uniqueness (409) or referential-integrity (400) violation."""
    status_code = 409
    default_message = "The record conflicts with existing data"


class ServerError(ServiceError):
    status_code = 500


class PolicyUndecidableError(ServerError):
    """Access could not be decided because the membership service failed."""
    default_message = "Could not verify team access"


# ------------------------------------------------------------------
# Integrity error translation
# ------------------------------------------------------------------

PG_UNIQUE_VIOLATION = "23505"
PG_FOREIGN_KEY_VIOLATION = "23503"
PG_NOT_NULL_VIOLATION = "23502"
PG_CHECK_VIOLATION = "23514"

FIELD_NAMES = {
    "name": "Name",
    "test_id": "Test ID",
    "user_id": "User ID",
    "team_id": "Team ID",
    "test_date": "Test date",
    "result": "Result",
    "unit": "Unit",
    "test_type": "Test type",
}

TABLE_NAMES = {
    "tests": "test",
    "test_results": "test result",
}

_PG_KEY_RE = re.compile(r"\((.+?)\)=\((.+?)\)")
_PG_TABLE_RE = re.compile(r'table "(.+?)"', re.IGNORECASE)
_SQLITE_COLUMN_RE = re.compile(r"constraint failed: (\S+)")


def readable_field(field: str) -> str:
    return FIELD_NAMES.get(field, f"Field '{field}'")


def readable_table(table: str) -> str:
    if "." in table:
        table = table.split(".", 1)[1]
    return TABLE_NAMES.get(table, table)


def _pg_code(orig: Any) -> Optional[str]:
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def _pg_detail(orig: Any) -> str:
    diag = getattr(orig, "diag", None)
    detail = getattr(diag, "message_detail", None) if diag is not None else None
    return detail or ""


def translate_integrity_error(exc: IntegrityError, related: str = "related record") -> ServiceError:
    """
    Map a SQLAlchemy ``IntegrityError`` from PostgreSQL or SQLite to the taxonomy.

    ``related`` names the referenced entity for drivers (SQLite) that do not
    report which foreign key failed.
    """
    orig = exc.orig
    code = _pg_code(orig)
    text = str(orig)

    if code == PG_UNIQUE_VIOLATION or "UNIQUE constraint failed" in text:
        return ConflictError(_unique_message(code, orig, text), status_code=409)

    if code == PG_FOREIGN_KEY_VIOLATION or "FOREIGN KEY constraint failed" in text:
        return ConflictError(_foreign_key_message(code, orig, related), status_code=400)

    if code == PG_NOT_NULL_VIOLATION or "NOT NULL constraint failed" in text:
        column = getattr(getattr(orig, "diag", None), "column_name", None)
        if not column:
            match = _SQLITE_COLUMN_RE.search(text)
            column = match.group(1).split(".")[-1] if match else "value"
        return BadRequestError(f"{readable_field(column)} is required.")

    if code == PG_CHECK_VIOLATION or "CHECK constraint failed" in text:
        return BadRequestError("Invalid data: one or more constraints were not satisfied.")

    logger.error(f"Unclassified integrity error: {text}")
    return ServerError("A database error occurred")


def _unique_message(code: Optional[str], orig: Any, text: str) -> str:
    if code:
        match = _PG_KEY_RE.search(_pg_detail(orig))
        if match:
            return f"{readable_field(match.group(1))} '{match.group(2)}' already exists."
        return "The record already exists."

    match = _SQLITE_COLUMN_RE.search(text)
    if match:
        column = match.group(1).split(",")[0].split(".")[-1]
        return f"{readable_field(column)} already exists."
    return "The record already exists."


def _foreign_key_message(code: Optional[str], orig: Any, related: str) -> str:
    if code:
        detail = _pg_detail(orig)
        match = _PG_TABLE_RE.search(detail)
        table = readable_table(match.group(1)) if match else related
        if "still referenced" in detail:
            return f"Cannot delete the record because it is used by {table}."
        return f"Referenced {table} does not exist."
    return f"Referenced {related} does not exist."
