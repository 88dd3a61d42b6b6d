"""Structured classification of IntegrityError.

Duplicate-key violations are recognized from driver error metadata, never
from message text:
- psycopg: SQLSTATE 23505, optionally narrowed by diag.constraint_name
- sqlite3: extended error name SQLITE_CONSTRAINT_UNIQUE / _PRIMARYKEY
  (SQLite does not report constraint names, so no narrowing is possible)
"""

from sqlalchemy.exc import IntegrityError

PG_UNIQUE_VIOLATION = "23505"
SQLITE_DUPLICATE_ERRORS = frozenset({"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"})


def constraint_name(e: IntegrityError) -> str | None:
    """Constraint name reported by the driver, if any."""
    diag = getattr(e.orig, "diag", None)
    return getattr(diag, "constraint_name", None)


def is_unique_violation(e: IntegrityError, constraint: str | None = None) -> bool:
    """Whether the error is a duplicate-key violation.

    Args:
        e: The wrapped driver error.
        constraint: If given, only match violations of this constraint on
            drivers that report constraint names.
    """
    orig = e.orig

    sqlstate = getattr(orig, "sqlstate", None)
    if sqlstate is not None:
        if sqlstate != PG_UNIQUE_VIOLATION:
            return False
        return constraint is None or constraint_name(e) == constraint

    return getattr(orig, "sqlite_errorname", None) in SQLITE_DUPLICATE_ERRORS
