"""
Normalized database errors.

Every backend failure reaches callers as a DatabaseError carrying one
ErrorKind. classify() is the only code allowed to look at backend-native
error codes or messages.
"""

import asyncio
import re
from enum import Enum
from typing import Optional

import httpx

from fleetguard.models.query import ClientType


class ErrorKind(str, Enum):
    """Normalized error taxonomy."""

    INVALID_FILTER = "InvalidFilter"
    RELATION_MISSING = "RelationMissing"
    PERMISSION_DENIED = "PermissionDenied"
    CONNECTION_FAILED = "ConnectionFailed"
    UNKNOWN = "Unknown"


class DatabaseError(Exception):
    """
    A backend failure mapped onto the normalized taxonomy.

    Attributes:
        kind: ErrorKind callers branch on
        message: Human readable message, preserved from the backend
        raw_code: Backend code (SQLSTATE, PostgREST code or HTTP status), if any
    """

    def __init__(self, kind: ErrorKind, message: str, raw_code: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.raw_code = raw_code

    def __str__(self) -> str:
        if self.raw_code:
            return f"{self.kind.value} [{self.raw_code}]: {self.message}"
        return f"{self.kind.value}: {self.message}"

    def __repr__(self) -> str:
        return f"DatabaseError(kind={self.kind.value!r}, message={self.message!r}, raw_code={self.raw_code!r})"


def invalid_filter(message: str) -> DatabaseError:
    """Build the error raised for unsupported operators and unscoped writes."""
    return DatabaseError(ErrorKind.INVALID_FILTER, message)


# Exact codes. SQLSTATE for both PostgreSQL drivers, PGRST* for PostgREST.
_CODE_KINDS = {
    "42P01": ErrorKind.RELATION_MISSING,   # undefined_table
    "3F000": ErrorKind.RELATION_MISSING,   # invalid_schema_name
    "PGRST205": ErrorKind.RELATION_MISSING,
    "PGRST116": ErrorKind.RELATION_MISSING,
    "42501": ErrorKind.PERMISSION_DENIED,  # insufficient_privilege
    "PGRST301": ErrorKind.PERMISSION_DENIED,
    "PGRST302": ErrorKind.PERMISSION_DENIED,
}

# SQLSTATE classes
_CODE_CLASS_KINDS = {
    "08": ErrorKind.CONNECTION_FAILED,   # connection_exception
    "28": ErrorKind.PERMISSION_DENIED,   # invalid_authorization_specification
    "53": ErrorKind.CONNECTION_FAILED,   # insufficient_resources
    "57": ErrorKind.CONNECTION_FAILED,   # operator_intervention (incl. statement timeout)
}

_STATUS_KINDS = {
    401: ErrorKind.PERMISSION_DENIED,
    403: ErrorKind.PERMISSION_DENIED,
    404: ErrorKind.RELATION_MISSING,
    502: ErrorKind.CONNECTION_FAILED,
    503: ErrorKind.CONNECTION_FAILED,
    504: ErrorKind.CONNECTION_FAILED,
}

# "column x of relation y does not exist" must not read as a missing relation
_MISSING_COLUMN = re.compile(
    r"no such column|column \S+ (of relation \S+ )?does not exist|could not find the \S+ column",
    re.IGNORECASE,
)

_MESSAGE_KINDS = [
    (re.compile(r"no such table|relation \S+ does not exist|could not find the table", re.IGNORECASE),
     ErrorKind.RELATION_MISSING),
    (re.compile(r"permission denied|not authorized|insufficient privilege", re.IGNORECASE),
     ErrorKind.PERMISSION_DENIED),
    (re.compile(r"unable to open database file|could not connect|connection refused|"
                r"connection (was )?closed|server closed the connection", re.IGNORECASE),
     ErrorKind.CONNECTION_FAILED),
]


def _raw_code(raw: BaseException, backend: ClientType) -> Optional[str]:
    """Pull the backend-native code off an exception, if it carries one."""
    if backend.is_local:
        # asyncpg exceptions carry the SQLSTATE; sqlite3 errors carry none we map
        code = getattr(raw, "sqlstate", None)
    else:
        code = getattr(raw, "code", None)
    if code is None:
        return None
    return str(code)


def _kind_for_code(code: str) -> Optional[ErrorKind]:
    if code in _CODE_KINDS:
        return _CODE_KINDS[code]
    if code.startswith("PGRST00"):
        # PGRST000-PGRST003: PostgREST could not reach or was starved of the database
        return ErrorKind.CONNECTION_FAILED
    if len(code) == 5 and not code.startswith("PGRST"):
        return _CODE_CLASS_KINDS.get(code[:2])
    return None


def _message_of(raw: BaseException) -> str:
    message = getattr(raw, "message", None)
    if isinstance(message, str) and message:
        return message
    text = str(raw)
    return text or raw.__class__.__name__


def classify(raw: BaseException, backend: ClientType) -> DatabaseError:
    """
    Map a backend failure onto the normalized taxonomy.

    Args:
        raw: Exception raised by a driver, the HTTP client or the REST layer
        backend: Backend that produced it

    Returns:
        DatabaseError; unmapped signals become UNKNOWN with the message kept
    """
    if isinstance(raw, DatabaseError):
        return raw

    message = _message_of(raw)

    if isinstance(raw, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException)):
        return DatabaseError(ErrorKind.CONNECTION_FAILED, f"Operation timed out: {message}")

    if isinstance(raw, (httpx.TransportError, ConnectionError)):
        return DatabaseError(ErrorKind.CONNECTION_FAILED, message)

    code = _raw_code(raw, backend)
    if code:
        kind = _kind_for_code(code)
        if kind is not None:
            return DatabaseError(kind, message, code)

    status = getattr(raw, "status_code", None)
    if not code and status in _STATUS_KINDS:
        return DatabaseError(_STATUS_KINDS[status], message, str(status))

    if not _MISSING_COLUMN.search(message):
        for pattern, kind in _MESSAGE_KINDS:
            if pattern.search(message):
                return DatabaseError(kind, message, code)

    if isinstance(raw, OSError):
        return DatabaseError(ErrorKind.CONNECTION_FAILED, message, code)

    return DatabaseError(ErrorKind.UNKNOWN, message, code or (str(status) if status else None))
