"""
gamecenter-cli exception hierarchy.

All custom exceptions live here to avoid circular imports.
"""

import json


class CliError(Exception):
    """Exit code 1: validation, not-found, network, parse errors."""

    exit_code = 1


class SetupError(CliError):
    """Exit code 2: missing or invalid credentials, no config."""

    exit_code = 2


class HTTPError(Exception):
    """Raised by _http_request for HTTP errors that callers want to handle."""

    def __init__(self, code, reason, body, headers=None):
        self.code = code
        self.reason = reason
        self.body = body
        self.headers = headers or {}


# ---------------------------------------------------------------------------
# Remote API errors
# ---------------------------------------------------------------------------

VENDOR_IDENTIFIER_DUPLICATE = "VENDOR_IDENTIFIER_DUPLICATE"
ENTITY_ALREADY_EXISTS = "ENTITY_ALREADY_EXISTS"
LOCALIZATION_DUPLICATE = "LOCALIZATION_DUPLICATE"


class ApiError(CliError):
    """An error response from App Store Connect with a machine-readable code."""

    def __init__(self, code, message, status=None, detail=None):
        super().__init__(message)
        self.code = code
        self.status = status
        self.detail = detail


class DuplicateVendorIdError(ApiError):
    """An achievement with the same vendor identifier already exists."""


class AlreadyExistsError(ApiError):
    """The entity (usually a localization) already exists."""


class LocalizationDuplicateError(ApiError):
    """A localization for this locale is already attached."""


_ERRORS_BY_CODE = {
    VENDOR_IDENTIFIER_DUPLICATE: DuplicateVendorIdError,
    ENTITY_ALREADY_EXISTS: AlreadyExistsError,
    LOCALIZATION_DUPLICATE: LocalizationDuplicateError,
}


def _error_entries(body):
    if not body:
        return []
    try:
        parsed = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return []
    if not isinstance(parsed, dict):
        return []
    errors = parsed.get("errors")
    if not isinstance(errors, list):
        return []
    return [e for e in errors if isinstance(e, dict)]


def api_error_from_body(status, body, fallback_detail=None):
    """Build the most specific ApiError for a JSON:API error response body.

    A known code anywhere in the ``errors`` array wins; otherwise the first
    entry's code is kept on a plain ApiError (``HTTP_<status>`` when absent).
    """
    entries = _error_entries(body)
    for entry in entries:
        cls = _ERRORS_BY_CODE.get(entry.get("code"))
        if cls is not None:
            return cls(
                entry["code"],
                f"[ERROR] {entry.get('title') or entry['code']} (status={status})",
                status=status,
                detail=entry.get("detail"),
            )
    if entries:
        first = entries[0]
        code = first.get("code") or f"HTTP_{status}"
        title = first.get("title") or code
        detail = first.get("detail")
    else:
        code = f"HTTP_{status}"
        title = f"HTTP {status}"
        detail = fallback_detail or None
    message = f"[ERROR] {title} (status={status}, code={code})"
    if detail:
        message += f"\n{detail}"
    return ApiError(code, message, status=status, detail=detail)
