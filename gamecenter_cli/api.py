"""
HTTP request layer, JWT signing, and error mapping for gamecenter-cli.
"""

import http.client
import json
import re
import sys
import time
import urllib.error
import urllib.parse
import urllib.request
import uuid

import jwt

from gamecenter_cli import config
from gamecenter_cli.exceptions import CliError, HTTPError, SetupError, api_error_from_body

_RETRYABLE_HTTP_CODES = frozenset({429, 500, 502, 503, 504})

# Re-sign when the current token has less than this many seconds left.
_TOKEN_REFRESH_MARGIN_SECONDS = 60


# ---------------------------------------------------------------------------
# Security helpers
# ---------------------------------------------------------------------------


def _mask_token(token):
    """Show only first 6 chars of a token for safe logging."""
    return token[:6] + "..." if len(token) > 6 else token


def _safe_json_parse(text, context="input"):
    """Parse JSON with friendly error message on failure."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise CliError(f"[ERROR] Invalid JSON in {context}: {e.msg} at position {e.pos}") from None


def _sanitize_error(body, max_len=500):
    """Truncate and clean error body for safe display."""
    if not body:
        return ""
    cleaned = re.sub(r"<[^>]+>", "", body)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    if len(cleaned) > max_len:
        return cleaned[:max_len] + "... [truncated]"
    return cleaned


# ---------------------------------------------------------------------------
# JWT signing
# ---------------------------------------------------------------------------


def _read_private_key(path):
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        raise SetupError(
            f"[SETUP_NEEDED] Cannot read private key {path}: {e.strerror}"
        ) from e


def make_token(cli_config, private_key, now=None):
    """Sign an App Store Connect API token (ES256). Returns (token, expires_at)."""
    issued_at = int(now if now is not None else time.time())
    expires_at = issued_at + config.JWT_LIFETIME_SECONDS
    payload = {
        "iss": cli_config.issuer_id,
        "iat": issued_at,
        "exp": expires_at,
        "aud": config.JWT_AUDIENCE,
    }
    headers = {"kid": cli_config.api_key_id, "typ": "JWT"}
    try:
        token = jwt.encode(payload, private_key, algorithm="ES256", headers=headers)
    except (ValueError, TypeError, jwt.PyJWTError) as e:
        raise SetupError(
            f"[SETUP_NEEDED] Could not sign API token with key {cli_config.api_key_id}: {e}"
        ) from e
    return token, expires_at


class TokenProvider:
    """Hands out a bearer token, re-signing shortly before it expires."""

    def __init__(self, cli_config, clock=time.time):
        self._config = cli_config
        self._clock = clock
        self._private_key = None
        self._token = None
        self._expires_at = 0

    def token(self):
        now = self._clock()
        if self._token and self._expires_at - now > _TOKEN_REFRESH_MARGIN_SECONDS:
            return self._token
        if self._private_key is None:
            self._private_key = _read_private_key(self._config.private_key_path)
        self._token, self._expires_at = make_token(self._config, self._private_key, now=now)
        _log_http_event(
            phase="sign", key_id=_mask_token(self._config.api_key_id), expires_at=self._expires_at
        )
        return self._token


# ---------------------------------------------------------------------------
# HTTP request layer
# ---------------------------------------------------------------------------


def _log_http_event(**fields):
    """Emit structured HTTP logs to stderr when enabled."""
    if not config.HTTP_LOG_ENABLED:
        return
    print("[HTTP] " + json.dumps(fields, ensure_ascii=False, sort_keys=True), file=sys.stderr)


def _error_envelope(message, status=None, request_id=None, retryable=None, detail=None):
    """Build a consistent CLI-safe HTTP error message."""
    meta = []
    if status is not None:
        meta.append(f"status={status}")
    if request_id:
        meta.append(f"request_id={request_id}")
    if retryable is not None:
        meta.append(f"retryable={'yes' if retryable else 'no'}")
    suffix = f" ({', '.join(meta)})" if meta else ""
    body = f"[ERROR] {message}{suffix}"
    if detail:
        body += f"\n{detail}"
    return body


def _parse_retry_after(headers):
    """Return Retry-After seconds from response headers, or None."""
    if not headers:
        return None
    value = headers.get("Retry-After")
    if value is None:
        return None
    try:
        secs = int(str(value).strip())
    except ValueError:
        return None
    return max(0, secs)


def _http_request(url, data=None, headers=None, method="POST", idempotent=False):
    """Make an HTTP request with standard error handling.
    Returns parsed JSON on success ({} for an empty body, e.g. 204).
    Raises HTTPError for HTTP errors (caller handles specific codes).
    Raises CliError on network/timeout/parse errors."""
    body = json.dumps(data).encode("utf-8") if data is not None else None
    request_id = (headers or {}).get("X-Request-Id")
    max_attempts = 1 + max(0, config.HTTP_MAX_RETRIES if idempotent else 0)
    timeout = max(1, config.HTTP_TIMEOUT_SECONDS)
    last_timeout = False
    last_url_error = None

    for attempt in range(max_attempts):
        start = time.perf_counter()
        req = urllib.request.Request(url, data=body, headers=headers or {}, method=method)
        _log_http_event(
            phase="request",
            method=method,
            url=url,
            attempt=attempt + 1,
            max_attempts=max_attempts,
            idempotent=idempotent,
            request_id=request_id,
            timeout_seconds=timeout,
        )
        try:
            with urllib.request.urlopen(req, timeout=timeout) as resp:
                content_type = resp.headers.get("Content-Type", "")
                raw = resp.read(config.HTTP_MAX_RESPONSE_BYTES + 1)
                if len(raw) > config.HTTP_MAX_RESPONSE_BYTES:
                    raise CliError(
                        "[ERROR] Response too large from App Store Connect API "
                        f"(>{config.HTTP_MAX_RESPONSE_BYTES} bytes)."
                    )
                _log_http_event(
                    phase="response",
                    method=method,
                    url=url,
                    attempt=attempt + 1,
                    status=getattr(resp, "status", 200),
                    content_type=content_type,
                    bytes=len(raw),
                    latency_ms=round((time.perf_counter() - start) * 1000, 2),
                    request_id=request_id,
                )
                if not raw.strip():
                    return {}
                try:
                    return json.loads(raw.decode("utf-8"))
                except (json.JSONDecodeError, UnicodeDecodeError):
                    if content_type and "json" not in content_type.lower():
                        raise CliError(
                            f"[ERROR] Unexpected Content-Type from server "
                            f"({content_type}). This may be a proxy or "
                            "network issue."
                        ) from None
                    raise CliError(
                        "[ERROR] Unexpected response from App Store Connect API (not valid JSON)."
                    ) from None
        except urllib.error.HTTPError as e:
            error_body = (
                e.read(config.HTTP_MAX_RESPONSE_BYTES).decode("utf-8", errors="replace")
                if e.fp
                else ""
            )
            retryable = e.code in _RETRYABLE_HTTP_CODES
            can_retry = idempotent and attempt < max_attempts - 1 and retryable
            _log_http_event(
                phase="response",
                method=method,
                url=url,
                attempt=attempt + 1,
                status=e.code,
                retryable=retryable,
                will_retry=can_retry,
                latency_ms=round((time.perf_counter() - start) * 1000, 2),
                request_id=request_id,
            )
            if can_retry:
                retry_after = _parse_retry_after(getattr(e, "headers", None))
                if retry_after is None:
                    retry_after = config.HTTP_RETRY_BASE_SECONDS * (2**attempt)
                time.sleep(retry_after)
                continue
            raise HTTPError(e.code, e.reason, error_body, headers=e.headers) from e
        except TimeoutError as e:
            last_timeout = True
            _log_http_event(
                phase="network_error",
                method=method,
                url=url,
                attempt=attempt + 1,
                error="timeout",
                will_retry=idempotent and attempt < max_attempts - 1,
                request_id=request_id,
            )
            if idempotent and attempt < max_attempts - 1:
                time.sleep(config.HTTP_RETRY_BASE_SECONDS * (2**attempt))
                continue
            raise CliError(
                _error_envelope(
                    f"Request timed out after {timeout} seconds. "
                    "Is App Store Connect reachable?",
                    request_id=request_id,
                    retryable=False,
                )
            ) from e
        except urllib.error.URLError as e:
            last_url_error = e.reason
            _log_http_event(
                phase="network_error",
                method=method,
                url=url,
                attempt=attempt + 1,
                error=f"url_error: {e.reason}",
                will_retry=idempotent and attempt < max_attempts - 1,
                request_id=request_id,
            )
            if idempotent and attempt < max_attempts - 1:
                time.sleep(config.HTTP_RETRY_BASE_SECONDS * (2**attempt))
                continue
            raise CliError(
                _error_envelope(
                    f"Connection failed: {e.reason}",
                    request_id=request_id,
                    retryable=False,
                )
            ) from e
        except (OSError, http.client.HTTPException) as e:
            # urllib does not wrap dropped connections or short reads in URLError
            reason = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
            last_url_error = reason
            _log_http_event(
                phase="network_error",
                method=method,
                url=url,
                attempt=attempt + 1,
                error=f"connection_error: {reason}",
                will_retry=idempotent and attempt < max_attempts - 1,
                request_id=request_id,
            )
            if idempotent and attempt < max_attempts - 1:
                time.sleep(config.HTTP_RETRY_BASE_SECONDS * (2**attempt))
                continue
            raise CliError(
                _error_envelope(
                    f"Connection failed: {reason}",
                    request_id=request_id,
                    retryable=False,
                )
            ) from e

    if last_timeout:
        raise CliError(
            _error_envelope(
                f"Request timed out after {timeout} seconds. Is App Store Connect reachable?",
                request_id=request_id,
                retryable=False,
            )
        )
    if last_url_error is not None:
        raise CliError(
            _error_envelope(
                f"Connection failed: {last_url_error}",
                request_id=request_id,
                retryable=False,
            )
        )
    raise CliError(_error_envelope("Request failed.", request_id=request_id))


def api_request(tokens, method, path, data=None, params=None):
    """Make an authenticated App Store Connect request.

    GET and DELETE are treated as idempotent and retried on transient
    failures. Error responses are mapped to ApiError subclasses by code.
    """
    url = config.BASE_URL + path
    if params:
        url += "?" + urllib.parse.urlencode(params, safe=",[]")
    headers = {
        "Authorization": f"Bearer {tokens.token()}",
        "Accept": "application/json",
        "X-Request-Id": str(uuid.uuid4()),
    }
    if data is not None:
        headers["Content-Type"] = "application/json"
    try:
        return _http_request(
            url, data, headers, method, idempotent=method in ("GET", "DELETE")
        )
    except HTTPError as e:
        if e.code in (401, 403):
            raise SetupError(
                f"[TOKEN_INVALID] App Store Connect rejected the API key (HTTP {e.code}). "
                "Check issuerId, apiKeyId and the .p8 key in your config file."
            ) from e
        if e.code == 429:
            raise CliError(
                "[ERROR] Rate limit reached on App Store Connect. Wait a minute and retry."
            ) from e
        raise api_error_from_body(e.code, e.body, fallback_detail=_sanitize_error(e.body)) from e


def _expect_object_response(result, operation):
    """Ensure API helpers only return JSON objects (dict)."""
    if isinstance(result, dict):
        return result
    raise CliError(
        f"[ERROR] Unexpected {operation} response shape: "
        f"expected JSON object, got {type(result).__name__}."
    )
