"""Tests for api.py: security helpers, JWT signing, HTTP handling, error mapping."""

import http.client
import io
import json
import urllib.error
from unittest.mock import MagicMock, patch

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from gamecenter_cli import config
from gamecenter_cli.api import (
    TokenProvider,
    _expect_object_response,
    _http_request,
    _mask_token,
    _parse_retry_after,
    _safe_json_parse,
    _sanitize_error,
    api_request,
    make_token,
)
from gamecenter_cli.config import CliConfig
from gamecenter_cli.exceptions import (
    AlreadyExistsError,
    ApiError,
    CliError,
    DuplicateVendorIdError,
    HTTPError,
    SetupError,
)


@pytest.fixture
def ec_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def key_file(tmp_path, ec_key):
    pem = ec_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    path = tmp_path / "AuthKey_TEST.p8"
    path.write_bytes(pem)
    return path


@pytest.fixture
def cli_config(key_file):
    return CliConfig(
        issuer_id="issuer-123",
        api_key_id="KEYID12345",
        private_key_path=str(key_file),
        app_id="987654",
    )


class _StaticTokens:
    def token(self):
        return "test-token"


def _ok_response(body=b'{"data": {"id": "x"}}', content_type="application/json"):
    cm = MagicMock()
    resp = cm.__enter__.return_value
    resp.headers.get.return_value = content_type
    resp.status = 200
    resp.read.return_value = body
    return cm


def _http_error(code, body=b"", headers=None):
    return urllib.error.HTTPError(
        "https://api.appstoreconnect.apple.com/",
        code,
        "error",
        headers or {},
        io.BytesIO(body),
    )


class TestMaskToken:
    def test_long_token(self):
        assert _mask_token("abcdef1234567890") == "abcdef..."

    def test_short_token(self):
        assert _mask_token("abc") == "abc"


class TestSafeJsonParse:
    def test_valid_json(self):
        assert _safe_json_parse('[{"a": 1}]') == [{"a": 1}]

    def test_invalid_json_names_context(self):
        with pytest.raises(CliError) as exc_info:
            _safe_json_parse("{bad", "batch.json")
        assert "Invalid JSON in batch.json" in str(exc_info.value)


class TestSanitizeError:
    def test_strips_html(self):
        assert _sanitize_error("<h1>Bad</h1>  <p>gateway</p>") == "Bad gateway"

    def test_truncates(self):
        out = _sanitize_error("x" * 600)
        assert out.endswith("... [truncated]")
        assert len(out) == 500 + len("... [truncated]")

    def test_empty(self):
        assert _sanitize_error("") == ""


class TestParseRetryAfter:
    def test_integer_header(self):
        assert _parse_retry_after({"Retry-After": "3"}) == 3

    def test_missing_or_garbage(self):
        assert _parse_retry_after({}) is None
        assert _parse_retry_after({"Retry-After": "soon"}) is None


class TestMakeToken:
    def test_claims_and_headers(self, cli_config, ec_key, key_file):
        token, expires_at = make_token(cli_config, key_file.read_text(), now=1_700_000_000)
        assert expires_at == 1_700_000_000 + 20 * 60

        headers = jwt.get_unverified_header(token)
        assert headers["alg"] == "ES256"
        assert headers["kid"] == "KEYID12345"
        assert headers["typ"] == "JWT"

        claims = jwt.decode(
            token,
            ec_key.public_key(),
            algorithms=["ES256"],
            audience="appstoreconnect-v1",
            options={"verify_exp": False, "verify_iat": False},
        )
        assert claims["iss"] == "issuer-123"
        assert claims["iat"] == 1_700_000_000
        assert claims["exp"] == expires_at

    def test_bad_key_is_setup_error(self, cli_config):
        with pytest.raises(SetupError) as exc_info:
            make_token(cli_config, "not a pem key")
        assert "[SETUP_NEEDED]" in str(exc_info.value)
        assert exc_info.value.exit_code == 2


class TestTokenProvider:
    def test_reuses_token_until_near_expiry(self, cli_config):
        now = [1_000.0]
        provider = TokenProvider(cli_config, clock=lambda: now[0])
        first = provider.token()
        now[0] += 60
        assert provider.token() == first

        now[0] += 20 * 60
        assert provider.token() != first

    def test_missing_key_file_is_setup_error(self, tmp_path):
        cfg = CliConfig("iss", "KEY", str(tmp_path / "nope.p8"), "1")
        with pytest.raises(SetupError) as exc_info:
            TokenProvider(cfg).token()
        assert "Cannot read private key" in str(exc_info.value)


class TestHttpRequest:
    @patch("gamecenter_cli.api.urllib.request.urlopen")
    def test_parses_json(self, mock_urlopen):
        mock_urlopen.return_value = _ok_response(b'{"data": []}')
        assert _http_request("https://example.test/", method="GET") == {"data": []}

    @patch("gamecenter_cli.api.urllib.request.urlopen")
    def test_empty_body_returns_empty_dict(self, mock_urlopen):
        mock_urlopen.return_value = _ok_response(b"", content_type="")
        assert _http_request("https://example.test/x", method="DELETE") == {}

    @patch("gamecenter_cli.api.urllib.request.urlopen")
    def test_sends_json_body(self, mock_urlopen):
        mock_urlopen.return_value = _ok_response()
        _http_request("https://example.test/", {"a": 1}, {"X-Request-Id": "r1"})
        req = mock_urlopen.call_args.args[0]
        assert json.loads(req.data.decode("utf-8")) == {"a": 1}
        assert req.get_method() == "POST"

    @patch("gamecenter_cli.api.time.sleep")
    @patch("gamecenter_cli.api.urllib.request.urlopen")
    def test_retries_503_for_idempotent_request(self, mock_urlopen, mock_sleep):
        mock_urlopen.side_effect = [_http_error(503, b"busy"), _ok_response()]
        result = _http_request("https://example.test/", method="GET", idempotent=True)
        assert result == {"data": {"id": "x"}}
        assert mock_urlopen.call_count == 2
        mock_sleep.assert_called_once()

    @patch("gamecenter_cli.api.urllib.request.urlopen")
    def test_does_not_retry_post(self, mock_urlopen):
        mock_urlopen.side_effect = _http_error(503, b"busy")
        with pytest.raises(HTTPError) as exc_info:
            _http_request("https://example.test/", {"x": 1})
        assert exc_info.value.code == 503
        assert exc_info.value.body == "busy"
        assert mock_urlopen.call_count == 1

    @patch("gamecenter_cli.api.time.sleep")
    @patch("gamecenter_cli.api.urllib.request.urlopen")
    def test_connection_failure_after_retries(self, mock_urlopen, mock_sleep):
        mock_urlopen.side_effect = urllib.error.URLError("refused")
        with pytest.raises(CliError) as exc_info:
            _http_request("https://example.test/", method="GET", idempotent=True)
        assert "Connection failed" in str(exc_info.value)
        assert mock_urlopen.call_count == 1 + config.HTTP_MAX_RETRIES

    @patch("gamecenter_cli.api.urllib.request.urlopen")
    def test_response_size_limit(self, mock_urlopen, monkeypatch):
        monkeypatch.setattr("gamecenter_cli.api.config.HTTP_MAX_RESPONSE_BYTES", 4)
        mock_urlopen.return_value = _ok_response(b"12345")
        with pytest.raises(CliError) as exc_info:
            _http_request("https://example.test/")
        assert "Response too large" in str(exc_info.value)

    @patch("gamecenter_cli.api.urllib.request.urlopen")
    def test_html_content_type_gives_proxy_message(self, mock_urlopen):
        mock_urlopen.return_value = _ok_response(b"<html>oops</html>", "text/html")
        with pytest.raises(CliError) as exc_info:
            _http_request("https://example.test/")
        assert "proxy" in str(exc_info.value)

    @patch("gamecenter_cli.api.urllib.request.urlopen")
    def test_http_log_goes_to_stderr(self, mock_urlopen, monkeypatch, capsys):
        monkeypatch.setattr("gamecenter_cli.api.config.HTTP_LOG_ENABLED", True)
        mock_urlopen.return_value = _ok_response()
        _http_request("https://example.test/", method="GET")
        err = capsys.readouterr().err
        assert '[HTTP] {"' in err
        assert '"phase": "request"' in err

    @patch("gamecenter_cli.api.urllib.request.urlopen")
    def test_dropped_connection_is_cli_error(self, mock_urlopen):
        mock_urlopen.side_effect = http.client.RemoteDisconnected("closed")
        with pytest.raises(CliError) as exc_info:
            _http_request("https://example.test/", {"x": 1})
        assert "Connection failed: RemoteDisconnected: closed" in str(exc_info.value)
        assert mock_urlopen.call_count == 1

    @patch("gamecenter_cli.api.urllib.request.urlopen")
    def test_connection_reset_is_cli_error(self, mock_urlopen):
        mock_urlopen.side_effect = ConnectionResetError(104, "Connection reset by peer")
        with pytest.raises(CliError) as exc_info:
            _http_request("https://example.test/", {"x": 1})
        assert "Connection failed" in str(exc_info.value)

    @patch("gamecenter_cli.api.urllib.request.urlopen")
    def test_short_read_is_cli_error(self, mock_urlopen):
        cm = _ok_response()
        cm.__enter__.return_value.read.side_effect = http.client.IncompleteRead(b"{")
        mock_urlopen.return_value = cm
        with pytest.raises(CliError) as exc_info:
            _http_request("https://example.test/", {"x": 1})
        assert "Connection failed: IncompleteRead" in str(exc_info.value)

    @patch("gamecenter_cli.api.time.sleep")
    @patch("gamecenter_cli.api.urllib.request.urlopen")
    def test_dropped_connection_retried_for_get(self, mock_urlopen, mock_sleep):
        mock_urlopen.side_effect = [http.client.RemoteDisconnected("closed"), _ok_response()]
        result = _http_request("https://example.test/", method="GET", idempotent=True)
        assert result == {"data": {"id": "x"}}
        assert mock_urlopen.call_count == 2


class TestApiRequest:
    @patch("gamecenter_cli.api._http_request")
    def test_builds_url_and_headers(self, mock_http):
        mock_http.return_value = {"data": []}
        api_request(
            _StaticTokens(),
            "GET",
            "/v1/gameCenterDetails/g1/gameCenterAchievements",
            params={"fields[gameCenterAchievements]": "vendorIdentifier,points", "limit": 200},
        )
        url, data, headers, method = mock_http.call_args.args
        assert url == (
            "https://api.appstoreconnect.apple.com/v1/gameCenterDetails/g1/"
            "gameCenterAchievements?fields[gameCenterAchievements]=vendorIdentifier,points"
            "&limit=200"
        )
        assert data is None
        assert method == "GET"
        assert headers["Authorization"] == "Bearer test-token"
        assert headers["Accept"] == "application/json"
        assert headers["X-Request-Id"]
        assert "Content-Type" not in headers
        assert mock_http.call_args.kwargs["idempotent"] is True

    @patch("gamecenter_cli.api._http_request")
    def test_post_is_not_idempotent(self, mock_http):
        mock_http.return_value = {}
        api_request(_StaticTokens(), "POST", "/v1/gameCenterAchievements", data={"data": {}})
        headers = mock_http.call_args.args[2]
        assert headers["Content-Type"] == "application/json"
        assert mock_http.call_args.kwargs["idempotent"] is False

    @patch("gamecenter_cli.api._http_request")
    def test_unauthorized_is_setup_error(self, mock_http):
        mock_http.side_effect = HTTPError(401, "Unauthorized", "")
        with pytest.raises(SetupError) as exc_info:
            api_request(_StaticTokens(), "GET", "/v1/apps/1/gameCenterDetail")
        assert "[TOKEN_INVALID]" in str(exc_info.value)

    @patch("gamecenter_cli.api._http_request")
    def test_rate_limit_is_cli_error(self, mock_http):
        mock_http.side_effect = HTTPError(429, "Too Many Requests", "")
        with pytest.raises(CliError) as exc_info:
            api_request(_StaticTokens(), "POST", "/v1/gameCenterAchievements", data={})
        assert "Rate limit" in str(exc_info.value)
        assert not isinstance(exc_info.value, SetupError)

    @patch("gamecenter_cli.api._http_request")
    def test_duplicate_vendor_id_is_typed(self, mock_http):
        body = json.dumps(
            {"errors": [{"code": "VENDOR_IDENTIFIER_DUPLICATE", "title": "Duplicate"}]}
        )
        mock_http.side_effect = HTTPError(409, "Conflict", body)
        with pytest.raises(DuplicateVendorIdError) as exc_info:
            api_request(_StaticTokens(), "POST", "/v1/gameCenterAchievements", data={})
        assert exc_info.value.status == 409

    @patch("gamecenter_cli.api._http_request")
    def test_entity_exists_is_typed(self, mock_http):
        body = json.dumps({"errors": [{"code": "ENTITY_ALREADY_EXISTS"}]})
        mock_http.side_effect = HTTPError(409, "Conflict", body)
        with pytest.raises(AlreadyExistsError):
            api_request(
                _StaticTokens(), "POST", "/v1/gameCenterAchievementLocalizations", data={}
            )

    @patch("gamecenter_cli.api._http_request")
    def test_non_json_error_body_keeps_detail(self, mock_http):
        mock_http.side_effect = HTTPError(500, "Server Error", "<h1>upstream down</h1>")
        with pytest.raises(ApiError) as exc_info:
            api_request(_StaticTokens(), "POST", "/v1/gameCenterAchievements", data={})
        assert exc_info.value.code == "HTTP_500"
        assert "upstream down" in str(exc_info.value)


class TestExpectObjectResponse:
    def test_dict_passes(self):
        assert _expect_object_response({"a": 1}, "GET /x") == {"a": 1}

    def test_list_rejected(self):
        with pytest.raises(CliError) as exc_info:
            _expect_object_response([], "GET /x")
        assert "Unexpected GET /x response shape" in str(exc_info.value)
