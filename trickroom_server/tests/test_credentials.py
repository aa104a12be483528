"""Tests for voice credentials and the token endpoint."""

import json
import time
import urllib.error
import urllib.request

import jwt
import pytest

from trickroom_server.network.http_api import VoiceTokenServer
from trickroom_server.voice import CredentialError, SignedTokenIssuer

CERTIFICATE = "test-app-certificate-0123456789abcdef"


class FakeClock:
    def __init__(self, now: float):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestSignedTokenIssuer:
    """Tests for SignedTokenIssuer."""

    def test_issue_and_verify(self):
        """Test an issued token verifies and carries its claims."""
        issuer = SignedTokenIssuer("app", CERTIFICATE, ttl_seconds=600)

        payload = issuer.verify(issuer.issue("ROOM01", 1002))

        assert payload["app_id"] == "app"
        assert payload["channel"] == "ROOM01"
        assert payload["uid"] == 1002
        assert payload["role"] == "publisher"
        assert payload["exp"] - payload["iat"] == 600

    def test_standard_jwt(self):
        """Test tokens are HS256 JWTs readable with the certificate."""
        token = SignedTokenIssuer("app", CERTIFICATE).issue("ROOM01", 1000)
        assert jwt.get_unverified_header(token)["alg"] == "HS256"
        assert jwt.decode(token, CERTIFICATE, algorithms=["HS256"])["channel"] == "ROOM01"

    def test_expired(self):
        """Test a token past its lifetime is refused."""
        clock = FakeClock(time.time() - 120)
        issuer = SignedTokenIssuer("app", CERTIFICATE, ttl_seconds=60, clock=clock)
        token = issuer.issue("ROOM01", 1000)

        with pytest.raises(CredentialError, match="expired"):
            issuer.verify(token)

    def test_other_certificate(self):
        """Test a token signed with another certificate is refused."""
        token = SignedTokenIssuer("app", CERTIFICATE).issue("ROOM01", 1000)
        with pytest.raises(CredentialError, match="signature"):
            SignedTokenIssuer("app", "another-certificate-of-32-bytes!!").verify(token)

    def test_tampered(self):
        """Test an edited token is refused."""
        issuer = SignedTokenIssuer("app", CERTIFICATE)
        header, _, signature = issuer.issue("ROOM01", 1000).split(".")
        other_claims = issuer.issue("ROOM02", 1000).split(".")[1]
        with pytest.raises(CredentialError):
            issuer.verify(f"{header}.{other_claims}.{signature}")

    @pytest.mark.parametrize("token", ["", "abc", "a.b.c", "!!!.???"])
    def test_malformed(self, token):
        """Test garbage is refused."""
        with pytest.raises(CredentialError):
            SignedTokenIssuer("app", CERTIFICATE).verify(token)

    def test_not_configured(self):
        """Test issuing without credentials fails."""
        with pytest.raises(CredentialError):
            SignedTokenIssuer("", "").issue("ROOM01", 1000)

    def test_empty_channel(self):
        """Test a channel name is required."""
        with pytest.raises(CredentialError):
            SignedTokenIssuer("app", CERTIFICATE).issue("", 1000)


@pytest.fixture
def token_server():
    server = VoiceTokenServer(("127.0.0.1", 0), SignedTokenIssuer("app", CERTIFICATE))
    server.start_background()
    yield server
    server.shutdown()
    server.server_close()


def get(server, path):
    host, port = server.server_address[:2]
    try:
        with urllib.request.urlopen(f"http://{host}:{port}{path}", timeout=5) as response:
            return response.status, json.loads(response.read())
    except urllib.error.HTTPError as e:
        return e.code, json.loads(e.read())


class TestVoiceTokenEndpoint:
    """Tests for the HTTP token endpoint."""

    def test_token(self, token_server):
        """Test a valid request returns a verifiable token."""
        status, body = get(token_server, "/agora-token?channelName=ROOM01&uid=1001")
        assert status == 200
        assert token_server.issuer.verify(body["token"])["uid"] == 1001

    @pytest.mark.parametrize(
        "query",
        ["", "?channelName=ROOM01", "?uid=1001", "?channelName=ROOM01&uid=abc"],
    )
    def test_missing_parameters(self, token_server, query):
        """Test both parameters are required."""
        status, body = get(token_server, f"/agora-token{query}")
        assert status == 400
        assert body == {"error": "channelName and uid are required"}

    def test_unknown_path(self, token_server):
        """Test other paths are not served."""
        status, _ = get(token_server, "/other")
        assert status == 404

    def test_not_configured(self):
        """Test an unconfigured issuer reports the service unavailable."""
        server = VoiceTokenServer(("127.0.0.1", 0), SignedTokenIssuer("", ""))
        server.start_background()
        try:
            status, body = get(server, "/agora-token?channelName=ROOM01&uid=1")
        finally:
            server.shutdown()
            server.server_close()
        assert status == 503
        assert "error" in body
