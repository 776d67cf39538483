"""Tests for yoga_client.connection: TLS guards, native timeouts, headers."""

import datetime
import logging
import ssl
from unittest.mock import patch

import pytest

from yoga_client.connection import (
    build_request_headers,
    create_connector,
    create_native_timeout,
    create_ssl_context,
)


def _make_ca_pem() -> str:
    """Generate a throwaway self-signed CA certificate."""
    from cryptography import x509
    from cryptography.hazmat.primitives import hashes, serialization
    from cryptography.hazmat.primitives.asymmetric import ec
    from cryptography.x509.oid import NameOID

    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "yoga-test-ca")])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=1))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM).decode()


def _trusted_names(ctx: ssl.SSLContext) -> list[str]:
    return [dict(rdn[0] for rdn in c["subject"]).get("commonName") for c in ctx.get_ca_certs()]


class TestInsecureGuard:
    @pytest.mark.parametrize("verify", [None, True])
    def test_verified_by_default(self, verify):
        ctx = create_ssl_context(verify=verify)
        assert ctx.verify_mode == ssl.CERT_REQUIRED
        assert ctx.check_hostname is True

    def test_verify_false_alone_is_ignored(self, monkeypatch, caplog):
        monkeypatch.delenv("YOGA_ALLOW_INSECURE", raising=False)

        with caplog.at_level(logging.WARNING, logger="yoga_client.connection"):
            ctx = create_ssl_context(verify=False)

        assert ctx.verify_mode == ssl.CERT_REQUIRED
        assert "set YOGA_ALLOW_INSECURE=1 to confirm" in caplog.text

    def test_verify_false_with_allow_insecure(self, monkeypatch):
        monkeypatch.setenv("YOGA_ALLOW_INSECURE", "1")

        ctx = create_ssl_context(verify=False)

        assert ctx.verify_mode == ssl.CERT_NONE
        assert ctx.check_hostname is False

    def test_allow_insecure_alone_changes_nothing(self, monkeypatch):
        monkeypatch.setenv("YOGA_ALLOW_INSECURE", "1")
        assert create_ssl_context(verify=True).verify_mode == ssl.CERT_REQUIRED


class TestCaBundle:
    def test_bundle_is_trusted(self, tmp_path):
        ca_file = tmp_path / "ca.pem"
        ca_file.write_text(_make_ca_pem())

        ctx = create_ssl_context(ca_bundle=str(ca_file))

        assert "yoga-test-ca" in _trusted_names(ctx)
        assert ctx.verify_mode == ssl.CERT_REQUIRED

    def test_missing_bundle_raises(self, tmp_path):
        with pytest.raises(OSError):
            create_ssl_context(ca_bundle=str(tmp_path / "nonexistent.pem"))

    def test_connector_uses_bundle(self, tmp_path):
        ca_file = tmp_path / "ca.pem"
        ca_file.write_text(_make_ca_pem())

        # TCPConnector wants a running loop; only its ssl argument matters here
        with patch("aiohttp.TCPConnector") as connector_cls:
            create_connector(ca_bundle=str(ca_file))

        ctx = connector_cls.call_args.kwargs["ssl"]
        assert "yoga-test-ca" in _trusted_names(ctx)


class TestNativeTimeout:
    def test_separate_connect_and_read(self):
        timeout = create_native_timeout(total=60, connect=10, read=30)
        assert (timeout.total, timeout.connect, timeout.sock_connect, timeout.sock_read) == (
            60,
            10,
            10,
            30,
        )

    def test_read_defaults_to_total(self):
        assert create_native_timeout(total=5, connect=1).sock_read == 5


class TestBuildRequestHeaders:
    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_token_never_sends_bearer(self, token):
        assert build_request_headers(token) == {"Content-Type": "application/json"}

    def test_token_added(self):
        assert build_request_headers("abc")["Authorization"] == "Bearer abc"

    def test_caller_overrides_case_insensitively(self):
        headers = build_request_headers("abc", {"authorization": "Basic xyz"})
        assert headers == {"Content-Type": "application/json", "authorization": "Basic xyz"}
