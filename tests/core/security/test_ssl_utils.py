"""Tests for SSL context construction for private CAs."""

import ssl

import pytest

from core.errors.exceptions import ConfigurationError
from core.security.ssl_utils import build_ssl_context, get_ca_bundle_path


class TestGetCaBundlePath:
    @pytest.fixture(autouse=True)
    def clear_env(self, monkeypatch):
        for name in ("SSL_CERT_FILE", "REQUESTS_CA_BUNDLE", "CURL_CA_BUNDLE"):
            monkeypatch.delenv(name, raising=False)

    def test_none_when_unset(self):
        assert get_ca_bundle_path() is None

    def test_ssl_cert_file_wins(self, monkeypatch):
        monkeypatch.setenv("SSL_CERT_FILE", "/a.pem")
        monkeypatch.setenv("REQUESTS_CA_BUNDLE", "/b.pem")
        assert get_ca_bundle_path() == "/a.pem"

    def test_falls_back_to_requests_bundle(self, monkeypatch):
        monkeypatch.setenv("REQUESTS_CA_BUNDLE", "/b.pem")
        assert get_ca_bundle_path() == "/b.pem"


class TestBuildSslContext:
    @pytest.mark.parametrize("root_ca", [None, ""])
    def test_no_root_ca_uses_defaults(self, root_ca):
        assert build_ssl_context(root_ca) is None

    @pytest.mark.parametrize(
        "root_ca",
        [
            "not a certificate",
            "-----BEGIN CERTIFICATE-----\nbm90IGEgY2VydA==\n-----END CERTIFICATE-----\n",
        ],
    )
    def test_invalid_pem(self, root_ca, monkeypatch):
        for name in ("SSL_CERT_FILE", "REQUESTS_CA_BUNDLE", "CURL_CA_BUNDLE"):
            monkeypatch.delenv(name, raising=False)

        with pytest.raises(ConfigurationError) as exc_info:
            build_ssl_context(root_ca)

        assert str(exc_info.value) == 'invalid "rootCA" PEM'
        assert isinstance(exc_info.value.cause, (ssl.SSLError, ValueError))
