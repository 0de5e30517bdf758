"""
Unit tests for client configuration.
"""

import logging

import pytest

from httpmodel import __version__
from httpmodel.config import ClientConfig, default_ca_bundle
from httpmodel.exceptions import ClientConfigurationError


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "HTTP_CA_BUNDLE", "SSL_CERT_FILE", "HTTP_TIMEOUT", "HTTP_FOLLOW_REDIRECTS",
        "HTTP_COOKIE_JAR", "HTTP_USER_AGENT", "HTTP_REFERER", "HTTP_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestClientConfigDefaults:
    """Tests for default values."""

    def test_defaults(self):
        """Test the dataclass defaults."""
        config = ClientConfig()

        assert config.ca_bundle is None
        assert config.timeout is None
        assert config.follow_redirects is True
        assert config.cookie_jar is None
        assert config.user_agent == f"httpmodel/{__version__}"
        assert config.files == {}
        assert config.log_level == "WARNING"

    def test_files_not_shared(self):
        """Test each config gets its own files dict."""
        first = ClientConfig()
        first.files["doc"] = "/tmp/doc"

        assert ClientConfig().files == {}


class TestClientConfigFromEnv:
    """Tests for environment loading."""

    def test_reads_variables(self, clean_env, tmp_path):
        """Test every supported variable."""
        clean_env.setenv("HTTP_CA_BUNDLE", str(tmp_path / "ca.pem"))
        clean_env.setenv("HTTP_TIMEOUT", "2.5")
        clean_env.setenv("HTTP_FOLLOW_REDIRECTS", "off")
        clean_env.setenv("HTTP_COOKIE_JAR", str(tmp_path / "jar.txt"))
        clean_env.setenv("HTTP_USER_AGENT", "agent/2")
        clean_env.setenv("HTTP_REFERER", "http://ref.example/")
        clean_env.setenv("HTTP_LOG_LEVEL", "debug")

        config = ClientConfig.from_env()

        assert config.ca_bundle == str(tmp_path / "ca.pem")
        assert config.timeout == 2.5
        assert config.follow_redirects is False
        assert config.cookie_jar == str(tmp_path / "jar.txt")
        assert config.user_agent == "agent/2"
        assert config.referer == "http://ref.example/"
        assert config.log_level == "DEBUG"

    def test_defaults_without_variables(self, clean_env):
        """Test values when nothing is set."""
        config = ClientConfig.from_env()

        assert config.timeout is None
        assert config.follow_redirects is True
        assert config.log_level == "WARNING"

    def test_invalid_timeout(self, clean_env):
        """Test a non-numeric HTTP_TIMEOUT."""
        clean_env.setenv("HTTP_TIMEOUT", "soon")

        with pytest.raises(ClientConfigurationError):
            ClientConfig.from_env()

    def test_ca_bundle_lookup_order(self, clean_env):
        """Test HTTP_CA_BUNDLE wins over SSL_CERT_FILE."""
        clean_env.setenv("SSL_CERT_FILE", "/from/ssl")
        assert default_ca_bundle() == "/from/ssl"

        clean_env.setenv("HTTP_CA_BUNDLE", "/from/http")
        assert default_ca_bundle() == "/from/http"


class TestClientConfigValidation:
    """Tests for validate()."""

    def test_valid(self, tmp_path):
        """Test a sensible config passes."""
        ClientConfig(timeout=1.0, cookie_jar=str(tmp_path / "jar.txt")).validate()

    def test_timeout_must_be_positive(self):
        """Test zero and negative timeouts."""
        with pytest.raises(ClientConfigurationError):
            ClientConfig(timeout=0).validate()
        with pytest.raises(ClientConfigurationError):
            ClientConfig(timeout=-1).validate()

    def test_log_level(self):
        """Test unknown log levels."""
        with pytest.raises(ClientConfigurationError):
            ClientConfig(log_level="LOUD").validate()

    def test_cookie_jar_directory(self, tmp_path):
        """Test the cookie jar's directory must exist."""
        with pytest.raises(ClientConfigurationError):
            ClientConfig(cookie_jar=str(tmp_path / "missing" / "jar.txt")).validate()


class TestClientConfigMerged:
    """Tests for merged()."""

    def test_applies_overrides(self):
        """Test non-None overrides are applied to a copy."""
        base = ClientConfig(timeout=5.0)
        merged = base.merged(timeout=1.0, referer=None, follow_redirects=False)

        assert merged.timeout == 1.0
        assert merged.follow_redirects is False
        assert merged.referer is None
        assert base.timeout == 5.0
        assert base.follow_redirects is True

    def test_unknown_key(self):
        """Test unknown options raise ClientConfigurationError."""
        with pytest.raises(ClientConfigurationError):
            ClientConfig().merged(retries=3)

    def test_log_level_number(self):
        """Test the numeric logging level."""
        assert ClientConfig(log_level="info").log_level_number == logging.INFO
