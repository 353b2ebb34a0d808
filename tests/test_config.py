"""
Tests for configuration and token encryption.
"""
import pytest
from cryptography.fernet import Fernet
from pydantic import ValidationError

from meeting_engine.config import Settings
from meeting_engine.exceptions import ConfigurationError
from meeting_engine.services.encryption import decrypt_token, encrypt_token


@pytest.fixture
def test_encryption_key():
    return Fernet.generate_key().decode()


@pytest.mark.unit
class TestSettings:
    """Test settings validation."""

    def test_invalid_encryption_key(self):
        with pytest.raises(ValidationError):
            Settings(encryption_key="not-a-fernet-key")

    def test_defaults(self, test_encryption_key, monkeypatch):
        monkeypatch.delenv("MAX_RETRIES", raising=False)
        settings = Settings(encryption_key=test_encryption_key, _env_file=None)

        assert settings.microsoft_token_margin_seconds == 300
        assert settings.zoom_token_margin_seconds == 0
        assert settings.default_token_lifetime_seconds == 3600
        assert settings.max_retries == 3
        assert settings.microsoft_authority == "https://login.microsoftonline.com/common"

    def test_cors_origins_list(self, test_encryption_key):
        settings = Settings(
            encryption_key=test_encryption_key,
            cors_origins="https://app.example.com, https://admin.example.com,",
        )
        assert settings.cors_origins_list == ["https://app.example.com", "https://admin.example.com"]

    def test_provider_configured_flags(self, test_encryption_key):
        settings = Settings(
            encryption_key=test_encryption_key,
            zoom_client_id="id",
            zoom_client_secret="secret",
            google_client_id="id",
            google_client_secret=None,
        )
        assert settings.is_zoom_configured
        assert not settings.is_google_configured


@pytest.mark.unit
class TestEncryption:
    """Test encryption and decryption functionality."""

    def test_round_trip(self):
        encrypted = encrypt_token("test-token-123")

        assert encrypted != "test-token-123"
        assert decrypt_token(encrypted) == "test-token-123"

    def test_none_and_empty_pass_through(self):
        assert encrypt_token(None) is None
        assert decrypt_token(None) is None
        assert encrypt_token("") == ""
        assert decrypt_token("") == ""

    def test_wrong_key(self, test_encryption_key):
        """Test that ciphertext from another key is a configuration problem."""
        foreign = encrypt_token("secret", cipher=Fernet(test_encryption_key.encode()))

        with pytest.raises(ConfigurationError):
            decrypt_token(foreign)
