"""Tests for configuration loading and API key management.

Tests cover:
- Defaults and validation of the config models
- YAML config files (explicit, malformed, empty)
- Environment variable overrides
- API key lookup order and format validation
- Storing and deleting keys (keyring mocked, encrypted file real)
"""

from unittest.mock import patch

import keyring.errors
import pytest
from pydantic import ValidationError

from curator.config import (
    AIConfig,
    AIMode,
    APIKeyInvalidError,
    APIKeyManager,
    APIKeyNotFoundError,
    AppConfig,
    ConfigError,
    ConfigFileError,
    KeySource,
    PathsConfig,
    get_api_key,
    get_config,
    load_config,
    read_config_file,
)

VALID_KEY = "AIzaSy" + "k" * 30


@pytest.fixture
def no_keyring():
    """Keyring that holds nothing."""
    with patch("curator.config.keyring.get_password", return_value=None) as get_password:
        yield get_password


class TestDefaults:
    """Tests for the config models."""

    def test_defaults(self):
        config = AppConfig()

        assert config.ai.mode == AIMode.ENABLED
        assert config.ai.model_name == "gemini-2.0-flash"
        assert config.ai.timeout_seconds == 60.0
        assert config.analysis.comment_count == 3
        assert config.cache.enabled is True

    def test_mode_is_normalized(self):
        assert AIConfig(mode=" Disabled ").is_enabled() is False

    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            AIConfig(temperature=5.0)

    def test_paths_default_under_config_dir(self, tmp_path):
        paths = PathsConfig(config_dir=tmp_path)

        assert paths.cache_dir == tmp_path / "cache"
        assert paths.log_dir == tmp_path / "logs"
        assert paths.encrypted_key_file == tmp_path / ".api_key.enc"

    def test_ensure_dirs_exist(self, tmp_path):
        paths = PathsConfig(config_dir=tmp_path / "root")
        paths.ensure_dirs_exist()
        assert paths.cache_dir.is_dir()
        assert paths.log_dir.is_dir()


class TestConfigFile:
    """Tests for YAML config files."""

    def test_load_explicit_file(self, tmp_path):
        path = tmp_path / "curator.yaml"
        path.write_text(
            "ai:\n  mode: disabled\n  max_retries: 4\nanalysis:\n  comment_count: 7\n",
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.ai.mode == AIMode.DISABLED
        assert config.ai.max_retries == 4
        assert config.analysis.comment_count == 7

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "curator.yaml"
        path.write_text("analysis:\n  comment_count: 7\n", encoding="utf-8")
        monkeypatch.setenv("CURATOR_ANALYSIS__COMMENT_COUNT", "9")

        assert load_config(path).analysis.comment_count == 9

    def test_environment_only(self, monkeypatch):
        monkeypatch.setenv("CURATOR_AI__MODE", "disabled")
        monkeypatch.setenv("CURATOR_CACHE__NAMESPACE", "test-ns")

        config = AppConfig()

        assert config.ai.is_enabled() is False
        assert config.cache.namespace == "test-ns"

    def test_malformed_explicit_file_raises(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("ai: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigFileError):
            load_config(path)

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigFileError):
            read_config_file(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert read_config_file(path) == {}

    def test_get_config_is_cached(self):
        assert get_config() is get_config()


class TestKeyFormat:
    @pytest.mark.parametrize(
        "key, valid",
        [
            (VALID_KEY, True),
            ("short", False),
            ("", False),
            ("x" * 101, False),
            ("AIzaSy key with spaces 1234567890", False),
        ],
    )
    def test_validate_key_format(self, key, valid):
        assert APIKeyManager.validate_key_format(key) is valid


class TestAPIKeyManager:
    """Tests for key lookup, storage and deletion."""

    def test_environment_first(self, tmp_path, monkeypatch, no_keyring):
        monkeypatch.setenv("GEMINI_API_KEY", VALID_KEY)
        manager = APIKeyManager(PathsConfig(config_dir=tmp_path))

        assert manager.get_key().get_secret_value() == VALID_KEY
        assert manager.get_key_source() == KeySource.ENVIRONMENT
        no_keyring.assert_not_called()

    def test_keyring_second(self, tmp_path, no_keyring):
        no_keyring.return_value = VALID_KEY
        manager = APIKeyManager(PathsConfig(config_dir=tmp_path))

        assert manager.get_key().get_secret_value() == VALID_KEY
        assert manager.get_key_source() == KeySource.KEYRING

    def test_keyring_errors_are_misses(self, tmp_path, no_keyring):
        no_keyring.side_effect = keyring.errors.KeyringError("locked")
        assert APIKeyManager(PathsConfig(config_dir=tmp_path)).get_key() is None

    def test_encrypted_file_round_trip(self, tmp_path, no_keyring):
        manager = APIKeyManager(PathsConfig(config_dir=tmp_path))

        assert manager.store_key(VALID_KEY, KeySource.ENCRYPTED_FILE) is True
        assert VALID_KEY not in manager.key_file.read_bytes().decode("ascii")

        fresh = APIKeyManager(PathsConfig(config_dir=tmp_path))
        assert fresh.get_key().get_secret_value() == VALID_KEY
        assert fresh.get_key_source() == KeySource.ENCRYPTED_FILE

        assert fresh.delete_key(KeySource.ENCRYPTED_FILE) is True
        assert not fresh.key_file.exists()
        assert fresh.get_key() is None

    def test_store_in_keyring(self, tmp_path):
        with patch("curator.config.keyring.set_password") as set_password:
            APIKeyManager(PathsConfig(config_dir=tmp_path)).store_key(VALID_KEY, KeySource.KEYRING)
        set_password.assert_called_once_with("personal-curator", "gemini", VALID_KEY)

    def test_keyring_store_failure(self, tmp_path):
        with patch(
            "curator.config.keyring.set_password",
            side_effect=keyring.errors.PasswordSetError("no backend"),
        ):
            with pytest.raises(ConfigError):
                APIKeyManager(PathsConfig(config_dir=tmp_path)).store_key(
                    VALID_KEY, KeySource.KEYRING
                )

    def test_invalid_key_not_stored(self, tmp_path):
        with pytest.raises(APIKeyInvalidError):
            APIKeyManager(PathsConfig(config_dir=tmp_path)).store_key("bad", KeySource.KEYRING)

    def test_cannot_store_in_environment(self, tmp_path):
        with pytest.raises(ConfigError):
            APIKeyManager(PathsConfig(config_dir=tmp_path)).store_key(
                VALID_KEY, KeySource.ENVIRONMENT
            )

    def test_get_api_key_missing(self, tmp_path, monkeypatch, no_keyring):
        monkeypatch.setenv("CURATOR_PATHS__CONFIG_DIR", str(tmp_path))
        with pytest.raises(APIKeyNotFoundError):
            get_api_key()

    def test_ai_availability(self, tmp_path, monkeypatch, no_keyring):
        config = AppConfig(paths=PathsConfig(config_dir=tmp_path))
        assert config.is_ai_available() is False

        monkeypatch.setenv("GEMINI_API_KEY", VALID_KEY)
        assert config.is_ai_available() is True
