"""Central configuration for the Personal Curator.

Every module that needs settings imports from here. Configuration is read
from three layers (highest wins):

1. Environment variables (``CURATOR_*``, nested with ``__``)
2. A YAML config file
3. In-code defaults

The Gemini API key is kept out of the config file entirely. The
APIKeyManager looks for it in the environment, then the system keyring,
then a machine-bound encrypted file.

Example:
    >>> from curator.config import get_config
    >>> cfg = get_config()
    >>> cfg.ai.model_name
    'gemini-2.0-flash'
    >>> cfg.analysis.comment_count
    3

Config File Format (YAML):
    ```yaml
    ai:
      mode: enabled          # enabled | disabled
      model_name: gemini-2.0-flash
      temperature: 0.7
      max_output_tokens: 2048
      timeout_seconds: 60
      max_retries: 2

    analysis:
      top_k: 5
      comment_count: 3
      enable_personality: true
      max_suggestions: 6

    cache:
      enabled: true
      namespace: curator

    paths:
      config_dir: ~/.curator
    ```
"""

from __future__ import annotations

import base64
import functools
import logging
import os
import platform
import stat
from enum import Enum
from pathlib import Path
from typing import Any

import keyring
import keyring.errors
import yaml
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".curator"
CONFIG_SEARCH_PATHS = (
    Path("./curator.yaml"),
    Path("./curator.yml"),
    DEFAULT_CONFIG_DIR / "config.yaml",
)


# =============================================================================
# Exceptions
# =============================================================================


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigFileError(ConfigError):
    """The YAML config file exists but cannot be read or parsed."""


class APIKeyError(ConfigError):
    """Base exception for API key problems."""


class APIKeyNotFoundError(APIKeyError):
    """No API key in any configured source."""


class APIKeyInvalidError(APIKeyError):
    """The key fails basic format checks (it was not rejected by the API)."""


# =============================================================================
# Enums
# =============================================================================


class AIMode(str, Enum):
    """Whether the generative model may be called.

    Attributes:
        ENABLED: Call Gemini when an API key is configured.
        DISABLED: Never call Gemini; every domain is synthesized locally.
    """

    ENABLED = "enabled"
    DISABLED = "disabled"


class KeySource(str, Enum):
    """Where an API key was found, or where to store a new one."""

    ENVIRONMENT = "environment"
    KEYRING = "keyring"
    ENCRYPTED_FILE = "encrypted_file"
    NONE = "none"


# =============================================================================
# Configuration Models
# =============================================================================


class AIConfig(BaseModel):
    """Gemini invocation settings.

    Attributes:
        mode: AI activation mode.
        model_name: Gemini model identifier.
        temperature: Sampling temperature.
        max_output_tokens: Maximum tokens in a model response.
        timeout_seconds: Bound on a single model call, enforced by the
            orchestrator and passed to the SDK as its HTTP timeout.
        max_retries: Client-side retries for retriable errors.
        retry_base_delay: Base delay for exponential backoff.
    """

    mode: AIMode = Field(default=AIMode.ENABLED, description="AI activation mode.")
    model_name: str = Field(default="gemini-2.0-flash", description="Gemini model identifier.")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=2048, ge=100, le=32000)
    timeout_seconds: float = Field(default=60.0, ge=1.0, le=600.0)
    max_retries: int = Field(default=2, ge=0, le=10)
    retry_base_delay: float = Field(default=1.0, ge=0.0, le=10.0)

    @field_validator("mode", mode="before")
    @classmethod
    def normalize_mode(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    def is_enabled(self) -> bool:
        return self.mode == AIMode.ENABLED


class AnalysisConfig(BaseModel):
    """Pipeline behavior settings.

    Attributes:
        top_k: Subjects, moods and tags kept by the feature extractor.
        max_items: Only the most recent items are analyzed (None = all).
        literal_count: User literals embedded verbatim in prompts.
        comment_count: Default number of dynamic comments per run.
        enable_personality: Run the optional personality synthesis.
        enable_suggestions: Run the optional suggestion step.
        enable_comments: Generate dynamic comments.
        max_suggestions: Suggestions kept after ranking.
        random_seed: Seed for fallback synthesis and comment styles (None = random).
    """

    top_k: int = Field(default=5, ge=1, le=50)
    max_items: int | None = Field(default=None, ge=1)
    literal_count: int = Field(default=5, ge=3, le=20)
    comment_count: int = Field(default=3, ge=0, le=500)
    enable_personality: bool = True
    enable_suggestions: bool = True
    enable_comments: bool = True
    max_suggestions: int = Field(default=6, ge=1, le=50)
    random_seed: int | None = None


class CacheConfig(BaseModel):
    """Result cache settings."""

    enabled: bool = True
    namespace: str = Field(default="curator", min_length=1)
    version: str = Field(
        default="1.0",
        description="Cache schema version. Entries with another version are treated as misses.",
    )


class PathsConfig(BaseModel):
    """File system locations.

    ``cache_dir``, ``log_dir`` and ``encrypted_key_file`` default to
    locations under ``config_dir``.
    """

    config_dir: Path = Field(default_factory=lambda: DEFAULT_CONFIG_DIR)
    cache_dir: Path | None = None
    log_dir: Path | None = None
    encrypted_key_file: Path | None = None

    @field_validator("config_dir", "cache_dir", "log_dir", "encrypted_key_file", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Any:
        if isinstance(v, (str, Path)):
            return Path(v).expanduser()
        return v

    @model_validator(mode="after")
    def resolve_defaults(self) -> "PathsConfig":
        if self.cache_dir is None:
            object.__setattr__(self, "cache_dir", self.config_dir / "cache")
        if self.log_dir is None:
            object.__setattr__(self, "log_dir", self.config_dir / "logs")
        if self.encrypted_key_file is None:
            object.__setattr__(self, "encrypted_key_file", self.config_dir / ".api_key.enc")
        return self

    def ensure_dirs_exist(self) -> None:
        for directory in (self.config_dir, self.cache_dir, self.log_dir):
            if directory is not None:
                directory.mkdir(parents=True, exist_ok=True)


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Environment variables use the ``CURATOR_`` prefix and ``__`` for nesting,
    e.g. ``CURATOR_AI__MODE=disabled`` or ``CURATOR_ANALYSIS__COMMENT_COUNT=5``.
    """

    ai: AIConfig = Field(default_factory=AIConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    debug: bool = False
    verbose: bool = False

    model_config = SettingsConfigDict(
        env_prefix="CURATOR_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # File values arrive as init kwargs; the environment overrides them.
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)

    def is_ai_available(self) -> bool:
        """True when AI is enabled and an API key can be found."""
        if not self.ai.is_enabled():
            return False
        return APIKeyManager(paths_config=self.paths).get_key() is not None


# =============================================================================
# API Key Management
# =============================================================================


class APIKeyManager:
    """Look up and store the Gemini API key.

    Sources, in priority order:

    1. ``GEMINI_API_KEY`` environment variable
    2. System keyring
    3. Fernet-encrypted file bound to this machine

    Keys are handed out as ``SecretStr`` and never logged.
    """

    KEYRING_SERVICE = "personal-curator"
    KEYRING_USERNAME = "gemini"
    ENV_VAR_NAME = "GEMINI_API_KEY"
    KDF_SALT = b"personal-curator-key-salt-v1"
    KDF_ITERATIONS = 100_000

    def __init__(self, paths_config: PathsConfig | None = None) -> None:
        self._paths = paths_config or PathsConfig()
        self._cached_key: SecretStr | None = None
        self._key_source = KeySource.NONE

    @property
    def key_file(self) -> Path:
        return self._paths.encrypted_key_file or self._paths.config_dir / ".api_key.enc"

    def get_key(self) -> SecretStr | None:
        """Return the first valid key found, or None."""
        if self._cached_key is not None:
            return self._cached_key

        readers = (
            (KeySource.ENVIRONMENT, self._read_from_environment),
            (KeySource.KEYRING, self._read_from_keyring),
            (KeySource.ENCRYPTED_FILE, self._read_from_encrypted_file),
        )
        for source, reader in readers:
            key = reader()
            if key and self.validate_key_format(key):
                self._cached_key = SecretStr(key)
                self._key_source = source
                logger.debug(f"API key loaded from {source.value}")
                return self._cached_key

        self._key_source = KeySource.NONE
        logger.debug("No API key found in any source")
        return None

    def get_key_source(self) -> KeySource:
        return self._key_source

    def store_key(self, key: str, destination: KeySource) -> bool:
        """Store a key in the keyring or the encrypted file.

        Raises:
            APIKeyInvalidError: If the key fails format validation.
            ConfigError: If the destination cannot hold a key or storing fails.
        """
        key = key.strip()
        if not self.validate_key_format(key):
            raise APIKeyInvalidError(
                "API key format validation failed. Key must be 20-100 characters with no whitespace."
            )

        if destination == KeySource.KEYRING:
            try:
                keyring.set_password(self.KEYRING_SERVICE, self.KEYRING_USERNAME, key)
            except keyring.errors.KeyringError as e:
                raise ConfigError(f"Failed to store key in keyring: {type(e).__name__}") from e
        elif destination == KeySource.ENCRYPTED_FILE:
            try:
                self._encrypt_to_file(key, self.key_file)
            except OSError as e:
                raise ConfigError(f"Failed to write encrypted key file: {type(e).__name__}") from e
        else:
            raise ConfigError(
                f"Cannot store an API key in '{destination.value}'. "
                f"Set {self.ENV_VAR_NAME} in your environment instead."
            )

        self._forget()
        logger.info(f"API key stored in {destination.value}")
        return True

    def delete_key(self, source: KeySource) -> bool:
        """Remove the key from a source. Missing keys count as deleted."""
        if source == KeySource.KEYRING:
            try:
                keyring.delete_password(self.KEYRING_SERVICE, self.KEYRING_USERNAME)
            except keyring.errors.PasswordDeleteError:
                pass
            except keyring.errors.KeyringError as e:
                raise ConfigError(f"Failed to delete key from keyring: {type(e).__name__}") from e
        elif source == KeySource.ENCRYPTED_FILE:
            try:
                self.key_file.unlink(missing_ok=True)
            except OSError as e:
                raise ConfigError(f"Failed to delete key file: {type(e).__name__}") from e
        else:
            raise ConfigError(
                f"Cannot delete a key from '{source.value}'. Unset {self.ENV_VAR_NAME} manually."
            )

        self._forget()
        logger.info(f"API key removed from {source.value}")
        return True

    @staticmethod
    def validate_key_format(key: str) -> bool:
        """Basic shape check: 20-100 characters, no whitespace."""
        if not key:
            return False
        key = key.strip()
        if not 20 <= len(key) <= 100:
            return False
        return not any(c.isspace() for c in key)

    def _forget(self) -> None:
        self._cached_key = None
        self._key_source = KeySource.NONE

    def _read_from_environment(self) -> str | None:
        value = os.environ.get(self.ENV_VAR_NAME)
        return value.strip() if value else None

    def _read_from_keyring(self) -> str | None:
        try:
            return keyring.get_password(self.KEYRING_SERVICE, self.KEYRING_USERNAME)
        except keyring.errors.KeyringError as e:
            logger.debug(f"Keyring access failed: {type(e).__name__}")
            return None

    def _read_from_encrypted_file(self) -> str | None:
        path = self.key_file
        if not path.exists():
            return None
        try:
            return Fernet(self._derive_encryption_key()).decrypt(path.read_bytes()).decode("utf-8")
        except InvalidToken:
            logger.warning("Could not decrypt API key file; it may come from another machine")
        except OSError as e:
            logger.warning(f"Failed to read encrypted key file: {type(e).__name__}")
        return None

    def _encrypt_to_file(self, key: str, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        token = Fernet(self._derive_encryption_key()).encrypt(key.encode("utf-8"))
        path.write_bytes(token)
        if platform.system() != "Windows":
            os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)

    def _derive_encryption_key(self) -> bytes:
        """Derive a Fernet key from machine identifiers."""
        parts = [platform.node(), platform.machine(), platform.system()]
        machine_id = Path("/etc/machine-id")
        if machine_id.exists():
            try:
                parts.append(machine_id.read_text().strip())
            except OSError:
                pass

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=self.KDF_SALT,
            iterations=self.KDF_ITERATIONS,
        )
        return base64.urlsafe_b64encode(kdf.derive("|".join(parts).encode("utf-8")))


# =============================================================================
# Module-Level Functions
# =============================================================================


def find_config_file(path: Path | None = None) -> Path | None:
    """Return the first existing config file on the search path."""
    candidates = ([path] if path is not None else []) + list(CONFIG_SEARCH_PATHS)
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Read a YAML config file into a dict.

    Raises:
        ConfigFileError: If the file cannot be read or is not a YAML mapping.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigFileError(f"Cannot read config file {path}: {type(e).__name__}") from e

    try:
        loaded = yaml.safe_load(content) if content.strip() else None
    except yaml.YAMLError as e:
        raise ConfigFileError(f"Malformed YAML in {path}: {e}") from e

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigFileError(f"Config file {path} must contain a mapping at the top level")
    return loaded


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from environment, YAML file and defaults.

    A missing config file is not an error. A malformed one is logged and
    ignored, unless it was named explicitly, in which case
    ``ConfigFileError`` propagates.
    """
    config_data: dict[str, Any] = {}
    config_file = find_config_file(path)

    if config_file is not None:
        try:
            config_data = read_config_file(config_file)
            logger.debug(f"Loaded config file {config_file}")
        except ConfigFileError as e:
            if path is not None and config_file == path:
                raise
            logger.warning(f"{e}. Using defaults.")

    return AppConfig(**config_data)


@functools.lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Return the process-wide configuration, loaded once."""
    return load_config()


def get_api_key() -> SecretStr:
    """Return the configured Gemini API key.

    Raises:
        APIKeyNotFoundError: If no source holds a valid key.
    """
    key = APIKeyManager(paths_config=get_config().paths).get_key()
    if key is None:
        raise APIKeyNotFoundError(
            "No API key found. Set GEMINI_API_KEY, or run 'curator config set-key'."
        )
    return key


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() reloads it."""
    get_config.cache_clear()
