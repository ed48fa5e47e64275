"""Configuration management using pydantic-settings."""

from pathlib import Path
from typing import Any
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from scribeflow.exceptions import ConfigurationError

_ENV_FILES = (".env", "../.env", "../../.env")

_REPO_ROOT = Path(__file__).resolve().parents[3]

_MIB = 1024 * 1024


def _resolve_repo_path(value: str) -> str:
    raw = str(value or "").strip()
    if not raw:
        return raw
    p = Path(raw)
    if p.is_absolute():
        return str(p)
    return str((_REPO_ROOT / p).resolve())


class ChunkingConfig(BaseSettings):
    """Default transcription policy (compression / segmentation / retries)."""

    model_config = SettingsConfigDict(
        env_prefix="CHUNKING_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    size_ceiling_bytes: int = Field(default=25 * _MIB, ge=1)
    duration_ceiling_s: float = Field(default=1380.0, gt=0)
    chunk_duration_s: float = Field(default=540.0, gt=0)

    compression_enabled: bool = True
    compression_threshold_bytes: int = Field(default=25 * _MIB, ge=0)
    compression_bitrate: str = "64k"
    sample_rate: int | None = Field(default=16000, ge=8000)
    channels: int | None = Field(default=1, ge=1)

    separator: str = " "
    context_tail_chars: int = Field(default=1000, ge=0)
    placeholder_template: str = "[segment {number} ({start}-{end}) could not be transcribed: {error}]"

    retry_attempts: int = Field(default=2, ge=1)
    retry_wait_min_s: float = Field(default=1.0, ge=0)
    retry_wait_max_s: float = Field(default=10.0, ge=0)
    provider_timeout_s: float = Field(default=300.0, gt=0)  # per provider request


class MediaConfig(BaseSettings):
    """Transcoding tool (ffmpeg/ffprobe) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MEDIA_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    ffmpeg_bin: str = "ffmpeg"
    ffprobe_bin: str = "ffprobe"
    probe_timeout_s: float = Field(default=60.0, gt=0)
    transcode_timeout_s: float = Field(default=600.0, gt=0)


class ASRProfileConfig(BaseSettings):
    """Speech-to-text provider profile."""

    provider: str = "openai_compat"
    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o-transcribe"
    response_format: str = "json"
    auth_header: str = "Authorization"
    auth_scheme: str = "Bearer"
    require_api_key: bool = True
    timeout: float = Field(default=300.0, gt=0)
    max_file_bytes: int | None = Field(default=None, ge=1)
    max_duration_s: float | None = Field(default=None, gt=0)


class OpenAIASRConfig(ASRProfileConfig):
    model_config = SettingsConfigDict(
        env_prefix="OPENAI_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )


class LemonfoxASRConfig(ASRProfileConfig):
    model_config = SettingsConfigDict(
        env_prefix="LEMONFOX_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = "https://api.lemonfox.ai/v1"
    model: str = "whisper-large-v3"
    response_format: str = "text"


class GLMASRConfig(ASRProfileConfig):
    model_config = SettingsConfigDict(
        env_prefix="GLM_ASR_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: str = "glm_asr"
    base_url: str = "http://localhost:8000/v1"
    model: str = "glm-asr"
    require_api_key: bool = False


class GoogleDriveConfig(BaseSettings):
    """Google OAuth client + Drive API configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = "http://localhost:10000/auth/google/callback"
    scopes: list[str] = [
        "https://www.googleapis.com/auth/drive.file",
        "https://www.googleapis.com/auth/userinfo.profile",
    ]
    timeout: float = Field(default=60.0, gt=0)


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"
    console: bool = True
    file: str | None = None
    max_bytes: int = Field(default=10 * 1024 * 1024, ge=0)
    backup_count: int = Field(default=5, ge=0)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILES, env_file_encoding="utf-8", extra="ignore"
    )

    data_dir: str = "./data"
    log_dir: str = "./logs"
    upload_max_bytes: int = Field(default=100 * _MIB, ge=1)
    default_provider: str = "lemonfox"

    # Database
    postgres_user: str = "postgres"
    postgres_password: str = ""
    postgres_db: str = "scribeflow"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_pool_max_size: int = 10

    # History
    history_limit: int = Field(default=50, ge=1)
    history_preview_chars: int = Field(default=180, ge=1)

    # Pipeline
    chunking: ChunkingConfig = ChunkingConfig()
    media: MediaConfig = MediaConfig()

    # ASR providers
    openai: OpenAIASRConfig = OpenAIASRConfig()
    lemonfox: LemonfoxASRConfig = LemonfoxASRConfig()
    glm_asr: GLMASRConfig = GLMASRConfig()

    # Google Drive
    google: GoogleDriveConfig = GoogleDriveConfig()

    # Logging
    logging: LoggingSettings = LoggingSettings()

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        # Running apps with `--directory apps/*` changes CWD; keep paths stable.
        self.data_dir = _resolve_repo_path(self.data_dir)
        self.log_dir = _resolve_repo_path(self.log_dir)
        for p in (self.data_dir, self.log_dir):
            Path(p).mkdir(parents=True, exist_ok=True)
        return self

    @property
    def database_url(self) -> str:
        return f"postgresql://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    @property
    def provider_ids(self) -> list[str]:
        return ["openai", "lemonfox", "glm_asr"]

    def provider_config_for(self, provider_id: str | None) -> dict[str, Any]:
        """Return an ASR config dict for the provider registry."""
        name = str(provider_id or "").strip().lower() or str(self.default_provider).strip().lower()
        if name == "openai":
            cfg = self.openai.model_dump()
        elif name == "lemonfox":
            cfg = self.lemonfox.model_dump()
        elif name in {"glm_asr", "glm"}:
            name = "glm_asr"
            cfg = self.glm_asr.model_dump()
        else:
            raise ConfigurationError(
                f"Unknown ASR provider: {provider_id!r} (expected one of {', '.join(self.provider_ids)})"
            )

        # Credentials come from the environment only; never fall back to a literal key.
        api_key = str(cfg.get("api_key") or "").strip()
        if bool(cfg.get("require_api_key")) and not api_key:
            raise ConfigurationError(
                f"ASR provider {name!r} requires an API key (set {name.upper()}_API_KEY)"
            )
        cfg["api_key"] = api_key
        cfg["name"] = name
        return cfg
