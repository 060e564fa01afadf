"""GardenBridge — Configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. System config: /etc/garden-bridge/config.yaml
    3. User config:   ~/.garden-bridge/config.yaml
    4. Explicit ``--config`` file
    5. Environment variables prefixed with GARDEN_ (``GARDEN_GATEWAY__PORT=18790``)

Call ``Settings.load()`` once at startup and inject the instance through the
composition root (``create_app``) rather than reading it from handlers.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from garden_bridge.exceptions import ConfigurationError
from garden_bridge.protocol.constants import DEFAULT_HTTP_PORT

ALL_CAPABILITIES = [
    "calendar",
    "contacts",
    "reminders",
    "photos",
    "music",
    "location",
    "applescript",
    "file",
    "shell",
    "accessibility",
    "screen",
    "camera",
    "audio",
    "notification",
    "bluetooth",
]

ALL_PERMISSIONS = [
    "calendar",
    "contacts",
    "reminders",
    "photos",
    "location",
    "automation",
    "file",
    "shell",
    "accessibility",
    "screen",
    "camera",
    "microphone",
    "notifications",
    "bluetooth",
]


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=DEFAULT_HTTP_PORT, ge=1024, le=65535)
    public_url: str | None = Field(
        default=None,
        description=(
            "Base URL embedded in resource links (imageUrl, audioUrl). "
            "Defaults to http://localhost:<port>."
        ),
    )
    api_token: str | None = Field(
        default=None,
        description="Token required in X-Garden-Token on every request. None = no auth (loopback only).",
    )

    def base_url(self) -> str:
        return (self.public_url or f"http://localhost:{self.port}").rstrip("/")


class GatewayConfig(BaseModel):
    enabled: bool = Field(default=True, description="Start the gateway client with the daemon.")
    host: str = "127.0.0.1"
    port: int = Field(default=18789, ge=1, le=65535)
    secure: bool = Field(default=False, description="Use wss:// instead of ws://.")
    token: str | None = Field(default=None, description="Shared gateway auth token.")
    connect_delay: Annotated[float, Field(ge=0, le=30)] = Field(
        default=0.5,
        description="Seconds to wait after the socket opens before sending connect.",
    )
    heartbeat_interval: Annotated[float, Field(gt=0, le=3600)] = 15.0
    auto_reconnect: bool = True
    reconnect_initial_delay: Annotated[float, Field(gt=0, le=300)] = 1.0
    reconnect_max_delay: Annotated[float, Field(gt=0, le=3600)] = 60.0
    unsigned_hello: Literal["send", "wait"] = Field(
        default="send",
        description=(
            "send: send connect immediately, signed only if a challenge already arrived. "
            "wait: hold connect until a challenge arrives or challenge_timeout elapses."
        ),
    )
    challenge_timeout: Annotated[float, Field(gt=0, le=60)] = 5.0
    require_signature: bool = Field(
        default=False,
        description="With unsigned_hello=wait, fail the session instead of sending unsigned on timeout.",
    )
    locale: str = "en-US"

    def url(self) -> str:
        scheme = "wss" if self.secure else "ws"
        return f"{scheme}://{self.host}:{self.port}"


class IdentityConfig(BaseModel):
    model_config = ConfigDict(validate_default=True)

    key_path: Path = Path("~/.garden-bridge/device_key")
    state_path: Path = Path("~/.garden-bridge/state.json")

    @field_validator("key_path", "state_path")
    @classmethod
    def expand_user(cls, v: Path) -> Path:
        return v.expanduser()


class ResourceConfig(BaseModel):
    storage_dir: Path | None = Field(
        default=None,
        description="Directory for ephemeral artifacts. Defaults to <tmp>/garden-bridge-resources.",
    )
    default_retention: Annotated[float, Field(gt=0, le=86400)] = 300.0
    retention: dict[str, float] = Field(
        default_factory=lambda: {"screenshot": 300.0, "photo": 300.0, "audio": 600.0},
        description="Retention window in seconds per resource kind.",
    )


class CapabilityConfig(BaseModel):
    enabled: list[str] = Field(default_factory=lambda: list(ALL_CAPABILITIES))
    disabled: list[str] = Field(
        default_factory=list,
        description="Explicitly disabled capabilities (overrides 'enabled').",
    )


class PermissionConfig(BaseModel):
    granted: list[str] = Field(default_factory=lambda: list(ALL_PERMISSIONS))
    denied: list[str] = Field(default_factory=list)


class ShellConfig(BaseModel):
    shell: str = "/bin/sh"
    default_timeout: Annotated[float, Field(gt=0, le=3600)] = 30.0
    max_timeout: Annotated[float, Field(gt=0, le=86400)] = 600.0


class LocationConfig(BaseModel):
    provider: Literal["ip", "static", "none"] = "ip"
    ip_lookup_url: str = "https://ipinfo.io/json"
    static_latitude: float | None = None
    static_longitude: float | None = None


class PhotosConfig(BaseModel):
    model_config = ConfigDict(validate_default=True)

    library_dir: Path = Field(
        default=Path("~/Pictures"),
        description="Image directory served by the photos capability; subfolders are albums.",
    )

    @field_validator("library_dir")
    @classmethod
    def expand_user(cls, v: Path) -> Path:
        return v.expanduser()


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GARDEN_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    resources: ResourceConfig = Field(default_factory=ResourceConfig)
    capabilities: CapabilityConfig = Field(default_factory=CapabilityConfig)
    permissions: PermissionConfig = Field(default_factory=PermissionConfig)
    shell: ShellConfig = Field(default_factory=ShellConfig)
    location: LocationConfig = Field(default_factory=LocationConfig)
    photos: PhotosConfig = Field(default_factory=PhotosConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment beats config files, which arrive as init kwargs.
        return env_settings, init_settings, file_secret_settings

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from file + environment variables.

        Raises:
            ConfigurationError: A config file is not valid YAML or not a mapping.
        """
        data: dict[str, Any] = {}

        candidates = [
            Path("/etc/garden-bridge/config.yaml"),
            Path.home() / ".garden-bridge" / "config.yaml",
        ]
        if config_file:
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                import yaml  # lazy import, only needed with a config file

                try:
                    with path.open() as f:
                        loaded = yaml.safe_load(f) or {}
                except yaml.YAMLError as exc:
                    raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
                if not isinstance(loaded, dict):
                    raise ConfigurationError(f"{path} must contain a mapping")
                _deep_merge(data, loaded)

        return cls(**data)

    def active_capabilities(self) -> list[str]:
        """Return the effective list of enabled capability namespaces."""
        return [c for c in self.capabilities.enabled if c not in self.capabilities.disabled]


# Module-level singleton, replaced by ``Settings.load()`` at startup.
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings) -> None:
    """Replace the module-level singleton. Used in tests."""
    global _settings
    _settings = settings


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> None:
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
