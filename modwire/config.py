"""modwire — Process configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. Environment variables prefixed with MODWIRE_
    3. System config: /etc/modwire/config.yaml
    4. User config:   ~/.modwire/config.yaml
    5. An explicit config file passed to ``Settings.load()``

Call ``Settings.load()`` once at startup, or use ``get_settings()``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from modwire.protocol.constants import DEFAULT_MAX_LINE_BYTES

# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "warning"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


class ProtocolConfig(BaseModel):
    max_line_bytes: Annotated[int, Field(ge=64, le=1 << 30)] = Field(
        default=DEFAULT_MAX_LINE_BYTES,
        description="Largest message or result line accepted from a peer.",
    )


class ModuleConfig(BaseModel):
    enabled: list[str] = Field(
        default_factory=lambda: ["filesearch", "hostinfo"],
        description="Built-in module names to register at startup.",
    )
    disabled: list[str] = Field(
        default_factory=list,
        description="Explicitly disabled modules (overrides 'enabled').",
    )
    load_entrypoints: bool = Field(
        default=True,
        description="Also register third-party modules from the 'modwire.modules' entry-point group.",
    )


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MODWIRE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    protocol: ProtocolConfig = Field(default_factory=ProtocolConfig)
    modules: ModuleConfig = Field(default_factory=ModuleConfig)

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from YAML files + environment variables."""
        data: dict[str, object] = {}

        candidates = [
            Path("/etc/modwire/config.yaml"),
            Path.home() / ".modwire" / "config.yaml",
        ]
        if config_file:
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                import yaml

                with path.open() as f:
                    loaded = yaml.safe_load(f) or {}
                    data.update(loaded)

        return cls(**data)

    def active_modules(self) -> list[str]:
        """Return the effective list of enabled module names."""
        return [m for m in self.modules.enabled if m not in self.modules.disabled]


# Module-level singleton, replaced by ``override_settings()`` in tests.
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings | None) -> None:
    """Replace the module-level singleton. Used in tests and by the CLI."""
    global _settings
    _settings = settings
