import logging
import os
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource
from typing_extensions import Self

from fnrun.domain.function.model.descriptor import FunctionDescriptor
from fnrun.domain.shared.error import ConfigurationError


# =============================================================================
# Application Configuration
# =============================================================================


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Load settings from YAML file specified by FNRUN_CONFIG_FILE env var."""

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Get the value for a field from the YAML config."""
        yaml_data = self._load_yaml_config()
        field_value = yaml_data.get(field_name)
        return field_value, field_name, False

    def __call__(self) -> dict[str, Any]:
        """Return all settings from YAML file."""
        return self._load_yaml_config()

    def _load_yaml_config(self) -> dict[str, Any]:
        """Load config from YAML file if specified."""
        config_file = os.environ.get("FNRUN_CONFIG_FILE")
        if config_file:
            path = Path(config_file)
            if path.exists():
                return yaml.safe_load(path.read_text()) or {}
        return {}


class Server(BaseModel):
    """Server configuration (nested in Config, uses env_nested_delimiter)."""

    name: str = "fnrun"
    version: str = "0.1.0"
    host: str = "0.0.0.0"
    port: int | None = None  # None = take the port from the function descriptor


class SidecarConfig(BaseModel):
    """Sidecar broker client configuration (nested in Config)."""

    host: str = "127.0.0.1"
    http_port: int = 3500
    api_token: str | None = None
    request_timeout: float = 10.0  # Seconds per sidecar call
    ready_timeout: float = 60.0  # Seconds to wait for the sidecar at startup
    wait_for_ready: bool = True

    @property
    def endpoint(self) -> str:
        return f"http://{self.host}:{self.http_port}"


class LoggingConfig(BaseModel):
    """Logging configuration (nested in Config, uses env_nested_delimiter)."""

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    @property
    def file(self) -> str | None:
        """Get log file path from FNRUN_LOG_FILE env var."""
        return os.environ.get("FNRUN_LOG_FILE")


def _conventional(env_name: str, field_name: str) -> Any:
    # Process inputs keep their conventional unprefixed names
    return Field(default=None, validation_alias=AliasChoices(env_name, field_name))


class Config(BaseSettings):
    # These are BaseModel, so env_nested_delimiter handles their env vars
    server: Server = Server()
    logging: LoggingConfig = LoggingConfig()
    sidecar: SidecarConfig = SidecarConfig()

    function_target: str | None = _conventional("FUNCTION_TARGET", "function_target")
    func_context: str | None = _conventional("FUNC_CONTEXT", "func_context")
    func_context_file: str | None = _conventional("FUNC_CONTEXT_FILE", "func_context_file")
    function_source: str | None = _conventional("FUNCTION_SOURCE", "function_source")
    pod_name: str | None = _conventional("POD_NAME", "pod_name")
    pod_namespace: str | None = _conventional("POD_NAMESPACE", "pod_namespace")
    dapr_http_port: int | None = _conventional("DAPR_HTTP_PORT", "dapr_http_port")
    dapr_api_token: str | None = _conventional("DAPR_API_TOKEN", "dapr_api_token")

    model_config = {
        "env_prefix": "FNRUN_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",  # Allows FNRUN_SIDECAR__HTTP_PORT override
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def apply_sidecar_env(self) -> Self:
        """Let the sidecar's own DAPR_* variables override the sidecar section."""
        updates: dict[str, Any] = {}
        if self.dapr_http_port is not None:
            updates["http_port"] = self.dapr_http_port
        if self.dapr_api_token:
            updates["api_token"] = self.dapr_api_token
        if updates:
            self.sidecar = self.sidecar.model_copy(update=updates)
        return self

    @property
    def targets(self) -> list[str]:
        """Function targets, in order (FUNCTION_TARGET is comma separated)."""
        if not self.function_target:
            return []
        return [t.strip() for t in self.function_target.split(",") if t.strip()]

    @property
    def source_modules(self) -> list[str]:
        """Modules to import so their decorators register functions and interceptors."""
        if not self.function_source:
            return []
        return [m.strip() for m in self.function_source.split(",") if m.strip()]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to include YAML config.

        Priority (highest to lowest):
        1. init_settings - values passed to Config()
        2. env_settings - environment variables
        3. dotenv_settings - .env file
        4. yaml_settings - FNRUN_CONFIG_FILE yaml
        5. file_secret_settings - secrets from files
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def load_descriptor(config: Config) -> FunctionDescriptor:
    """Read and parse the function descriptor (FUNC_CONTEXT, then FUNC_CONTEXT_FILE).

    Raises:
        ConfigurationError: If no descriptor is configured or it is invalid.
    """
    raw = config.func_context
    if not raw and config.func_context_file:
        path = Path(config.func_context_file).expanduser()
        if not path.exists():
            raise ConfigurationError(f"Function descriptor file not found: {path}")
        raw = path.read_text()

    if not raw:
        raise ConfigurationError("No function descriptor: set FUNC_CONTEXT or FUNC_CONTEXT_FILE")

    return FunctionDescriptor.parse(raw)


def configure_logging(config: LoggingConfig) -> None:
    """Configure Python logging based on config.

    Should be called early in application startup, before other modules
    are imported to ensure all loggers pick up the configuration.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(config.level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(config.format, datefmt=config.date_format)

    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(config.level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(config.level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("opentelemetry").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.debug("Logging configured: level=%s, file=%s", config.level, config.file)
