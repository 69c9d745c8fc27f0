import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from . import constants
from .exceptions import ConfigValidationError

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def is_truthy(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in _TRUTHY


class PhaseSettings(BaseModel):
    """
        Class Config-Validation Model describing where a phase runs.

        Built once per phase from an environment snapshot; nothing else in
        the engine reads the ambient process environment.
    """
    model_config = ConfigDict(frozen=True)

    application_root: Path
    buildpack_root: Optional[Path] = None
    layers_dir: Optional[Path] = None
    platform_dir: Optional[Path] = None
    debug: bool = False
    exec_mocks: Optional[Path] = None
    log_levels: Optional[str] = None

    @field_validator("application_root")
    @classmethod
    def check_application_root(cls, v: Path) -> Path:
        if not v.is_dir():
            raise ValueError(f"application root is not a directory: {v}")
        return v.resolve()

    @field_validator("exec_mocks")
    @classmethod
    def check_exec_mocks(cls, v: Optional[Path]) -> Optional[Path]:
        if v is not None and not v.is_file():
            raise ValueError(f"exec mock file does not exist: {v}")
        return v

    @classmethod
    def from_env(cls, env: Mapping[str, str], **overrides: Any) -> "PhaseSettings":
        """
        Read settings from ``env``; keyword overrides that are not None win

        Args:
            env: environment snapshot
            overrides: field values (e.g. from CLI options or tests)

        Returns:
            PhaseSettings
        """
        data = {
            "application_root": Path.cwd(),
            "buildpack_root": env.get(constants.ENV_BUILDPACK_DIR) or None,
            "layers_dir": env.get(constants.ENV_LAYERS_DIR) or None,
            "platform_dir": env.get(constants.ENV_PLATFORM_DIR) or None,
            "debug": is_truthy(env.get(constants.ENV_DEBUG)),
            "exec_mocks": env.get(constants.ENV_EXEC_MOCKS) or None,
            "log_levels": env.get(constants.ENV_LOG_LEVELS) or None,
        }
        data.update({k: v for k, v in overrides.items() if v is not None})
        try:
            settings = cls.model_validate(data)
        except ValidationError as e:
            raise ConfigValidationError(f"Phase settings validation failed:\n{e}")
        logger.debug(f"Phase settings: {settings.model_dump_json()}")
        return settings
