"""
Environment Configuration Management Module

Centralizes how the image-gen bridge reads its process configuration:

- Environment variables
- `.env` files (`.env`, `.env.<ENV>`, `.env.<ENV>.local`)
- Default values

Environment variables always win over `.env` files, and `.env` files win over
`DEFAULT_ENV`. Pipeline code never calls into this module directly; it is read
once at startup by :meth:`imagegen.config.settings.ServiceConfig.from_environment`.
"""

import os
from pathlib import Path
from typing import Any

from imagegen.config.logging_config import get_logger

log = get_logger(__name__)

DEFAULT_ENV = {
    "SD_WEBUI_URL": "http://127.0.0.1:7860",
    "SD_AUTH_USER": None,
    "SD_AUTH_PASS": None,
    "SD_OUTPUT_DIR": "./output",
    "REQUEST_TIMEOUT": "300000",
    "LOG_LEVEL": "INFO",
    "ENV": "development",
}


def load_dotenv_files(project_root: Path | None = None) -> list[Path]:
    """Load environment variables from .env files based on current environment.

    Files are loaded with ``override=False`` so real environment variables are
    never replaced.

    Returns:
        The list of files that were found and loaded.
    """
    from dotenv import load_dotenv

    if project_root is None:
        project_root = Path.cwd()

    env_name = os.environ.get("ENV", "development")

    # Later files add keys the earlier ones did not set
    env_files = [
        project_root / ".env",
        project_root / f".env.{env_name}",
        project_root / f".env.{env_name}.local",
    ]

    loaded = []
    for env_file in env_files:
        if env_file.exists():
            load_dotenv(env_file, override=False)
            loaded.append(env_file)
            log.debug(f"Loaded environment file {env_file}")
    return loaded


class Environment(object):
    """
    A class that manages environment variables and provides default values.

    `.env` files are loaded lazily the first time a value is requested. Empty
    variables count as unset.
    """

    _dotenv_loaded: bool = False

    @classmethod
    def load(cls, project_root: Path | None = None):
        load_dotenv_files(project_root)
        cls._dotenv_loaded = True

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        if not cls._dotenv_loaded:
            cls.load()
        value = os.environ.get(key)
        if value:
            return value
        if default is not None:
            return default
        return DEFAULT_ENV.get(key)
