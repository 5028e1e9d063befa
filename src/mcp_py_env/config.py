"""Environment configuration loading."""

import codecs
import os
import sys
from typing import Mapping, Optional

from mcp_py_env.types import DependencyMode, EnvConfig
from mcp_py_env.logging import get_logger

logger = get_logger(__name__)

DEFAULT_ENV_SETUP = {
    "PYTHONUNBUFFERED": "1",
    "PYTHONDONTWRITEBYTECODE": "1",
    "PIP_DISABLE_PIP_VERSION_CHECK": "1",
}

DEFAULT_PIP_ARGS = ("--disable-pip-version-check", "--no-input")


def default_dependency_mode() -> DependencyMode:
    """Prompt only when someone can answer."""
    try:
        interactive = sys.stdin is not None and sys.stdin.isatty()
    except ValueError:
        # stdin closed
        interactive = False
    return DependencyMode.PROMPT if interactive else DependencyMode.WARN


def parse_dependency_mode(value: str) -> DependencyMode:
    try:
        return DependencyMode(value.strip().lower())
    except ValueError:
        choices = ", ".join(m.value for m in DependencyMode)
        raise ValueError(f"Unknown dependency mode {value!r}, expected one of: {choices}")


def parse_timeout(value: str) -> Optional[float]:
    value = value.strip()
    if not value or value == "0":
        return None
    timeout = float(value)
    if timeout < 0:
        raise ValueError(f"Timeout must not be negative: {value}")
    return timeout


def parse_encoding(value: str) -> str:
    try:
        return codecs.lookup(value.strip()).name
    except LookupError:
        raise ValueError(f"Unknown encoding {value!r}")


def load_config(environ: Optional[Mapping[str, str]] = None) -> EnvConfig:
    """Build configuration from defaults and PY_ENV_* variables."""
    environ = os.environ if environ is None else environ

    python_bin = environ.get("PY_ENV_PYTHON") or sys.executable
    mode_value = environ.get("PY_ENV_DEPENDENCY_MODE")
    timeout_value = environ.get("PY_ENV_TIMEOUT")
    encoding_value = environ.get("PY_ENV_ENCODING")

    config = EnvConfig(
        python_bin=python_bin,
        pip_args=DEFAULT_PIP_ARGS,
        env_setup=dict(DEFAULT_ENV_SETUP),
        dependency_mode=(
            parse_dependency_mode(mode_value) if mode_value else default_dependency_mode()
        ),
        timeout=parse_timeout(timeout_value) if timeout_value else None,
        encoding=parse_encoding(encoding_value) if encoding_value else "utf-8",
    )

    logger.debug(
        {
            "event": "config_loaded",
            "python_bin": config.python_bin,
            "dependency_mode": config.dependency_mode.value,
            "timeout": config.timeout,
        }
    )
    return config


def log_level(environ: Optional[Mapping[str, str]] = None) -> str:
    environ = os.environ if environ is None else environ
    return (environ.get("PY_ENV_LOG_LEVEL") or "INFO").upper()
