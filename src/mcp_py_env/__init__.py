"""Isolated Python environments with on-demand package installation."""

__version__ = "0.1.0"

from mcp_py_env.types import CapturedOutput, CommandResult, DependencyMode, EnvConfig
from mcp_py_env.config import load_config
from mcp_py_env.environments.environment import PyEnv
from mcp_py_env.processes.runner import run_command
from mcp_py_env.dependencies.scanner import find_missing, scan_imports
from mcp_py_env.errors import (
    PyEnvError,
    SpawnError,
    WaitError,
    PathError,
    EnvironmentIOError,
    ProcessTimeoutError,
    CommandFailedError,
    MissingDependenciesError,
    InvalidEnvError,
    EnvironmentClosedError,
)

__all__ = [
    # Environment
    "PyEnv",
    "load_config",

    # Types
    "CapturedOutput",
    "CommandResult",
    "DependencyMode",
    "EnvConfig",

    # Functions
    "run_command",
    "scan_imports",
    "find_missing",

    # Error types
    "PyEnvError",
    "SpawnError",
    "WaitError",
    "PathError",
    "EnvironmentIOError",
    "ProcessTimeoutError",
    "CommandFailedError",
    "MissingDependenciesError",
    "InvalidEnvError",
    "EnvironmentClosedError",
]
