"""In-memory store of environments addressed by id."""

import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Union

from fuuid import b58_fuuid

from mcp_py_env.environments.environment import PyEnv
from mcp_py_env.errors import InvalidEnvError
from mcp_py_env.types import CapturedOutput, DependencyMode, EnvConfig
from mcp_py_env.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ManagedEnvironment:
    """Registered environment with captured output"""

    id: str
    env: PyEnv
    output: CapturedOutput
    created_at: datetime

    @property
    def root(self) -> Path:
        return self.env.root


_ENVIRONMENTS: Dict[str, ManagedEnvironment] = {}


def create_environment(
    path: Optional[Union[str, Path]] = None,
    persistent: Optional[bool] = None,
    dependency_mode: DependencyMode = DependencyMode.WARN,
    config: Optional[EnvConfig] = None,
) -> ManagedEnvironment:
    """Create and register an environment.

    Without a path the root is a fresh temporary directory that is removed
    on cleanup; an explicit path is kept unless ``persistent`` is False.
    """
    env_id = b58_fuuid()
    if path is None:
        root = Path(tempfile.mkdtemp(prefix=f"py-env-{env_id}-"))
        persistent = False if persistent is None else persistent
    else:
        root = Path(path)
        persistent = True if persistent is None else persistent

    output = CapturedOutput()
    env = PyEnv(
        root,
        output.out,
        output.err,
        info_sink=output.note,
        persistent=persistent,
        dependency_mode=dependency_mode,
        config=config,
    )
    managed = ManagedEnvironment(
        id=env_id, env=env, output=output, created_at=datetime.now(timezone.utc)
    )

    _ENVIRONMENTS[env_id] = managed
    logger.info({"event": "env_created", "id": env_id, "root": str(root), "persistent": persistent})
    return managed


def get_environment(env_id: str) -> Optional[ManagedEnvironment]:
    """Get environment by ID."""
    return _ENVIRONMENTS.get(env_id)


def require_environment(env_id: str) -> ManagedEnvironment:
    managed = _ENVIRONMENTS.get(env_id)
    if managed is None:
        raise InvalidEnvError(env_id)
    return managed


def cleanup_environment(env_id: str) -> None:
    """Unregister an environment and dispose it."""
    managed = _ENVIRONMENTS.pop(env_id, None)
    if managed is None:
        raise InvalidEnvError(env_id)
    managed.env.close()
    logger.info({"event": "env_cleaned", "id": env_id})


def cleanup_all() -> None:
    for env_id in list(_ENVIRONMENTS):
        cleanup_environment(env_id)
