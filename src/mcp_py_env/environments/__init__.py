"""Environment lifecycle: package directory, install, execute and disposal."""

from mcp_py_env.environments.environment import PyEnv

__all__ = ["PyEnv"]
