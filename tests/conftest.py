import sys

import pytest
import pytest_asyncio

from mcp_py_env.config import DEFAULT_ENV_SETUP, DEFAULT_PIP_ARGS
from mcp_py_env.environments.environment import PyEnv
from mcp_py_env.types import CapturedOutput, DependencyMode, EnvConfig


def pytest_addoption(parser):
    parser.addoption(
        "--run-network",
        action="store_true",
        default=False,
        help="run tests that install packages from the index",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-network"):
        return
    skip_network = pytest.mark.skip(reason="needs --run-network")
    for item in items:
        if "network" in item.keywords:
            item.add_marker(skip_network)


@pytest.fixture
def env_config() -> EnvConfig:
    """Config running the current interpreter, never prompting"""
    return EnvConfig(
        python_bin=sys.executable,
        pip_args=DEFAULT_PIP_ARGS,
        env_setup=dict(DEFAULT_ENV_SETUP),
        dependency_mode=DependencyMode.WARN,
        timeout=120,
    )


@pytest.fixture
def captured() -> CapturedOutput:
    return CapturedOutput()


@pytest.fixture
def info_lines() -> list[str]:
    return []


@pytest_asyncio.fixture
async def py_env(tmp_path, env_config, captured, info_lines):
    """Non-persistent environment with captured sinks"""
    env = PyEnv(
        tmp_path / "env",
        captured.out,
        captured.err,
        info_sink=info_lines.append,
        persistent=False,
        config=env_config,
    )
    try:
        yield env
    finally:
        env.close()
