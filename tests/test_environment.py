"""Tests for environment lifecycle, install and execute."""

import os
from dataclasses import replace
from pathlib import Path
from typing import Optional

import pytest

from mcp_py_env.dependencies.prompt import PROMPT_TEXT, WARNING_HEADER
from mcp_py_env.environments.environment import PyEnv
from mcp_py_env.errors import (
    CommandFailedError,
    EnvironmentClosedError,
    MissingDependenciesError,
    PathError,
    PyEnvError,
    SpawnError,
)
from mcp_py_env.types import CapturedOutput, CommandResult, DependencyMode


def write_module(package_dir: Path, name: str, body: str) -> None:
    module_dir = package_dir / name
    module_dir.mkdir(parents=True, exist_ok=True)
    (module_dir / "__init__.py").write_text(body)


@pytest.mark.asyncio
async def test_execute_hello_world(py_env: PyEnv, captured: CapturedOutput):
    result = await py_env.execute("print('hello world')")

    assert result.success
    assert result.missing_dependencies == []
    assert captured.stdout == ["hello world"]
    assert captured.stderr == []


@pytest.mark.asyncio
async def test_execute_creates_package_dir(py_env: PyEnv):
    assert not py_env.root.exists()
    await py_env.execute("pass")
    assert py_env.package_dir.is_dir()


@pytest.mark.asyncio
async def test_execute_script_error(py_env: PyEnv, captured: CapturedOutput):
    result = await py_env.execute("raise SystemExit('boom')")

    assert not result.success
    assert result.returncode == 1
    assert captured.stderr == ["boom"]


@pytest.mark.asyncio
async def test_execute_check_raises(py_env: PyEnv):
    with pytest.raises(CommandFailedError) as exc_info:
        await py_env.execute("import sys; sys.exit(4)", check=True)
    assert exc_info.value.returncode == 4


@pytest.mark.asyncio
async def test_execute_uses_package_dir(py_env: PyEnv, captured: CapturedOutput):
    """Packages in site-packages stay visible across executions"""
    write_module(py_env.package_dir, "greeting", "MESSAGE = 'hi from site-packages'\n")

    for _ in range(2):
        result = await py_env.execute("import greeting; print(greeting.MESSAGE)")
        assert result.success
        assert result.missing_dependencies == []

    assert captured.stdout == ["hi from site-packages"] * 2


@pytest.mark.asyncio
async def test_execute_search_path_is_scoped(py_env: PyEnv, captured: CapturedOutput):
    before = os.environ.get("PYTHONPATH")
    await py_env.execute("import os; print(os.environ['PYTHONPATH'])")

    assert captured.stdout[0].split(os.pathsep)[0] == str(py_env.package_dir)
    assert os.environ.get("PYTHONPATH") == before


@pytest.mark.asyncio
async def test_install_invalid_package_returns_result(py_env: PyEnv):
    result = await py_env.install("!!!not a package!!!")

    assert isinstance(result, CommandResult)
    assert not result.success


@pytest.mark.asyncio
async def test_install_check_raises(py_env: PyEnv):
    with pytest.raises(CommandFailedError):
        await py_env.install("!!!not a package!!!", check=True)


@pytest.mark.asyncio
async def test_install_missing_interpreter(tmp_path, env_config, captured):
    config = replace(env_config, python_bin=str(tmp_path / "nope"))
    env = PyEnv(tmp_path / "env", captured.out, captured.err, config=config)

    with pytest.raises(SpawnError):
        await env.install("faker")
    with pytest.raises(SpawnError):
        await env.execute("print(1)")


@pytest.mark.asyncio
async def test_unrepresentable_root(tmp_path, env_config, captured):
    env = PyEnv(tmp_path / "bad\x00root", captured.out, captured.err, config=env_config)

    with pytest.raises(PathError):
        await env.install("faker")
    with pytest.raises(PathError):
        await env.execute("print(1)")


@pytest.mark.asyncio
async def test_install_requires_package(py_env: PyEnv):
    with pytest.raises(ValueError):
        await py_env.install()


@pytest.mark.asyncio
@pytest.mark.network
async def test_install_then_execute(py_env: PyEnv, captured: CapturedOutput):
    result = await py_env.install("faker")
    assert result.success
    assert (py_env.package_dir / "faker").is_dir()

    captured.drain()
    result = await py_env.execute("import faker; print(faker.Faker().name())")

    assert result.success
    assert len(captured.stdout) == 1


# Dependency modes


@pytest.mark.asyncio
async def test_missing_dependency_warn(py_env: PyEnv, captured: CapturedOutput, info_lines):
    result = await py_env.execute("import notinstalledmod", dependency_mode=DependencyMode.WARN)

    assert result.missing_dependencies == ["notinstalledmod"]
    assert not result.success
    assert info_lines == [WARNING_HEADER, "\tnotinstalledmod", ""]
    assert any("ModuleNotFoundError" in line for line in captured.stderr)


@pytest.mark.asyncio
async def test_missing_dependency_fail(py_env: PyEnv, captured: CapturedOutput):
    with pytest.raises(MissingDependenciesError) as exc_info:
        await py_env.execute("import notinstalledmod\nprint('ran')", dependency_mode=DependencyMode.FAIL)

    assert exc_info.value.missing == ["notinstalledmod"]
    assert captured.stdout == []


@pytest.mark.asyncio
async def test_stdlib_imports_not_reported(py_env: PyEnv, info_lines):
    py_env.dependency_mode = DependencyMode.FAIL
    result = await py_env.execute("import os, json\nfrom sys import path\nprint(len(path) > 0)")

    assert result.success
    assert info_lines == []


def fake_installer(env: PyEnv, calls: list, log_sinks: Optional[list] = None):
    log_sinks = [] if log_sinks is None else log_sinks

    async def install(*packages, check=False, log_sink=None):
        calls.append(packages)
        log_sinks.append(log_sink)
        for package in packages:
            write_module(env.package_dir, package, "VALUE = 42\n")
        return CommandResult(argv=["pip", "install", *packages], returncode=0)

    return install


@pytest.mark.asyncio
async def test_missing_dependency_auto(py_env: PyEnv, captured: CapturedOutput, monkeypatch):
    calls = []
    monkeypatch.setattr(py_env, "install", fake_installer(py_env, calls))

    result = await py_env.execute(
        "import autoinstalled; print(autoinstalled.VALUE)",
        dependency_mode=DependencyMode.AUTO,
    )

    assert calls == [("autoinstalled",)]
    assert result.success
    assert result.missing_dependencies == []
    assert captured.stdout == ["42"]


@pytest.mark.asyncio
async def test_missing_dependency_prompt(py_env: PyEnv, captured, info_lines, monkeypatch):
    calls = []
    monkeypatch.setattr(py_env, "install", fake_installer(py_env, calls))
    py_env.read_response = lambda: "prompted\n"

    result = await py_env.execute(
        "import prompted; print(prompted.VALUE)", dependency_mode=DependencyMode.PROMPT
    )

    assert calls == [("prompted",)]
    assert info_lines[0] == WARNING_HEADER
    assert info_lines[-1] == PROMPT_TEXT
    assert result.success
    assert captured.stdout == ["42"]


@pytest.mark.asyncio
async def test_prompt_empty_response_proceeds(py_env: PyEnv, monkeypatch):
    calls = []
    monkeypatch.setattr(py_env, "install", fake_installer(py_env, calls))
    py_env.read_response = lambda: "\n"

    result = await py_env.execute("import declined", dependency_mode=DependencyMode.PROMPT)

    assert calls == []
    assert result.missing_dependencies == ["declined"]
    assert not result.success


# Disposal


@pytest.mark.asyncio
async def test_non_persistent_root_removed(tmp_path, env_config, captured):
    env = PyEnv(tmp_path / "env", captured.out, captured.err, config=env_config)
    env.set_persistent(False)
    await env.execute("pass")
    assert env.root.exists()

    env.close()

    assert not env.root.exists()


@pytest.mark.asyncio
async def test_persistent_root_kept(tmp_path, env_config, captured):
    env = PyEnv(tmp_path / "env", captured.out, captured.err, config=env_config)
    await env.execute("pass")

    env.close()

    assert env.persistent
    assert env.package_dir.is_dir()


def test_set_persistent_last_value_wins(tmp_path, env_config, captured):
    root = tmp_path / "env"
    (root / "site-packages").mkdir(parents=True)
    env = PyEnv(root, captured.out, captured.err, config=env_config)

    env.set_persistent(False).set_persistent(True).set_persistent(False)
    env.close()

    assert not root.exists()


def test_close_runs_once(tmp_path, env_config, captured, monkeypatch):
    root = tmp_path / "env"
    root.mkdir()
    calls = []
    monkeypatch.setattr(
        "mcp_py_env.environments.environment.shutil.rmtree", lambda path: calls.append(path)
    )
    env = PyEnv(root, captured.out, captured.err, persistent=False, config=env_config)

    env.close()
    env.close()

    assert calls == [root]
    assert env.closed


def test_close_failure_is_reported(tmp_path, env_config, captured, monkeypatch):
    def failing_rmtree(path):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr("mcp_py_env.environments.environment.shutil.rmtree", failing_rmtree)
    env = PyEnv(tmp_path / "env", captured.out, captured.err, persistent=False, config=env_config)

    env.close()

    assert len(captured.stderr) == 1
    assert captured.stderr[0].startswith(f"Error deleting PyEnv at {env.root}")


def test_close_never_created_root(tmp_path, env_config, captured):
    env = PyEnv(tmp_path / "never", captured.out, captured.err, persistent=False, config=env_config)
    env.close()
    assert captured.stderr == []


@pytest.mark.asyncio
async def test_closed_environment_rejects_operations(py_env: PyEnv):
    py_env.close()

    with pytest.raises(EnvironmentClosedError):
        await py_env.execute("print(1)")
    with pytest.raises(EnvironmentClosedError):
        await py_env.install("faker")
    assert isinstance(EnvironmentClosedError(py_env.root), PyEnvError)


def test_context_manager(tmp_path, env_config, captured):
    root = tmp_path / "env"
    root.mkdir()

    with PyEnv(root, captured.out, captured.err, config=env_config).set_persistent(False) as env:
        assert not env.closed

    assert env.closed
    assert not root.exists()


@pytest.mark.asyncio
async def test_async_context_manager(tmp_path, env_config, captured):
    async with PyEnv(tmp_path / "env", captured.out, captured.err, config=env_config) as env:
        env.set_persistent(False)
        result = await env.execute("print('inside')")
        assert result.success

    assert env.closed
    assert not env.root.exists()
    assert captured.stdout == ["inside"]


@pytest.mark.asyncio
async def test_at_prints_to_inherited_streams(tmp_path, env_config, capsys):
    with PyEnv.at(tmp_path / "env", config=env_config) as env:
        await env.execute("import sys; print('hello world'); print('oops', file=sys.stderr)")

    out, err = capsys.readouterr()
    assert out == "hello world\n"
    assert err == "oops\n"
    assert env.persistent


@pytest.mark.asyncio
async def test_execute_stdin_is_not_inherited(py_env: PyEnv, captured: CapturedOutput):
    source = "try:\n    input()\nexcept EOFError:\n    print('eof')\n"
    result = await py_env.execute(source)

    assert result.success
    assert captured.stdout == ["eof"]
    assert not py_env.inherit_stdin


@pytest.mark.asyncio
async def test_install_log_sink_takes_pip_output(py_env: PyEnv, captured: CapturedOutput):
    lines = []
    result = await py_env.install("!!!not a package!!!", log_sink=lines.append)

    assert not result.success
    assert lines
    assert captured.stdout == []
    assert captured.stderr == []


@pytest.mark.asyncio
async def test_dependency_install_output_goes_to_info_sink(py_env: PyEnv, info_lines, monkeypatch):
    calls, log_sinks = [], []
    monkeypatch.setattr(py_env, "install", fake_installer(py_env, calls, log_sinks))

    await py_env.execute("import routed", dependency_mode=DependencyMode.AUTO)

    assert calls == [("routed",)]
    assert log_sinks == [py_env.info_sink]
