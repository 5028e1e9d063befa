"""Environment lifecycle management."""

import asyncio
import os
import shutil
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Union

from mcp_py_env.config import load_config
from mcp_py_env.dependencies.prompt import prompt_for_packages, report_missing
from mcp_py_env.dependencies.scanner import find_missing, scan_imports
from mcp_py_env.environments.commands import (
    build_child_env,
    build_execute_command,
    build_install_command,
    site_packages_dir,
)
from mcp_py_env.errors import (
    CommandFailedError,
    EnvironmentClosedError,
    EnvironmentIOError,
    MissingDependenciesError,
    log_error,
)
from mcp_py_env.processes.runner import run_command
from mcp_py_env.types import CommandResult, DependencyMode, EnvConfig, ResponseReader, Sink
from mcp_py_env.logging import get_logger

logger = get_logger(__name__)


def print_stdout(line: str) -> None:
    print(line, file=sys.stdout, flush=True)


def print_stderr(line: str) -> None:
    print(line, file=sys.stderr, flush=True)


class PyEnv:
    """A package directory plus the interpreter runs that use it.

    The root directory survives :meth:`close` unless the environment has
    been marked non-persistent with :meth:`set_persistent`.
    """

    def __init__(
        self,
        path: Union[str, Path],
        out_sink: Sink,
        err_sink: Sink,
        *,
        info_sink: Optional[Sink] = None,
        persistent: bool = True,
        dependency_mode: Optional[DependencyMode] = None,
        read_response: Optional[ResponseReader] = None,
        config: Optional[EnvConfig] = None,
        inherit_stdin: bool = False,
    ):
        self.root = Path(path)
        self.out_sink = out_sink
        self.err_sink = err_sink
        self.info_sink = info_sink or out_sink
        self.persistent = persistent
        self.config = config or load_config()
        self.dependency_mode = dependency_mode or self.config.dependency_mode
        self.read_response = read_response
        self.inherit_stdin = inherit_stdin
        self._closed = False

    @classmethod
    def at(cls, path: Union[str, Path], **kwargs) -> "PyEnv":
        """Environment whose output goes to the inherited stdout and stderr."""
        return cls(path, print_stdout, print_stderr, **kwargs)

    @property
    def package_dir(self) -> Path:
        return site_packages_dir(self.root)

    @property
    def closed(self) -> bool:
        return self._closed

    def set_persistent(self, persistent: bool) -> "PyEnv":
        self.persistent = persistent
        return self

    def _check_open(self) -> None:
        if self._closed:
            raise EnvironmentClosedError(self.root)

    def _ensure_package_dir(self) -> None:
        try:
            self.package_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise EnvironmentIOError(f"Failed to create {self.package_dir}", e) from e

    async def _run(
        self,
        argv: list[str],
        env: dict[str, str],
        check: bool,
        out_sink: Optional[Sink] = None,
        err_sink: Optional[Sink] = None,
    ) -> CommandResult:
        result = await run_command(
            argv,
            out_sink or self.out_sink,
            err_sink or self.err_sink,
            env=env,
            timeout=self.config.timeout,
            encoding=self.config.encoding,
            stdin=None if self.inherit_stdin else asyncio.subprocess.DEVNULL,
        )
        if check and not result.success:
            raise CommandFailedError(result.argv, result.returncode)
        return result

    async def install(
        self, *package_names: str, check: bool = False, log_sink: Optional[Sink] = None
    ) -> CommandResult:
        """Install packages into the environment's package directory.

        A failing pip run is reported through ``success``; with ``check``
        it raises CommandFailedError instead. When ``log_sink`` is given it
        receives both of pip's output channels in place of the sinks.

        Raises:
            PathError: If the root cannot be passed as an argument
            SpawnError: If the installer cannot be launched
        """
        self._check_open()
        argv = build_install_command(self.config, self.root, package_names)
        self._ensure_package_dir()

        logger.info(
            {"event": "installing_packages", "root": str(self.root), "packages": list(package_names)}
        )
        result = await self._run(
            argv, {**os.environ, **self.config.env_setup}, check, log_sink, log_sink
        )
        if not result.success:
            logger.warning(
                {
                    "event": "install_failed",
                    "packages": list(package_names),
                    "returncode": result.returncode,
                }
            )
        return result

    async def _resolve_dependencies(
        self, source: str, mode: DependencyMode
    ) -> list[str]:
        modules = scan_imports(source)
        missing = find_missing(modules, self.package_dir)
        if not missing:
            return []

        if mode is DependencyMode.FAIL:
            raise MissingDependenciesError(missing)

        if mode is DependencyMode.WARN:
            report_missing(missing, self.info_sink)
            logger.warning({"event": "dependencies_not_installed", "missing": missing})
            return missing

        if mode is DependencyMode.AUTO:
            packages = missing
        else:
            packages = await asyncio.to_thread(
                prompt_for_packages, missing, self.info_sink, self.read_response
            )

        if packages:
            await self.install(*packages, log_sink=self.info_sink)
        return find_missing(modules, self.package_dir)

    async def execute(
        self,
        source: str,
        *,
        check: bool = False,
        dependency_mode: Optional[DependencyMode] = None,
    ) -> CommandResult:
        """Run source text with the package directory first on the search path.

        Imports in ``source`` are checked against the package directory
        first and handled according to the dependency mode. Modules still
        missing afterwards are listed in ``missing_dependencies``.

        Raises:
            MissingDependenciesError: In FAIL mode when imports are missing
            PathError: If the root cannot be passed as an argument
            SpawnError: If the interpreter cannot be launched
        """
        self._check_open()
        argv = build_execute_command(self.config, source)
        env = build_child_env(self.config, self.root)
        self._ensure_package_dir()

        missing = await self._resolve_dependencies(source, dependency_mode or self.dependency_mode)

        logger.debug({"event": "executing_source", "root": str(self.root), "size": len(source)})
        result = await self._run(argv, env, check)
        return replace(result, missing_dependencies=missing)

    def close(self) -> None:
        """Dispose the environment, removing its root unless persistent.

        Runs once; later calls do nothing. Removal failures are logged and
        reported on the error sink, never raised.
        """
        if self._closed:
            return
        self._closed = True

        if self.persistent:
            logger.debug({"event": "env_released", "root": str(self.root)})
            return

        logger.debug({"event": "cleaning_env", "root": str(self.root)})
        try:
            shutil.rmtree(self.root)
        except FileNotFoundError:
            logger.debug({"event": "env_already_removed", "root": str(self.root)})
        except OSError as e:
            log_error(
                EnvironmentIOError(f"Failed to remove {self.root}", e),
                context={"root": str(self.root)},
                logger=logger,
            )
            try:
                self.err_sink(f"Error deleting PyEnv at {self.root}, cause: {e}")
            except Exception as sink_error:
                logger.error({"event": "err_sink_failed", "error": str(sink_error)})

    def __enter__(self) -> "PyEnv":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    async def __aenter__(self) -> "PyEnv":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"PyEnv(root={str(self.root)!r}, persistent={self.persistent}, closed={self._closed})"
