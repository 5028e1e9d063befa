"""External command execution with concurrent output draining."""

import asyncio
from pathlib import Path
from typing import Mapping, Optional, Sequence

from mcp_py_env.errors import ProcessTimeoutError, SpawnError, WaitError
from mcp_py_env.processes.streams import stream_lines
from mcp_py_env.types import CommandResult, Sink
from mcp_py_env.logging import get_logger

logger = get_logger(__name__)


async def _wait(process: asyncio.subprocess.Process) -> int:
    try:
        return await process.wait()
    except OSError as e:
        raise WaitError(process.pid, e) from e


async def _reap(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        pass
    try:
        await process.wait()
    except OSError as e:
        logger.error({"event": "cmd_reap_failed", "pid": process.pid, "error": str(e)})


async def run_command(
    argv: Sequence[str],
    out_sink: Sink,
    err_sink: Sink,
    *,
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
    timeout: Optional[float] = None,
    encoding: str = "utf-8",
    stdin: Optional[int] = asyncio.subprocess.DEVNULL,
) -> CommandResult:
    """Run a command, streaming its stdout and stderr lines to the sinks.

    Both pipes are drained concurrently with each other and with the wait
    for exit, so a child writing heavily to either channel cannot block on a
    full pipe buffer.

    Args:
        argv: Program and arguments, executed without a shell
        out_sink: Receives each stdout line
        err_sink: Receives each stderr line
        env: Complete environment for the child, inherited when None
        cwd: Working directory for the child
        timeout: Seconds to wait before killing the child
        stdin: Child stdin, /dev/null by default; None inherits ours

    Returns:
        CommandResult, successful when the exit status is 0

    Raises:
        SpawnError: If the process cannot be created
        WaitError: If the process cannot be waited on
        ProcessTimeoutError: If the timeout elapses first
    """
    argv = [str(arg) for arg in argv]
    logger.debug({"event": "cmd_exec", "argv": argv[:3], "cwd": str(cwd) if cwd else None})

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            cwd=cwd,
            env=dict(env) if env is not None else None,
            stdin=stdin,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except (OSError, ValueError) as e:
        logger.warning({"event": "cmd_spawn_failed", "program": argv[0] if argv else None, "error": str(e)})
        raise SpawnError(argv, e) from e

    tasks = [
        asyncio.ensure_future(
            stream_lines(process.stdout, out_sink, channel="stdout", encoding=encoding)
        ),
        asyncio.ensure_future(
            stream_lines(process.stderr, err_sink, channel="stderr", encoding=encoding)
        ),
        asyncio.ensure_future(_wait(process)),
    ]

    try:
        await asyncio.wait_for(asyncio.gather(*tasks), timeout)
    except asyncio.TimeoutError:
        logger.warning({"event": "cmd_timeout", "pid": process.pid, "timeout": timeout})
        await _reap(process)
        raise ProcessTimeoutError(argv, timeout) from None
    finally:
        for task in tasks:
            task.cancel()
        await _reap(process)
        await asyncio.gather(*tasks, return_exceptions=True)

    logger.debug({"event": "cmd_complete", "pid": process.pid, "returncode": process.returncode})

    return CommandResult(argv=argv, returncode=process.returncode)
