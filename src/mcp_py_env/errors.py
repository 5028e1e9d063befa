"""Error types for environment management."""

import logging
from typing import Any, Dict, Optional, Sequence

from mcp.types import ErrorData, INTERNAL_ERROR, INVALID_PARAMS, INVALID_REQUEST

from mcp_py_env.logging import get_logger

logger = get_logger(__name__)


def log_error(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Log an error with context."""
    logger = logger or get_logger(__name__)

    error_info = {
        "event": "error",
        "error_type": error.__class__.__name__,
        "error_message": str(error),
    }
    if context:
        error_info["context"] = context
    if isinstance(error, PyEnvError):
        error_info["code"] = error.code
        error_info["details"] = error.details

    logger.error(error_info)


class PyEnvError(Exception):
    """Base error class for environment operations."""

    def __init__(
        self,
        message: str,
        code: int = INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_error_data(self) -> ErrorData:
        """Convert to ErrorData format."""
        return ErrorData(code=self.code, message=str(self), data=self.details)


class SpawnError(PyEnvError):
    """External command could not be launched."""

    def __init__(self, argv: Sequence[str], cause: BaseException):
        program = argv[0] if argv else ""
        super().__init__(
            f"Failed to launch {program}: {cause}",
            code=INVALID_REQUEST,
            details={"program": program, "cause": str(cause)},
        )


class WaitError(PyEnvError):
    """Process was spawned but could not be waited on."""

    def __init__(self, pid: Optional[int], cause: BaseException):
        super().__init__(
            f"Failed to wait on process {pid}: {cause}",
            details={"pid": pid, "cause": str(cause)},
        )


class ProcessTimeoutError(PyEnvError):
    """Process did not exit before the timeout elapsed."""

    def __init__(self, argv: Sequence[str], timeout: float):
        program = argv[0] if argv else ""
        super().__init__(
            f"{program} did not finish within {timeout} seconds",
            details={"program": program, "timeout": timeout},
        )


class PathError(PyEnvError):
    """Path cannot be represented as a command argument."""

    def __init__(self, path: Any, reason: str):
        super().__init__(
            f"Path {path!r} cannot be used as a command argument: {reason}",
            code=INVALID_PARAMS,
            details={"path": repr(path), "reason": reason},
        )


class EnvironmentIOError(PyEnvError):
    """Filesystem cleanup or input read failure."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        details = {"cause": str(cause)} if cause is not None else {}
        super().__init__(message, details=details)


class CommandFailedError(PyEnvError):
    """External command ran and exited non-zero."""

    def __init__(self, argv: Sequence[str], returncode: int):
        program = argv[0] if argv else ""
        super().__init__(
            f"{program} exited with code {returncode}",
            details={"argv": list(argv), "returncode": returncode},
        )
        self.returncode = returncode


class MissingDependenciesError(PyEnvError):
    """Source imports modules that are not installed."""

    def __init__(self, missing: Sequence[str]):
        super().__init__(
            f"Dependencies not installed: {', '.join(missing)}",
            code=INVALID_PARAMS,
            details={"missing": list(missing)},
        )
        self.missing = list(missing)


class InvalidEnvError(PyEnvError):
    """Error for invalid/missing environment."""

    def __init__(self, env_id: str):
        super().__init__(
            f"Environment {env_id} not found",
            code=INVALID_PARAMS,
            details={"env_id": env_id},
        )


class EnvironmentClosedError(PyEnvError):
    """Operation attempted on a disposed environment."""

    def __init__(self, root: Any):
        super().__init__(
            f"Environment at {root} is closed",
            code=INVALID_REQUEST,
            details={"root": str(root)},
        )
