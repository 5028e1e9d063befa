"""Interactive install prompt for missing dependencies."""

import sys
from typing import Optional, Sequence

from mcp_py_env.errors import EnvironmentIOError
from mcp_py_env.types import ResponseReader, Sink

WARNING_HEADER = "WARNING: dependencies not installed:"
PROMPT_TEXT = "Please list all packages to install, delimited with spaces: "


def read_stdin_line() -> str:
    """Read one response line from standard input."""
    return sys.stdin.readline()


def report_missing(missing: Sequence[str], info_sink: Sink) -> None:
    info_sink(WARNING_HEADER)
    for module in missing:
        info_sink(f"\t{module}")
    info_sink("")


def prompt_for_packages(
    missing: Sequence[str],
    info_sink: Sink,
    read_response: Optional[ResponseReader] = None,
) -> list[str]:
    """List missing modules, ask which packages to install and return them.

    An empty response yields an empty list, meaning proceed without
    installing.

    Raises:
        EnvironmentIOError: If the response cannot be read
    """
    read_response = read_response or read_stdin_line

    report_missing(missing, info_sink)
    info_sink(PROMPT_TEXT)

    try:
        response = read_response()
    except (OSError, EOFError) as e:
        raise EnvironmentIOError("Failed to read install response", e) from e

    return (response or "").split()
