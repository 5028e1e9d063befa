"""Import detection and install prompting."""

from mcp_py_env.dependencies.scanner import find_missing, scan_imports
from mcp_py_env.dependencies.prompt import prompt_for_packages

__all__ = ["find_missing", "prompt_for_packages", "scan_imports"]
