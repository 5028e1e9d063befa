"""Lexical import detection over source text.

This is a token heuristic, not a parser: ``import x`` and ``from x import y``
are recognized anywhere in the whitespace-split text, including inside
strings and comments, and aliases or comma lists are not followed.
"""

import sys
from pathlib import Path
from typing import Iterable, Optional

from mcp_py_env.logging import get_logger

logger = get_logger(__name__)

TRIM_CHARS = ";'\",."

# Modules that never live in site-packages
STDLIB_MODULES = frozenset(sys.stdlib_module_names) | frozenset(sys.builtin_module_names)


def trim_syntax(token: str) -> str:
    """Strip statement punctuation from both ends of a module token."""
    return token.strip(TRIM_CHARS)


def _top_level(token: str) -> str:
    return trim_syntax(token).split(".", 1)[0]


def scan_imports(source: str) -> list[str]:
    """Return top-level module names referenced by import statements.

    Names are ordered by first appearance, without duplicates.
    """
    found: dict[str, None] = {}
    tokens = iter(source.split())

    for token in tokens:
        if token == "import":
            module = next(tokens, None)
            if module is not None and (name := _top_level(module)):
                found.setdefault(name)
        elif token == "from":
            module, keyword, target = next(tokens, None), next(tokens, None), next(tokens, None)
            if module is not None and keyword == "import" and target is not None:
                if name := _top_level(module):
                    found.setdefault(name)

    return list(found)


def is_installed(module: str, package_dir: Path) -> bool:
    return (package_dir / module).is_dir() or (package_dir / f"{module}.py").is_file()


def find_missing(
    modules: Iterable[str],
    package_dir: Path,
    ignore: Optional[Iterable[str]] = STDLIB_MODULES,
) -> list[str]:
    """Filter to modules with no same-named directory under ``package_dir``.

    Presence is checked by name only, so a namespace package or a
    distribution whose import name differs from its directory can be
    reported as missing.
    """
    ignored = frozenset(ignore or ())
    missing = [
        module
        for module in modules
        if module not in ignored and not is_installed(module, package_dir)
    ]
    if missing:
        logger.debug(
            {"event": "dependencies_missing", "package_dir": str(package_dir), "missing": missing}
        )
    return missing
