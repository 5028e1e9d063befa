"""Install and execute command construction."""

import os
from pathlib import Path
from typing import Mapping, Optional, Sequence

from mcp_py_env.errors import PathError
from mcp_py_env.types import EnvConfig

SITE_PACKAGES = "site-packages"


def site_packages_dir(root: Path) -> Path:
    return root / SITE_PACKAGES


def path_arg(path: Path) -> str:
    """Render a path as a command argument.

    Raises:
        PathError: If the path holds a NUL byte or characters the
            filesystem encoding cannot represent
    """
    text = str(path)
    if "\x00" in text:
        raise PathError(text, "embedded NUL byte")
    try:
        os.fsencode(text)
    except UnicodeEncodeError as e:
        raise PathError(text, f"not representable in {e.encoding}") from e
    return text


def build_install_command(
    config: EnvConfig, root: Path, package_names: Sequence[str]
) -> list[str]:
    """Build ``python -m pip install <pkgs> --target <root>/site-packages``."""
    if not package_names:
        raise ValueError("At least one package name is required")
    target = path_arg(site_packages_dir(root))
    return [
        config.python_bin,
        "-m",
        "pip",
        "install",
        *package_names,
        "--target",
        target,
        *config.pip_args,
    ]


def build_execute_command(config: EnvConfig, source: str) -> list[str]:
    return [config.python_bin, "-c", source]


def build_child_env(
    config: EnvConfig, root: Path, base: Optional[Mapping[str, str]] = None
) -> dict[str, str]:
    """Environment for one child with the package dir first on PYTHONPATH."""
    base = os.environ if base is None else base
    search_path = path_arg(site_packages_dir(root))
    existing = base.get("PYTHONPATH")

    env = {**base, **config.env_setup}
    env["PYTHONPATH"] = os.pathsep.join([search_path, existing]) if existing else search_path
    return env
