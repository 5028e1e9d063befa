"""Core type definitions"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

Sink = Callable[[str], None]
ResponseReader = Callable[[], str]


class DependencyMode(Enum):
    """What execute does when imported modules are missing."""

    PROMPT = "prompt"
    AUTO = "auto"
    FAIL = "fail"
    WARN = "warn"


@dataclass(frozen=True)
class EnvConfig:
    """Interpreter and installer configuration"""

    python_bin: str
    pip_args: tuple[str, ...]
    env_setup: dict[str, str]
    dependency_mode: DependencyMode
    timeout: Optional[float] = None
    encoding: str = "utf-8"


@dataclass(frozen=True)
class CommandResult:
    """Completion status of one external command"""

    argv: list[str]
    returncode: int
    missing_dependencies: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def __bool__(self) -> bool:
        return self.success


@dataclass
class CapturedOutput:
    """Sinks that collect lines until drained"""

    stdout: list[str] = field(default_factory=list)
    stderr: list[str] = field(default_factory=list)
    info: list[str] = field(default_factory=list)

    def out(self, line: str) -> None:
        self.stdout.append(line)

    def err(self, line: str) -> None:
        self.stderr.append(line)

    def note(self, line: str) -> None:
        self.info.append(line)

    def drain(self) -> tuple[list[str], list[str], list[str]]:
        stdout, stderr, info = self.stdout, self.stderr, self.info
        self.stdout, self.stderr, self.info = [], [], []
        return stdout, stderr, info
