"""
Listing of the packages a Go module imports, via ``go list``.

The Go toolchain is the only external process this package runs. Its two
failure modes are reported as distinct exceptions so callers can tell a
missing executable from a module that does not build.
"""

import subprocess
from pathlib import Path
from typing import List, Optional, Set

from .error_handling import ErrorCategory, get_error_handler

GO_LIST_TEMPLATE = '{{ join .Imports "\\n" }}'
COMMAND_NOT_FOUND_EXIT_CODE = 127


class GoToolchainError(RuntimeError):
    """Base class for failures of the Go toolchain."""


class GoExecutableNotFoundError(GoToolchainError):
    def __init__(self, executable: str):
        super().__init__(f"Unable to locate '{executable}'")
        self.executable = executable


class GoListError(GoToolchainError):
    def __init__(self, executable: str, stderr: str = ""):
        super().__init__(
            f"Unable to execute '{executable} list' command, "
            f"run '{executable} mod tidy' to know more"
        )
        self.executable = executable
        self.stderr = stderr


def get_go_list_command(executable: str = "go") -> List[str]:
    return [executable, "list", "-f", GO_LIST_TEMPLATE, "./..."]


def list_go_imports(
    manifest_path: str, executable: str = "go", timeout: Optional[float] = 120.0
) -> Set[str]:
    """
    Run ``go list`` next to a go.mod and collect every imported package.

    Args:
        manifest_path: Path of the go.mod file
        executable: Go executable to run
        timeout: Seconds before the command is abandoned

    Returns:
        Set[str]: Import paths

    Raises:
        GoExecutableNotFoundError: If the executable cannot be found
        GoListError: If the command fails for any other reason
    """
    working_dir = Path(manifest_path).parent
    try:
        result = subprocess.run(
            get_go_list_command(executable),
            cwd=str(working_dir),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        get_error_handler().error(
            ErrorCategory.TOOLCHAIN,
            f"Go executable not found: {executable}",
            "golang_imports",
            "list_go_imports",
            exception=e,
        )
        raise GoExecutableNotFoundError(executable) from e
    except (OSError, subprocess.TimeoutExpired) as e:
        get_error_handler().error(
            ErrorCategory.TOOLCHAIN,
            f"Go list failed to run: {e}",
            "golang_imports",
            "list_go_imports",
            exception=e,
        )
        raise GoListError(executable) from e

    if result.returncode == COMMAND_NOT_FOUND_EXIT_CODE:
        raise GoExecutableNotFoundError(executable)
    if result.returncode != 0:
        get_error_handler().error(
            ErrorCategory.TOOLCHAIN,
            "Go list exited with an error",
            "golang_imports",
            "list_go_imports",
            details={"exit_code": result.returncode, "stderr": result.stderr[-500:]},
        )
        raise GoListError(executable, result.stderr)

    return {line.strip() for line in result.stdout.splitlines() if line.strip()}
