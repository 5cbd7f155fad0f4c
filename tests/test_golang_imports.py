import subprocess
from unittest.mock import patch

import pytest

from dep_analytics.error_handling import get_error_handler
from dep_analytics.golang_imports import (
    GoExecutableNotFoundError,
    GoListError,
    get_go_list_command,
    list_go_imports,
)


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(
        args=[], returncode=returncode, stdout=stdout, stderr=stderr
    )


def test_command_line():
    assert get_go_list_command("/opt/go") == [
        "/opt/go",
        "list",
        "-f",
        '{{ join .Imports "\\n" }}',
        "./...",
    ]


def test_lists_imports_in_module_directory(sample_go_mod):
    output = "fmt\ngithub.com/gorilla/mux\n\nfmt\n"
    with patch("dep_analytics.golang_imports.subprocess.run") as run:
        run.return_value = completed(stdout=output)
        imports = list_go_imports(str(sample_go_mod))

    assert imports == {"fmt", "github.com/gorilla/mux"}
    assert run.call_args.kwargs["cwd"] == str(sample_go_mod.parent)


def test_missing_executable(sample_go_mod):
    with patch(
        "dep_analytics.golang_imports.subprocess.run", side_effect=FileNotFoundError()
    ):
        with pytest.raises(GoExecutableNotFoundError, match="Unable to locate 'gox'"):
            list_go_imports(str(sample_go_mod), "gox")

    assert get_error_handler().get_error_stats() == {"TOOLCHAIN_ERROR": 1}


def test_command_not_found_exit_code(sample_go_mod):
    with patch("dep_analytics.golang_imports.subprocess.run") as run:
        run.return_value = completed(returncode=127)
        with pytest.raises(GoExecutableNotFoundError):
            list_go_imports(str(sample_go_mod))


def test_failing_command(sample_go_mod):
    with patch("dep_analytics.golang_imports.subprocess.run") as run:
        run.return_value = completed(returncode=1, stderr="missing go.sum entry")
        with pytest.raises(GoListError) as excinfo:
            list_go_imports(str(sample_go_mod))

    assert str(excinfo.value) == (
        "Unable to execute 'go list' command, run 'go mod tidy' to know more"
    )
    assert excinfo.value.stderr == "missing go.sum entry"
