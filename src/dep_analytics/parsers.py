"""
Manifest detection and dispatch to the matching parser.
"""

import time
from pathlib import Path
from typing import Dict, List, Optional, Union

from .config import AnalyticsConfig, get_config
from .dependency import Dependency, Image
from .error_handling import ErrorCategory, get_error_handler, log_parsing_error
from .golang_imports import list_go_imports
from .providers import (
    DependencyProvider,
    DockerfileParser,
    GoModParser,
    GradleParser,
    PackageJsonParser,
    PomXmlParser,
    RequirementsTxtParser,
)
from .structured_logging import log_collect_complete

Provider = Union[DependencyProvider, DockerfileParser]

FILE_TYPE_MAP: Dict[str, str] = {
    "package.json": "package_json",
    "pom.xml": "pom_xml",
    "go.mod": "go_mod",
    "requirements.txt": "requirements",
    "build.gradle": "gradle_build",
    "dockerfile": "dockerfile",
    "containerfile": "dockerfile",
}


def get_supported_file_types() -> List[str]:
    """Return the manifest names that can be parsed."""
    return [
        "package.json",
        "pom.xml",
        "go.mod",
        "requirements.txt",
        "build.gradle",
        "Dockerfile",
        "Containerfile",
    ]


def detect_file_type(file_path: str) -> str:
    """
    Detect the manifest type from its file name.

    Args:
        file_path: Path to the manifest

    Returns:
        str: File type identifier

    Raises:
        ValueError: If file type is not supported
    """
    filename = Path(file_path).name.lower()

    if filename in FILE_TYPE_MAP:
        return FILE_TYPE_MAP[filename]

    if filename.endswith(".dockerfile") or filename.startswith("dockerfile."):
        return "dockerfile"
    if filename.endswith("requirements.txt"):
        return "requirements"

    raise ValueError(f"Unsupported file type: {Path(file_path).name}")


def get_provider(file_path: str, config: Optional[AnalyticsConfig] = None) -> Provider:
    """Create the parser for a manifest path."""
    config = config or get_config()
    file_type = detect_file_type(file_path)

    provider_map = {
        "package_json": lambda: PackageJsonParser(config.providers.npm_dependency_classes),
        "pom_xml": PomXmlParser,
        "go_mod": GoModParser,
        "requirements": RequirementsTxtParser,
        "gradle_build": GradleParser,
        "dockerfile": DockerfileParser,
    }
    return provider_map[file_type]()


def read_manifest(file_path: str, config: Optional[AnalyticsConfig] = None) -> str:
    """
    Read a manifest as UTF-8 text within the configured size limit.

    Raises:
        ValueError: If the file is missing, too large or unreadable
    """
    config = config or get_config()
    path = Path(file_path)

    if not path.is_file():
        raise ValueError(f"File does not exist: {file_path}")

    try:
        size = path.stat().st_size
        if size > config.security.max_file_size_bytes:
            raise ValueError(
                f"File too large: {size} bytes (max: {config.security.max_file_size_bytes})"
            )
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        log_parsing_error(
            "Manifest is not valid UTF-8", "parsers", "read_manifest", file_path, e
        )
        raise ValueError("File contains invalid UTF-8 characters") from e
    except OSError as e:
        get_error_handler().error(
            ErrorCategory.FILESYSTEM,
            f"Cannot read manifest: {e}",
            "parsers",
            "read_manifest",
            exception=e,
            details={"file_path": path.name},
        )
        raise ValueError(f"Error reading file: {e}") from e


def parse_contents(
    file_path: str,
    contents: str,
    config: Optional[AnalyticsConfig] = None,
    resolve_go_imports: Optional[bool] = None,
) -> List[Union[Dependency, Image]]:
    """
    Parse already-loaded manifest text with the parser matching ``file_path``.

    Go import resolution runs the Go toolchain and is off unless requested
    here or in the configuration.
    """
    config = config or get_config()
    provider = get_provider(file_path, config)
    if resolve_go_imports is None:
        resolve_go_imports = config.providers.resolve_go_imports

    started = time.perf_counter()
    if isinstance(provider, GoModParser) and resolve_go_imports:
        imports = list_go_imports(file_path, config.providers.golang_executable)
        records = provider.collect(contents, imports)
    else:
        records = provider.collect(contents)

    log_collect_complete(
        Path(file_path).name,
        provider.ecosystem,
        len(records),
        (time.perf_counter() - started) * 1000,
    )
    return records


def parse_dependency_file(
    file_path: str,
    config: Optional[AnalyticsConfig] = None,
    resolve_go_imports: Optional[bool] = None,
) -> List[Union[Dependency, Image]]:
    """
    Parse any supported manifest file.

    Args:
        file_path: Path to the manifest
        config: Configuration, the global one when omitted
        resolve_go_imports: Override for Go import resolution

    Returns:
        List of Dependency records, or Image records for Dockerfiles

    Raises:
        ValueError: If file type is not supported or the file cannot be read
    """
    config = config or get_config()
    detect_file_type(file_path)
    contents = read_manifest(file_path, config)
    return parse_contents(file_path, contents, config, resolve_go_imports)
