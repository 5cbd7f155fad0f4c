"""Manifest parsers, one per ecosystem."""

from .base import DependencyProvider
from .build_gradle import GradleParser
from .dockerfile import DockerfileParser
from .go_mod import GoModParser
from .package_json import PackageJsonParser
from .pom_xml import PomXmlParser
from .requirements_txt import RequirementsTxtParser

__all__ = [
    "DependencyProvider",
    "DockerfileParser",
    "GoModParser",
    "GradleParser",
    "PackageJsonParser",
    "PomXmlParser",
    "RequirementsTxtParser",
]
