"""
Dependency records produced by the manifest parsers.

A ``Dependency`` ties a package name to the text it was declared with, so that
analysis results can be anchored back onto the manifest. ``Image`` plays the
same role for container base images found in Dockerfiles.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .position import (
    NO_POSITION,
    PositionedContext,
    PositionedString,
    Range,
)


@dataclass(frozen=True)
class Dependency:
    """A unified internal data structure to represent a dependency."""

    name: PositionedString
    version: Optional[PositionedString] = None
    context: Optional[PositionedContext] = None

    @property
    def key(self) -> str:
        return self.name.value

    def to_dict(self) -> Dict:
        data = {"name": self.name.to_dict()}
        if self.version is not None:
            data["version"] = self.version.to_dict()
        if self.context is not None:
            data["context"] = self.context.to_dict()
        return data


@dataclass(frozen=True)
class Image:
    """A container image referenced by a ``FROM`` instruction."""

    name: PositionedString
    line: str
    platform: Optional[str] = None

    def to_dict(self) -> Dict:
        data = {"name": self.name.to_dict(), "line": self.line}
        if self.platform:
            data["platform"] = self.platform
        return data


def get_range(dependency: Dependency) -> Range:
    """
    Get the editor range a diagnostic for this dependency should cover.

    Args:
        dependency: Parsed dependency

    Returns:
        Range: Span of the version text, or the context range when the
            dependency has no anchored version

    Raises:
        ValueError: If the dependency carries no usable position
    """
    version = dependency.version
    if version is not None and version.position.is_anchor:
        line = version.position.line - 1
        start = version.position.column - 1
        return Range.from_coordinates(line, start, line, start + len(version.value))

    if dependency.context is not None:
        return dependency.context.range

    raise ValueError(f"Dependency '{dependency.name.value}' has no source position")


def get_image_range(image: Image) -> Range:
    """Get the editor range spanning the whole ``FROM`` line of an image."""
    line = image.name.position.line - 1
    column = image.name.position.column
    return Range.from_coordinates(line, column, line, column + len(image.line))


def split_reference(key: str) -> Tuple[str, Optional[str]]:
    """
    Split ``name@version`` on its last ``@``.

    A leading ``@`` belongs to the name (npm scopes), so ``@scope/pkg`` has no
    version while ``@scope/pkg@1.0.0`` does.
    """
    index = key.rfind("@")
    if index <= 0:
        return key, None
    return key[:index], key[index + 1 :]


class DependencyMap:
    """
    Insertion-ordered index of dependencies by name.

    Later entries replace earlier ones with the same key. With
    ``versioned_keys`` enabled (Gradle) dependencies carrying a version are
    keyed as ``name@version``.
    """

    def __init__(self, dependencies: Iterable[Dependency], versioned_keys: bool = False):
        self.versioned_keys = versioned_keys
        self.mapping: Dict[str, Dependency] = {}
        for dependency in dependencies:
            self.mapping[self._key_for(dependency)] = dependency

    def _key_for(self, dependency: Dependency) -> str:
        if self.versioned_keys and dependency.version and dependency.version.value:
            return f"{dependency.name.value}@{dependency.version.value}"
        return dependency.name.value

    def get(self, key: str) -> Optional[Dependency]:
        return self.mapping.get(key)

    def lookup(self, reference: str) -> Optional[Dependency]:
        """Find a dependency by ``name@version`` key, falling back to the name."""
        dependency = self.mapping.get(reference)
        if dependency is None:
            name, _ = split_reference(reference)
            dependency = self.mapping.get(name)
        return dependency

    def __contains__(self, key: str) -> bool:
        return key in self.mapping

    def __len__(self) -> int:
        return len(self.mapping)

    def __iter__(self) -> Iterator[str]:
        return iter(self.mapping)

    def values(self) -> List[Dependency]:
        return list(self.mapping.values())


class ImageMap:
    """Index of images by name; one name may be used by several stages."""

    def __init__(self, images: Iterable[Image]):
        self.mapping: Dict[str, List[Image]] = {}
        for image in images:
            self.mapping.setdefault(image.name.value, []).append(image)

    def get(self, key: str) -> List[Image]:
        """Get images for a reference, including untagged ones for ``:latest``."""
        images = list(self.mapping.get(key, []))
        if ":latest" in key:
            images.extend(self.mapping.get(key.replace(":latest", ""), []))
        return images

    def __len__(self) -> int:
        return len(self.mapping)


def unanchored(value: str) -> PositionedString:
    """Build a positioned string that is not an edit anchor."""
    return PositionedString(value, NO_POSITION)
