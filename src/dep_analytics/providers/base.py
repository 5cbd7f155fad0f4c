"""Common interface of the manifest parsers."""

from abc import ABC, abstractmethod
from typing import List
from urllib.parse import unquote

from ..constants import ECOSYSTEM_NAME_MAPPINGS
from ..dependency import Dependency, DependencyMap


class DependencyProvider(ABC):
    """
    Turns manifest text into positioned dependency records.

    Implementations are stateless between calls; everything a parse needs
    lives in locals or a per-call context object.
    """

    ecosystem: str = ""
    manifest_names: List[str] = []

    @abstractmethod
    def collect(self, contents: str) -> List[Dependency]:
        """
        Extract the dependencies declared in a manifest.

        Args:
            contents: Raw manifest text

        Returns:
            List[Dependency]: Dependencies in document order
        """

    async def collect_async(self, contents: str) -> List[Dependency]:
        """Async form of ``collect`` for callers gathering several manifests."""
        return self.collect(contents)

    def build_map(self, dependencies: List[Dependency]) -> DependencyMap:
        return DependencyMap(dependencies)

    def resolve_dependency_from_reference(self, ref: str) -> str:
        """
        Map a package URL onto the key used by ``DependencyMap``.

        ``pkg:maven/g/a@1.0?type=jar`` becomes ``g/a@1.0``; references of
        another ecosystem are returned unchanged apart from qualifiers.
        """
        purl_type = ECOSYSTEM_NAME_MAPPINGS.get(self.ecosystem, self.ecosystem)
        prefix = f"pkg:{purl_type}/"
        resolved = ref[len(prefix) :] if ref.startswith(prefix) else ref
        resolved = resolved.split("#", 1)[0].split("?", 1)[0]
        return unquote(resolved)
