"""npm ``package.json`` parser."""

import json
from typing import List, Optional

from .. import json_ast
from ..constants import DEFAULT_NPM_CLASSES, NPM
from ..dependency import Dependency
from ..json_ast import NodeKind
from ..position import PositionedString
from .base import DependencyProvider


class PackageJsonParser(DependencyProvider):
    """
    Collects dependencies from the configured top-level blocks of a
    ``package.json`` (``dependencies`` by default).
    """

    ecosystem = NPM
    manifest_names = ["package.json"]

    def __init__(self, classes: Optional[List[str]] = None):
        self.classes = list(classes) if classes else list(DEFAULT_NPM_CLASSES)

    def collect(self, contents: str) -> List[Dependency]:
        try:
            root = json_ast.parse(contents or "{}")
        except json.JSONDecodeError:
            return []

        if root.kind != NodeKind.OBJECT:
            return []

        dependencies = []
        for prop in root.properties:
            if prop.key.value not in self.classes or prop.value.kind != NodeKind.OBJECT:
                continue
            for entry in prop.value.properties:
                if entry.value.kind != NodeKind.STRING:
                    continue
                dependencies.append(
                    Dependency(
                        name=PositionedString(entry.key.value, entry.key.position),
                        version=PositionedString(entry.value.value, entry.value.position),
                    )
                )
        return dependencies
