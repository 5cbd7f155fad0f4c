"""
Maven ``pom.xml`` parser.

Dependencies are read from every ``<dependencies>`` element that is not part
of ``<dependencyManagement>``. A dependency without a literal version takes
its version from the managed table, and carries an edit template so that a
version element can be inserted into the original block.
"""

import re
from typing import Dict, List, Optional

from .. import xml_ast
from ..constants import MAVEN, VERSION_PLACEHOLDER
from ..dependency import Dependency
from ..position import PositionedContext, PositionedString, Range
from ..xml_ast import XmlDocument, XmlElement
from .base import DependencyProvider

PROPERTY_REGEX = re.compile(r"\$\{([^{}]+)\}")


def _coordinates(element: XmlElement) -> Optional[str]:
    """``groupId/artifactId`` of a dependency element, if both are present."""
    group = element.find("groupId")
    artifact = element.find("artifactId")
    if group is None or artifact is None or not group.text or not artifact.text:
        return None
    return f"{group.text}/{artifact.text}"


class PomXmlParser(DependencyProvider):
    ecosystem = MAVEN
    manifest_names = ["pom.xml"]

    def collect(self, contents: str) -> List[Dependency]:
        document = xml_ast.parse(contents)
        properties = self._property_table(document)
        managed = self._managed_versions(document, properties)

        dependencies = []
        for block in document.iter("dependencies"):
            if block.parent is not None and block.parent.name == "dependencyManagement":
                continue
            for element in block.find_all("dependency"):
                dependency = self._to_dependency(document, element, properties, managed)
                if dependency is not None:
                    dependencies.append(dependency)
        return dependencies

    def _property_table(self, document: XmlDocument) -> Dict[str, PositionedString]:
        """Map property names of the first ``<properties>`` element to their text."""
        table: Dict[str, PositionedString] = {}

        root = document.root
        if root is not None and root.name == "project":
            project_version = root.find("version")
            if project_version is not None and project_version.first_text():
                table["project.version"] = self._text(document, project_version)

        for properties in document.iter("properties"):
            for element in properties.children:
                if element.first_text() is not None:
                    table[element.name] = self._text(document, element)
            break
        return table

    def _managed_versions(
        self, document: XmlDocument, properties: Dict[str, PositionedString]
    ) -> Dict[str, PositionedString]:
        """
        Versions declared under ``<dependencyManagement>``, keyed by
        ``groupId/artifactId``. The first declaration of a key wins.
        """
        managed: Dict[str, PositionedString] = {}
        for management in document.iter("dependencyManagement"):
            for block in management.find_all("dependencies"):
                for element in block.find_all("dependency"):
                    key = _coordinates(element)
                    version = element.find("version")
                    if key is None or version is None or not version.text:
                        continue
                    if key not in managed:
                        managed[key] = self._version(document, version, properties)
        return managed

    def _to_dependency(
        self,
        document: XmlDocument,
        element: XmlElement,
        properties: Dict[str, PositionedString],
        managed: Dict[str, PositionedString],
    ) -> Optional[Dependency]:
        if not element.closed:
            return None
        key = _coordinates(element)
        if key is None:
            return None
        scope = element.find("scope")
        if scope is not None and scope.text == "test":
            return None

        name = PositionedString(key, element.start)
        version_element = element.find("version")
        if version_element is not None and version_element.text:
            return Dependency(
                name=name, version=self._version(document, version_element, properties)
            )

        managed_version = managed.get(key)
        if managed_version is None:
            return None

        return Dependency(
            name=name,
            version=managed_version,
            context=PositionedContext(
                value=self._template(document, element, version_element),
                range=Range.from_coordinates(
                    element.start.line - 1,
                    element.start.column - 1,
                    element.end.line - 1,
                    element.end.column,
                ),
            ),
        )

    @staticmethod
    def _text(document: XmlDocument, element: XmlElement) -> PositionedString:
        return PositionedString(
            element.text, document.value_position(element.first_text())
        )

    def _version(
        self,
        document: XmlDocument,
        element: XmlElement,
        properties: Dict[str, PositionedString],
    ) -> PositionedString:
        """
        Resolve ``${...}`` references in a version element.

        A version that is a single reference takes the property's text and
        position. Unknown or empty properties are left untouched.
        """
        version = self._text(document, element)

        match = PROPERTY_REGEX.fullmatch(version.value)
        if match:
            prop = properties.get(match.group(1))
            return prop if prop is not None and prop.value else version

        def substitute(m: "re.Match") -> str:
            prop = properties.get(m.group(1))
            return prop.value if prop is not None and prop.value else m.group(0)

        return PositionedString(PROPERTY_REGEX.sub(substitute, version.value), version.position)

    @staticmethod
    def _template(
        document: XmlDocument, element: XmlElement, version_element: Optional[XmlElement]
    ) -> str:
        """
        The dependency block verbatim, with a placeholder version element.

        An existing empty ``<version>`` is filled in place; otherwise a new
        element is added after the last child, indented like the first one.
        """
        source = document.source
        base = element.start_offset
        block = source[base : element.end_offset]
        placeholder = f"<version>{VERSION_PLACEHOLDER}</version>"

        if version_element is not None and version_element.closed:
            start = version_element.start_offset - base
            end = version_element.end_offset - base
            return block[:start] + placeholder + block[end:]

        first = element.children[0]
        start_tag_end = source.index(">", base) + 1
        margin = source[start_tag_end : first.start_offset]
        if margin.strip():
            margin = ""

        insert_at = element.children[-1].end_offset - base
        return block[:insert_at] + margin + placeholder + block[insert_at:]
