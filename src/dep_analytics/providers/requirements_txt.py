"""pip ``requirements.txt`` parser."""

import re
from typing import List, Optional

from ..constants import PYPI
from ..dependency import Dependency, unanchored
from ..position import Position, PositionedString
from .base import DependencyProvider

# Comparators (==, >=, <=, ~=, !=, ...) are treated as one delimiter class
DELIMITER_REGEX = re.compile(r"[=<>!~,]+")


class RequirementsTxtParser(DependencyProvider):
    ecosystem = PYPI
    manifest_names = ["requirements.txt"]

    def collect(self, contents: str) -> List[Dependency]:
        dependencies = []
        for index, line in enumerate(contents.split("\n")):
            dependency = self.parse_line(line, index + 1)
            if dependency is not None:
                dependencies.append(dependency)
        return dependencies

    @staticmethod
    def parse_line(line: str, line_number: int) -> Optional[Dependency]:
        """
        Parse one requirement line.

        Lines that do not split into exactly a name and a version are
        ignored. The version column is measured on the untrimmed line; an
        empty version is placed right after the name.
        """
        content = line.split("#", 1)[0]
        if not content.strip():
            return None

        parts = DELIMITER_REGEX.split(content)
        if len(parts) != 2:
            return None

        name = parts[0].strip().lower()
        if not name:
            return None

        delimiter = DELIMITER_REGEX.search(content)
        raw_version = content[delimiter.end() :]
        version = raw_version.strip()
        if version:
            column = delimiter.end() + len(raw_version) - len(raw_version.lstrip()) + 1
        else:
            column = len(parts[0].rstrip()) + 1

        return Dependency(
            name=unanchored(name),
            version=PositionedString(version, Position(line_number, column)),
        )
