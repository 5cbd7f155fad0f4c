"""
Gradle ``build.gradle`` parser (Groovy DSL subset).

Gradle scripts are programs, not data, so this is a best-effort heuristic:
a brace-counting state machine finds ``dependencies`` and ``ext`` blocks and
regular expressions pick dependency coordinates out of quoted strings. Two
notations are understood::

    implementation group: 'org.acme', name: 'lib', version: '1.0'
    implementation 'org.acme:lib:1.0'

Block comments are blanked out before lines are split so that every column
reported still matches the original text.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..constants import GRADLE, VERSION_PLACEHOLDER
from ..dependency import Dependency, DependencyMap, unanchored
from ..position import Position, PositionedContext, PositionedString, Range
from .base import DependencyProvider

BLOCK_COMMENT_REGEX = re.compile(r"/\*[\s\S]*?\*/")
QUOTED_REGEX = re.compile(r"(['\"])(.*?)\1")
KEY_VALUE_REGEX = re.compile(r"\b(\w+)\s*:\s*(['\"])(.*?)\2")
ARGUMENT_REGEX = re.compile(r"(?:^|[\s{.])(\w+)\s*=\s*(['\"])(.*?)\2")
REFERENCE_REGEX = re.compile(r"\$\{([\w.]+)\}|\$(\w+)")
DEPENDENCIES_REGEX = re.compile(r"\bdependencies\s*(?:\{|$)")
EXT_REGEX = re.compile(r"^\s*(?:project\.)?ext\b")


class GradleState(Enum):
    OUTSIDE = "outside"
    AWAIT_DEPENDENCIES_BLOCK = "await_dependencies_block"
    DEPENDENCIES_BLOCK = "dependencies_block"
    AWAIT_EXT_BLOCK = "await_ext_block"
    EXT_BLOCK = "ext_block"


class LineKind(Enum):
    IGNORE = "ignore"
    DEPENDENCY = "dependency"
    ARGUMENT = "argument"


def transition(
    state: GradleState, depth: int, line: str
) -> Tuple[GradleState, int, LineKind]:
    """
    Advance the block state machine over one comment-free, non-blank line.

    Args:
        state: Current state
        depth: Open braces inside the current ``dependencies`` block
        line: Stripped line text

    Returns:
        Tuple of next state, next depth and how to interpret the line
    """
    opened = line.count("{")
    closed = line.count("}")

    if state == GradleState.AWAIT_DEPENDENCIES_BLOCK:
        if line.startswith("{"):
            depth = opened - closed
            if depth > 0:
                return GradleState.DEPENDENCIES_BLOCK, depth, LineKind.DEPENDENCY
            return GradleState.OUTSIDE, 0, LineKind.DEPENDENCY
        state = GradleState.OUTSIDE

    if state == GradleState.DEPENDENCIES_BLOCK:
        depth += opened - closed
        if depth <= 0:
            return GradleState.OUTSIDE, 0, LineKind.DEPENDENCY
        return state, depth, LineKind.DEPENDENCY

    if DEPENDENCIES_REGEX.search(line):
        depth = opened - closed
        if depth > 0:
            return GradleState.DEPENDENCIES_BLOCK, depth, LineKind.DEPENDENCY
        # one-line block, or a bare keyword with the brace on the next line
        return GradleState.AWAIT_DEPENDENCIES_BLOCK, 0, LineKind.DEPENDENCY

    if state == GradleState.AWAIT_EXT_BLOCK:
        if "{" in line:
            next_state = GradleState.OUTSIDE if "}" in line else GradleState.EXT_BLOCK
            return next_state, 0, LineKind.ARGUMENT
        state = GradleState.OUTSIDE

    if state == GradleState.EXT_BLOCK:
        if "}" in line:
            return GradleState.OUTSIDE, 0, LineKind.ARGUMENT
        return state, 0, LineKind.ARGUMENT

    if EXT_REGEX.match(line):
        if "{" in line:
            next_state = GradleState.OUTSIDE if "}" in line else GradleState.EXT_BLOCK
            return next_state, 0, LineKind.ARGUMENT
        if "=" in line:
            return GradleState.OUTSIDE, 0, LineKind.ARGUMENT
        return GradleState.AWAIT_EXT_BLOCK, 0, LineKind.ARGUMENT

    return GradleState.OUTSIDE, 0, LineKind.IGNORE


@dataclass
class _GradleContext:
    state: GradleState = GradleState.OUTSIDE
    depth: int = 0
    args: Dict[str, PositionedString] = field(default_factory=dict)

    def substitute(self, text: str) -> str:
        def replace(match: "re.Match") -> str:
            key = match.group(1) or match.group(2)
            argument = self.args.get(key)
            return argument.value if argument is not None else match.group(0)

        return REFERENCE_REGEX.sub(replace, text)

    def lookup_reference(self, text: str) -> Optional[PositionedString]:
        """Return the argument when ``text`` is exactly one ``$key`` reference."""
        match = REFERENCE_REGEX.fullmatch(text)
        if match is None:
            return None
        return self.args.get(match.group(1) or match.group(2))


def _blank_block_comments(contents: str) -> str:
    return BLOCK_COMMENT_REGEX.sub(
        lambda match: re.sub(r"[^\n]", " ", match.group(0)), contents
    )


class GradleParser(DependencyProvider):
    ecosystem = GRADLE
    manifest_names = ["build.gradle"]

    def collect(self, contents: str) -> List[Dependency]:
        context = _GradleContext()
        dependencies = []
        for index, line in enumerate(_blank_block_comments(contents).split("\n")):
            code = line.split("//", 1)[0]
            stripped = code.strip()
            if not stripped:
                continue

            resolved = context.substitute(stripped) if "$" in stripped else stripped
            context.state, context.depth, kind = transition(
                context.state, context.depth, resolved
            )

            if not QUOTED_REGEX.search(resolved):
                continue
            if kind == LineKind.ARGUMENT:
                self._register_arguments(code, index + 1, context)
            elif kind == LineKind.DEPENDENCY:
                dependency = self._parse_dependency(code, index + 1, context)
                if dependency is not None:
                    dependencies.append(dependency)
        return dependencies

    def build_map(self, dependencies: List[Dependency]) -> DependencyMap:
        return DependencyMap(dependencies, versioned_keys=True)

    @staticmethod
    def _register_arguments(code: str, line_number: int, context: _GradleContext) -> None:
        for match in ARGUMENT_REGEX.finditer(code):
            context.args[match.group(1)] = PositionedString(
                match.group(3), Position(line_number, match.start(3) + 1)
            )

    def _parse_dependency(
        self, code: str, line_number: int, context: _GradleContext
    ) -> Optional[Dependency]:
        pairs = {}
        for match in KEY_VALUE_REGEX.finditer(code):
            pairs.setdefault(match.group(1), match)

        if pairs:
            return self._parse_map_notation(pairs, line_number, context)
        return self._parse_gstring_notation(code, line_number, context)

    def _parse_map_notation(
        self, pairs: Dict[str, "re.Match"], line_number: int, context: _GradleContext
    ) -> Optional[Dependency]:
        group = pairs.get("group")
        name = pairs.get("name")
        if group is None or name is None or not group.group(3) or not name.group(3):
            return None

        dependency_name = f"{context.substitute(group.group(3))}/{context.substitute(name.group(3))}"
        version = pairs.get("version")
        if version is not None and version.group(3):
            return Dependency(
                name=unanchored(dependency_name),
                version=self._version(version.group(3), version.start(3), line_number, context),
            )

        quote = name.group(2)
        anchor = f"name: {quote}{name.group(3)}{quote}"
        line = line_number - 1
        return Dependency(
            name=unanchored(dependency_name),
            context=PositionedContext(
                value=f"{anchor}, version: {quote}{VERSION_PLACEHOLDER}{quote}",
                range=Range.from_coordinates(line, name.start(), line, name.end()),
            ),
        )

    def _parse_gstring_notation(
        self, code: str, line_number: int, context: _GradleContext
    ) -> Optional[Dependency]:
        match = QUOTED_REGEX.search(code)
        if match is None:
            return None
        data = match.group(2)
        parts = data.split(":")
        group = parts[0]
        name = parts[1] if len(parts) > 1 else ""
        version = parts[2].split("@", 1)[0] if len(parts) > 2 else ""
        if not group or not name:
            return None

        dependency_name = f"{context.substitute(group)}/{context.substitute(name)}"
        if version:
            offset = match.start(2) + len(group) + len(name) + 2
            return Dependency(
                name=unanchored(dependency_name),
                version=self._version(version, offset, line_number, context),
            )

        coordinates = data.rstrip(":")
        line = line_number - 1
        start = match.start(2)
        return Dependency(
            name=unanchored(dependency_name),
            context=PositionedContext(
                value=f"{coordinates}:{VERSION_PLACEHOLDER}",
                range=Range.from_coordinates(line, start, line, start + len(data)),
            ),
        )

    @staticmethod
    def _version(
        raw: str, offset: int, line_number: int, context: _GradleContext
    ) -> PositionedString:
        """Version token; a bare ``$key`` anchors on the ``ext`` definition."""
        argument = context.lookup_reference(raw)
        if argument is not None:
            return argument
        return PositionedString(context.substitute(raw), Position(line_number, offset + 1))
