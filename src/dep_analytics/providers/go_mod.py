"""
Go ``go.mod`` parser.

The file is read line by line through a small state machine that knows
whether the current line sits in a ``require``, ``replace``, ``exclude`` or
``retract`` block. Module lines are recognised by the presence of a semantic
version token rather than by the enclosing block, so the single-line and
block forms of ``require`` behave the same.

Replace directives may appear anywhere in the file, so parsing is two-pass:
the first pass collects modules and the replace table, the second maps each
module through the table.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from ..constants import GOLANG
from ..dependency import Dependency, unanchored
from ..position import Position, PositionedString
from .base import DependencyProvider

_SEMVER = (
    r"(?:0|[1-9]\d*)\.(?:0|[1-9]\d*)\.(?:0|[1-9]\d*)"
    r"(?:-(?:0|[1-9]\d*|[\da-z-]*[a-z-][\da-z-]*)"
    r"(?:\.(?:0|[1-9]\d*|[\da-z-]*[a-z-][\da-z-]*))*)?"
    r"(?:\+[\da-z-]+(?:\.[\da-z-]+)*)?"
)
SEMVER_REGEX = re.compile(r"(?:^|\s)v?(" + _SEMVER + r")(?=$|\s)", re.IGNORECASE)

_KEYWORD_REGEX = re.compile(r"^\s*(require|replace|exclude|retract)\b\s*(\()?")
_CLEAN_REGEX = re.compile(r"^\s*(?:require|replace)\b|[()]")
_DIRECTIVE_REGEX = re.compile(r"^\s*(?:module|go|toolchain|godebug)(?:\s|$)")


class GoModState(Enum):
    OUTSIDE = "outside"
    REQUIRE_BLOCK = "require_block"
    REPLACE_BLOCK = "replace_block"
    EXCLUDE_BLOCK = "exclude_block"
    RETRACT_BLOCK = "retract_block"


class LineKind(Enum):
    IGNORE = "ignore"
    MODULE = "module"
    REPLACE = "replace"


_BLOCK_STATES = {
    "require": GoModState.REQUIRE_BLOCK,
    "replace": GoModState.REPLACE_BLOCK,
    "exclude": GoModState.EXCLUDE_BLOCK,
    "retract": GoModState.RETRACT_BLOCK,
}


def transition(state: GoModState, line: str) -> Tuple[GoModState, LineKind]:
    """
    Advance the block state machine over one comment-free line.

    Returns:
        Tuple of the next state and how the line should be interpreted
    """
    stripped = line.strip()

    if state == GoModState.OUTSIDE:
        if _DIRECTIVE_REGEX.match(line):
            return state, LineKind.IGNORE
        keyword_match = _KEYWORD_REGEX.match(line)
        if keyword_match:
            keyword, opens_block = keyword_match.groups()
            next_state = _BLOCK_STATES[keyword] if opens_block else state
            if keyword in ("exclude", "retract"):
                return next_state, LineKind.IGNORE
            if keyword == "replace":
                return next_state, LineKind.IGNORE if opens_block else LineKind.REPLACE
            return next_state, LineKind.MODULE
        return state, LineKind.REPLACE if "=>" in line else LineKind.MODULE

    if stripped.startswith(")"):
        return GoModState.OUTSIDE, LineKind.IGNORE

    if state in (GoModState.EXCLUDE_BLOCK, GoModState.RETRACT_BLOCK):
        return state, LineKind.IGNORE
    if state == GoModState.REPLACE_BLOCK or "=>" in line:
        return state, LineKind.REPLACE
    return state, LineKind.MODULE


@dataclass
class _GoModContext:
    state: GoModState = GoModState.OUTSIDE
    modules: List[Dependency] = field(default_factory=list)
    replacements: Dict[str, Dependency] = field(default_factory=dict)


def _clean(text: str) -> str:
    return " ".join(_CLEAN_REGEX.sub(" ", text).split())


def _version_column(text: str, match: "re.Match") -> int:
    """1-based column of the version token, counting a leading ``v``."""
    index = match.start(1)
    if index > 0 and text[index - 1] in "vV":
        return index
    return index + 1


def _dependency_data(text: str) -> Optional[Tuple[str, str, int]]:
    """Extract ``(module, version, column)`` from a line fragment."""
    match = SEMVER_REGEX.search(text)
    if not match:
        return None
    name = _clean(text).split(" ")[0]
    if not name:
        return None
    return name, match.group(1), _version_column(text, match)


class GoModParser(DependencyProvider):
    ecosystem = GOLANG
    manifest_names = ["go.mod"]

    def collect(
        self, contents: str, go_imports: Optional[Iterable[str]] = None
    ) -> List[Dependency]:
        """
        Collect go.mod modules with replace directives applied.

        Args:
            contents: go.mod text
            go_imports: Package import paths of the module's sources; packages
                served by a required module are appended to the result

        Returns:
            List[Dependency]: Modules in document order, then imported packages
        """
        context = _GoModContext()
        for index, line in enumerate(contents.split("\n")):
            self._parse_line(line.split("//", 1)[0], index + 1, context)

        dependencies = [self._apply_replacement(m, context) for m in context.modules]
        if go_imports:
            dependencies.extend(self._resolve_imports(go_imports, context))
        return dependencies

    def _parse_line(self, line: str, line_number: int, context: _GoModContext) -> None:
        context.state, kind = transition(context.state, line)
        if kind == LineKind.REPLACE:
            self._register_replacement(line, line_number, context)
        elif kind == LineKind.MODULE:
            data = _dependency_data(line)
            if data is None:
                return
            name, version, column = data
            context.modules.append(
                Dependency(
                    name=unanchored(name),
                    version=PositionedString(f"v{version}", Position(line_number, column)),
                )
            )

    @staticmethod
    def _register_replacement(line: str, line_number: int, context: _GoModContext) -> None:
        parts = line.split("=>")
        if len(parts) != 2:
            return
        original_part, replacement_part = parts

        # local directory replacements carry no version
        replacement = _dependency_data(replacement_part)
        if replacement is None:
            return

        original = _dependency_data(original_part)
        if original is not None:
            key = f"{original[0]}@v{original[1]}"
        else:
            key = _clean(original_part)
        if not key:
            return

        name, version, column = replacement
        column += line.rfind(replacement_part)
        context.replacements[key] = Dependency(
            name=unanchored(name),
            version=PositionedString(f"v{version}", Position(line_number, column)),
        )

    @staticmethod
    def _apply_replacement(module: Dependency, context: _GoModContext) -> Dependency:
        versioned_key = f"{module.name.value}@{module.version.value}"
        return (
            context.replacements.get(versioned_key)
            or context.replacements.get(module.name.value)
            or module
        )

    def _resolve_imports(
        self, go_imports: Iterable[str], context: _GoModContext
    ) -> List[Dependency]:
        """
        Imported packages, named ``import@module``.

        These entries only appear in collected output. Analysis reports name
        modules, so map lookups resolve to the owning module entry instead.
        """
        module_names = {m.name.value for m in context.modules}
        packages = []
        for import_path in sorted(set(go_imports)):
            if import_path in module_names:
                continue

            owner: Optional[Dependency] = None
            for module in context.modules:
                if import_path.startswith(module.name.value + "/"):
                    if owner is None or len(module.name.value) > len(owner.name.value):
                        owner = module
            if owner is None:
                continue

            resolved = self._apply_replacement(owner, context)
            if resolved is not owner:
                import_path = import_path.replace(owner.name.value, resolved.name.value, 1)

            packages.append(
                Dependency(
                    name=PositionedString(
                        f"{import_path}@{resolved.name.value}", resolved.name.position
                    ),
                    version=resolved.version,
                )
            )
        return packages
