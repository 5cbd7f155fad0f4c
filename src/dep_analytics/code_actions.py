"""
Quick-fix code actions attached to vulnerability diagnostics.

Actions are registered per document and per diagnostic start location
(``"line|character"``) so that an editor request for a given diagnostic can
be answered without recomputing the analysis.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .position import Range

QUICK_FIX = "quickfix"


@dataclass
class TextEdit:
    range: Range
    new_text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"range": self.range.to_dict(), "newText": self.new_text}


@dataclass
class CodeAction:
    title: str
    diagnostics: List[Any] = field(default_factory=list)
    edits: Dict[str, List[TextEdit]] = field(default_factory=dict)
    kind: str = QUICK_FIX
    is_preferred: bool = False
    # Reference of the package the action switches to
    data: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "kind": self.kind,
            "isPreferred": self.is_preferred,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "edit": {
                "changes": {
                    uri: [edit.to_dict() for edit in edits]
                    for uri, edits in self.edits.items()
                }
            },
            "data": self.data,
        }


def location_key(range_: Range) -> str:
    return f"{range_.start.line}|{range_.start.character}"


def generate_switch_to_recommended_version_action(
    title: str,
    dependency_ref: str,
    replacement: str,
    diagnostic: Any,
    uri: str,
    edit_range: Optional[Range] = None,
) -> CodeAction:
    """
    Create an action replacing the diagnostic's text with ``replacement``.

    Args:
        title: Title shown in the editor
        dependency_ref: Reference of the recommended package
        replacement: Replacement text (version or filled template)
        diagnostic: Diagnostic the action fixes
        uri: Document URI
        edit_range: Range to replace, the diagnostic range when omitted
    """
    return CodeAction(
        title=title,
        diagnostics=[diagnostic],
        edits={uri: [TextEdit(edit_range or diagnostic.range, replacement)]},
        data=dependency_ref,
    )


class CodeActionRegistry:
    """Code actions by document and diagnostic location."""

    def __init__(self):
        self._actions: Dict[str, Dict[str, List[CodeAction]]] = {}

    def register(self, uri: str, loc: str, action: CodeAction) -> None:
        self._actions.setdefault(uri, {}).setdefault(loc, []).append(action)

    def clear(self, uri: str) -> None:
        self._actions.pop(uri, None)

    def get_actions(self, uri: str, diagnostics: List[Any]) -> List[CodeAction]:
        """Actions registered for the start locations of ``diagnostics``."""
        by_location = self._actions.get(uri, {})
        actions: List[CodeAction] = []
        for diagnostic in diagnostics:
            actions.extend(by_location.get(location_key(diagnostic.range), []))
        return actions

    def get_all(self, uri: str) -> List[CodeAction]:
        return [
            action
            for actions in self._actions.get(uri, {}).values()
            for action in actions
        ]


_global_registry: Optional[CodeActionRegistry] = None


def get_code_action_registry() -> CodeActionRegistry:
    global _global_registry
    if _global_registry is None:
        _global_registry = CodeActionRegistry()
    return _global_registry
