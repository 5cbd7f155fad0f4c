"""
Positional JSON syntax tree.

``json.loads`` only returns values; manifest diagnostics need to know where
each key and string literal sits in the document. This module parses JSON
into a small typed tree whose nodes carry 1-based positions, reusing the
standard library's string and number scanners so that decoding rules match
``json`` exactly.
"""

import re
from bisect import bisect_right
from dataclasses import dataclass, field
from enum import Enum
from json.decoder import JSONDecodeError, scanstring
from json.scanner import NUMBER_RE
from typing import Any, List, Optional, Tuple, Union

from .position import Position

WHITESPACE = re.compile(r"[ \t\n\r]*")


class NodeKind(Enum):
    OBJECT = "object"
    ARRAY = "array"
    STRING = "string"
    LITERAL = "literal"


@dataclass
class JsonString:
    """String literal; ``position`` is the first character inside the quotes."""

    value: str
    position: Position
    kind: NodeKind = field(default=NodeKind.STRING, init=False)

    def to_python(self) -> str:
        return self.value


@dataclass
class JsonLiteral:
    """Number, boolean or null."""

    value: Any
    position: Position
    kind: NodeKind = field(default=NodeKind.LITERAL, init=False)

    def to_python(self) -> Any:
        return self.value


@dataclass
class JsonProperty:
    key: JsonString
    value: "JsonNode"


@dataclass
class JsonObject:
    position: Position
    properties: List[JsonProperty] = field(default_factory=list)
    kind: NodeKind = field(default=NodeKind.OBJECT, init=False)

    def get(self, key: str) -> Optional["JsonNode"]:
        """Return the value of the first property named ``key``."""
        for prop in self.properties:
            if prop.key.value == key:
                return prop.value
        return None

    def to_python(self) -> dict:
        return {prop.key.value: prop.value.to_python() for prop in self.properties}


@dataclass
class JsonArray:
    position: Position
    items: List["JsonNode"] = field(default_factory=list)
    kind: NodeKind = field(default=NodeKind.ARRAY, init=False)

    def to_python(self) -> list:
        return [item.to_python() for item in self.items]


JsonNode = Union[JsonObject, JsonArray, JsonString, JsonLiteral]

_LITERALS = (("true", True), ("false", False), ("null", None))


class _JsonTreeParser:
    """Recursive-descent parser over a single document."""

    def __init__(self, text: str):
        self.text = text
        self.line_starts = [0] + [m.end() for m in re.finditer("\n", text)]

    def position(self, offset: int) -> Position:
        line = bisect_right(self.line_starts, offset)
        return Position(line, offset - self.line_starts[line - 1] + 1)

    def skip(self, idx: int) -> int:
        return WHITESPACE.match(self.text, idx).end()

    def fail(self, message: str, idx: int) -> JSONDecodeError:
        return JSONDecodeError(message, self.text, idx)

    def parse(self) -> JsonNode:
        idx = self.skip(0)
        node, idx = self.parse_value(idx)
        idx = self.skip(idx)
        if idx != len(self.text):
            raise self.fail("Extra data", idx)
        return node

    def parse_value(self, idx: int) -> Tuple[JsonNode, int]:
        char = self.text[idx : idx + 1]
        if char == '"':
            return self.parse_string(idx)
        if char == "{":
            return self.parse_object(idx)
        if char == "[":
            return self.parse_array(idx)

        for literal, value in _LITERALS:
            if self.text.startswith(literal, idx):
                return JsonLiteral(value, self.position(idx)), idx + len(literal)

        match = NUMBER_RE.match(self.text, idx)
        if match:
            integer, frac, exp = match.groups()
            if frac or exp:
                number = float(integer + (frac or "") + (exp or ""))
            else:
                number = int(integer)
            return JsonLiteral(number, self.position(idx)), match.end()

        raise self.fail("Expecting value", idx)

    def parse_string(self, idx: int) -> Tuple[JsonString, int]:
        value, end = scanstring(self.text, idx + 1)
        return JsonString(value, self.position(idx + 1)), end

    def parse_object(self, idx: int) -> Tuple[JsonObject, int]:
        node = JsonObject(self.position(idx))
        idx = self.skip(idx + 1)
        if self.text[idx : idx + 1] == "}":
            return node, idx + 1

        while True:
            if self.text[idx : idx + 1] != '"':
                raise self.fail("Expecting property name enclosed in double quotes", idx)
            key, idx = self.parse_string(idx)
            idx = self.skip(idx)
            if self.text[idx : idx + 1] != ":":
                raise self.fail("Expecting ':' delimiter", idx)
            value, idx = self.parse_value(self.skip(idx + 1))
            node.properties.append(JsonProperty(key, value))

            idx = self.skip(idx)
            char = self.text[idx : idx + 1]
            if char == "}":
                return node, idx + 1
            if char != ",":
                raise self.fail("Expecting ',' delimiter", idx)
            idx = self.skip(idx + 1)

    def parse_array(self, idx: int) -> Tuple[JsonArray, int]:
        node = JsonArray(self.position(idx))
        idx = self.skip(idx + 1)
        if self.text[idx : idx + 1] == "]":
            return node, idx + 1

        while True:
            item, idx = self.parse_value(idx)
            node.items.append(item)
            idx = self.skip(idx)
            char = self.text[idx : idx + 1]
            if char == "]":
                return node, idx + 1
            if char != ",":
                raise self.fail("Expecting ',' delimiter", idx)
            idx = self.skip(idx + 1)


def parse(text: str) -> JsonNode:
    """
    Parse JSON text into a positional tree.

    Args:
        text: JSON document

    Returns:
        JsonNode: Root node

    Raises:
        json.JSONDecodeError: On any syntax error, including trailing commas
    """
    return _JsonTreeParser(text).parse()
