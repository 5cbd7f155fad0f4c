"""
Tolerant positional XML tree built on expat.

``xml.etree.ElementTree`` drops source locations, so Maven parsing uses this
small tree instead. Every element records where its start tag begins and
where its end tag finishes, and character data between child elements is
kept as positioned text chunks.

Real-world POMs are not always well-formed. Bare ampersands, undeclared
entities such as `&nbsp;` and stray `<` characters are swapped for
placeholders before parsing and restored in the text. When expat still
rejects a token, that token is blanked out and the document is parsed
again. Every substitution keeps the text length, so positions always refer
to the original source. Elements that never closed are flagged rather than
discarded.
"""

import re
from bisect import bisect_right
from typing import Iterator, List, Optional
from xml.parsers import expat

from .position import Position

MAX_RECOVERIES = 25

_AMPERSAND = "\ue000"
_LESS_THAN = "\ue001"
_RESTORE = str.maketrans({_AMPERSAND: "&", _LESS_THAN: "<"})

_BARE_AMPERSAND_REGEX = re.compile(r"&(?!(?:amp|lt|gt|quot|apos|#[0-9]+|#x[0-9a-fA-F]+);)")
_BARE_LESS_THAN_REGEX = re.compile(r"<(?![A-Za-z_:/!?])")
_TAG_MISMATCH = expat.errors.codes[expat.errors.XML_ERROR_TAG_MISMATCH]


class XmlText:
    """A run of character data; ``offset`` is its first character in the source."""

    def __init__(self, text: str, position: Position, offset: int):
        self.text = text
        self.position = position
        self.offset = offset

    @property
    def value(self) -> str:
        return self.text.strip()

    def __repr__(self) -> str:
        return f"XmlText({self.text!r}, {self.position})"


class XmlElement:
    """An element with its source span, children and text chunks."""

    def __init__(
        self,
        name: str,
        parent: Optional["XmlElement"],
        start: Position,
        start_offset: int,
    ):
        self.name = name
        self.parent = parent
        self.start = start
        self.start_offset = start_offset
        # 1-based column of the final '>' of the end tag
        self.end: Optional[Position] = None
        self.end_offset: Optional[int] = None
        self.children: List["XmlElement"] = []
        self.texts: List[XmlText] = []

    @property
    def closed(self) -> bool:
        return self.end is not None

    def find(self, name: str) -> Optional["XmlElement"]:
        for child in self.children:
            if child.name == name:
                return child
        return None

    def find_all(self, name: str) -> List["XmlElement"]:
        return [child for child in self.children if child.name == name]

    def iter(self, name: Optional[str] = None) -> Iterator["XmlElement"]:
        """Depth-first walk over this element and its descendants."""
        if name is None or self.name == name:
            yield self
        for child in self.children:
            yield from child.iter(name)

    @property
    def text(self) -> str:
        """Concatenated, stripped character data of this element."""
        return "".join(chunk.text for chunk in self.texts).strip()

    def first_text(self) -> Optional[XmlText]:
        """First non-blank text chunk."""
        for chunk in self.texts:
            if chunk.value:
                return chunk
        return None

    def __repr__(self) -> str:
        return f"XmlElement({self.name!r}, start={self.start}, end={self.end})"


class XmlDocument:
    def __init__(self, source: str, root: Optional[XmlElement], error: Optional[str] = None):
        self.source = source
        self.root = root
        self.error = error
        self.lines = _LineIndex(source)

    def iter(self, name: Optional[str] = None) -> Iterator[XmlElement]:
        if self.root is None:
            return iter(())
        return self.root.iter(name)

    def value_position(self, chunk: XmlText) -> Position:
        """Position of the first non-blank character of a text chunk."""
        leading = len(chunk.text) - len(chunk.text.lstrip())
        return self.lines.position(chunk.offset + leading)


class _LineIndex:
    def __init__(self, text: str):
        self.line_starts = [0] + [m.end() for m in re.finditer("\n", text)]

    def offset(self, line: int, column: int) -> int:
        """Offset of a 1-based line and 0-based column."""
        return self.line_starts[line - 1] + column

    def position(self, offset: int) -> Position:
        line = bisect_right(self.line_starts, offset)
        return Position(line, offset - self.line_starts[line - 1] + 1)


class _TreeBuilder:
    def __init__(self, source: str):
        self.source = source
        self.lines = _LineIndex(source)
        self.text = _neutralize(source)
        self._reset()

    def _reset(self):
        self.parser = expat.ParserCreate()
        self.parser.StartElementHandler = self.start
        self.parser.EndElementHandler = self.end
        self.parser.CharacterDataHandler = self.data
        self.parser.CommentHandler = self.interrupt
        self.parser.ProcessingInstructionHandler = self.interrupt_pi
        self.root: Optional[XmlElement] = None
        self.stack: List[XmlElement] = []
        self.open_text: Optional[XmlText] = None

    def current_offset(self) -> int:
        return self.lines.offset(
            self.parser.CurrentLineNumber, self.parser.CurrentColumnNumber
        )

    def start(self, name, attributes):
        offset = self.current_offset()
        parent = self.stack[-1] if self.stack else None
        element = XmlElement(name, parent, self.lines.position(offset), offset)
        if parent is not None:
            parent.children.append(element)
        elif self.root is None:
            self.root = element
        self.stack.append(element)
        self.open_text = None

    def end(self, name):
        element = self.stack.pop()
        offset = self.current_offset()
        close = self.text.find(">", offset)
        if close < 0:
            close = offset
        element.end = self.lines.position(close)
        element.end_offset = close + 1
        self.open_text = None

    def data(self, text):
        if not self.stack:
            return
        text = text.translate(_RESTORE)
        if self.open_text is not None:
            self.open_text.text += text
            return
        offset = self.current_offset()
        chunk = XmlText(text, self.lines.position(offset), offset)
        self.stack[-1].texts.append(chunk)
        self.open_text = chunk

    def interrupt(self, _data):
        self.open_text = None

    def interrupt_pi(self, _target, _data):
        self.open_text = None

    def skip(self, error: expat.ExpatError) -> bool:
        """Blank out the token expat rejected. False when nothing is left to skip."""
        offset = self.lines.offset(error.lineno, error.offset)
        if offset >= len(self.text) or self.text[offset].isspace():
            return False

        start, end = offset, offset + 1
        if error.code == _TAG_MISMATCH:
            start = max(self.text.rfind("<", 0, offset + 1), 0)
            close = self.text.find(">", offset)
            end = close + 1 if close >= 0 else len(self.text)
        blank = re.sub(r"[^\n]", " ", self.text[start:end])
        self.text = self.text[:start] + blank + self.text[end:]
        return True

    def build(self) -> XmlDocument:
        first_error = None
        for attempt in range(MAX_RECOVERIES):
            if attempt:
                self._reset()
            try:
                self.parser.Parse(self.text, True)
                break
            except expat.ExpatError as e:
                if first_error is None:
                    first_error = str(e)
                if not self.skip(e):
                    break
        return XmlDocument(self.source, self.root, error=first_error)


def _neutralize(source: str) -> str:
    """Swap stray ``&`` and ``<`` for placeholders of the same length."""
    source = _BARE_AMPERSAND_REGEX.sub(_AMPERSAND, source)
    return _BARE_LESS_THAN_REGEX.sub(_LESS_THAN, source)


def parse(source: str) -> XmlDocument:
    """
    Parse XML text into a positional tree.

    Never raises on malformed input; ``XmlDocument.error`` holds the first
    expat message when a token had to be skipped.
    """
    return _TreeBuilder(source).build()
