"""Decode navigation fragment files into tree nodes.

Fragments come either as plain JSON arrays or as generated JavaScript data
files (``var NAVTREE = [...];``). JavaScript files are tokenized with the
Pygments JavaScript lexer and only the literal subset used by generated data
is accepted: arrays, objects, strings, numbers and ``null``/``true``/``false``.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator
from dataclasses import dataclass, field

from pygments.lexers import JavascriptLexer
from pygments.token import Comment, Keyword, Name, Number, String, Token

from ..errors import FragmentFormatError
from .types import DeferredChildren, InlineChildren, TreeNode

_DECLARATION_KEYWORDS = frozenset({"var", "let", "const"})
_CONSTANTS: dict[str, object] = {"null": None, "undefined": None, "true": True, "false": False}
_CLOSERS = {"[": "]", "{": "}"}
_UNESCAPED_DOUBLE_QUOTE_RE = re.compile(r'(?<!\\)((?:\\\\)*)"')


def _significant_tokens(text: str) -> Iterator[tuple[object, str]]:
    """Yield lexer tokens with whitespace and comments removed."""
    for ttype, value in JavascriptLexer().get_tokens(text):
        if ttype in Token.Text or ttype in Comment:
            continue
        if not value.strip():
            continue
        yield ttype, value


def _decode_string(ttype: object, value: str) -> str:
    """Decode a quoted JavaScript string token."""
    try:
        if ttype in String.Single:
            body = value[1:-1].replace("\\'", "'")
            body = _UNESCAPED_DOUBLE_QUOTE_RE.sub(lambda match: match.group(1) + '\\"', body)
            return json.loads(f'"{body}"')
        return json.loads(value)
    except ValueError as exc:
        raise FragmentFormatError(f"invalid string literal {value!r}") from exc


def _decode_number(value: str) -> int | float:
    lowered = value.lower()
    try:
        if lowered.startswith("0x"):
            return int(lowered, 16)
        if value.isdigit():
            return int(value)
        return float(value)
    except ValueError as exc:
        raise FragmentFormatError(f"invalid number literal {value!r}") from exc


class _LiteralParser:
    """Parser over significant JavaScript tokens.

    Nested arrays and objects are tracked on an explicit stack, so fragment
    depth is not bounded by the interpreter's recursion limit.
    """

    def __init__(self, text: str) -> None:
        self._tokens = list(_significant_tokens(text))
        self._pos = 0

    def _peek(self) -> tuple[object, str] | None:
        if self._pos >= len(self._tokens):
            return None
        return self._tokens[self._pos]

    def _peek_text(self) -> str | None:
        token = self._peek()
        return None if token is None else token[1]

    def _next(self) -> tuple[object, str]:
        token = self._peek()
        if token is None:
            raise FragmentFormatError("unexpected end of fragment")
        self._pos += 1
        return token

    def _expect(self, value: str) -> None:
        _ttype, actual = self._next()
        if actual != value:
            raise FragmentFormatError(f"expected {value!r}, found {actual!r}")

    def assignments(self) -> dict[str, object]:
        """Parse every top-level ``NAME = literal`` statement."""
        out: dict[str, object] = {}
        while (token := self._peek()) is not None:
            ttype, value = token
            if value in _DECLARATION_KEYWORDS or value == ";":
                self._pos += 1
                continue
            if ttype in Name:
                self._pos += 1
                self._expect("=")
                out[value] = self.value()
                continue
            raise FragmentFormatError(f"unexpected token {value!r} at top level")
        return out

    def document(self) -> object:
        """Parse a text holding exactly one literal, such as a JSON file."""
        value = self.value()
        if self._peek_text() == ";":
            self._pos += 1
        trailing = self._peek_text()
        if trailing is not None:
            raise FragmentFormatError(f"unexpected token {trailing!r} after literal")
        return value

    def value(self) -> object:
        open_containers: list[list[object] | dict[str, object]] = []
        pending_keys: list[str] = []
        while True:
            ttype, token = self._next()
            if token in _CLOSERS:
                container: list[object] | dict[str, object] = [] if token == "[" else {}
                if self._peek_text() == _CLOSERS[token]:
                    self._pos += 1
                    result = container
                else:
                    open_containers.append(container)
                    if isinstance(container, dict):
                        pending_keys.append(self._object_key())
                    continue
            else:
                result = self._scalar(ttype, token)

            while open_containers:
                container = open_containers[-1]
                if isinstance(container, list):
                    container.append(result)
                    closer = "]"
                else:
                    container[pending_keys.pop()] = result
                    closer = "}"
                _sep_type, sep = self._next()
                if sep == "," and self._peek_text() != closer:
                    if isinstance(container, dict):
                        pending_keys.append(self._object_key())
                    break
                if sep == ",":
                    # Trailing comma before the closer.
                    self._pos += 1
                elif sep != closer:
                    raise FragmentFormatError(f"expected ',' or {closer!r}, found {sep!r}")
                result = open_containers.pop()
            else:
                return result

    def _object_key(self) -> str:
        ttype, key = self._next()
        if ttype in String:
            key = _decode_string(ttype, key)
        elif ttype not in Name:
            raise FragmentFormatError(f"invalid object key {key!r}")
        self._expect(":")
        return key

    def _scalar(self, ttype: object, value: str) -> object:
        if value == "-":
            _num_type, number = self._next()
            return -_decode_number(number)
        if ttype in String:
            return _decode_string(ttype, value)
        if ttype in Number:
            return _decode_number(value)
        if ttype in Keyword.Constant and value in _CONSTANTS:
            return _CONSTANTS[value]
        raise FragmentFormatError(f"unsupported literal {value!r}")


def parse_js_assignments(text: str) -> dict[str, object]:
    """Return ``{name: value}`` for every data assignment in a JavaScript file."""
    return _LiteralParser(text).assignments()


def decode_fragment_text(text: str, fragment_id: str | None = None) -> object:
    """Return the raw entry list stored in fragment ``text``.

    JSON arrays are returned as-is. For JavaScript data files the variable
    named ``fragment_id`` is used, or the only array-valued variable when that
    name is absent.
    """
    if text.lstrip().startswith("["):
        # JSON arrays are valid JavaScript literals.
        return _LiteralParser(text).document()

    assignments = parse_js_assignments(text)
    if fragment_id is not None and fragment_id in assignments:
        return assignments[fragment_id]
    arrays = [value for value in assignments.values() if isinstance(value, list)]
    if len(arrays) == 1:
        return arrays[0]
    raise FragmentFormatError(
        f"fragment {fragment_id!r} not found among {sorted(assignments)}"
    )


@dataclass
class _EntryList:
    """One list of records being converted, plus the record that owns it."""

    entries: list[object]
    where: str
    title: str | None = None
    target: str | None = None
    position: int = 0
    nodes: list[TreeNode] = field(default_factory=list)


def _check_record(raw: object, where: str) -> tuple[str, str | None, object]:
    """Validate one record; returns title, target and a children slot or raw list."""
    if not isinstance(raw, list) or len(raw) not in (3, 4):
        raise FragmentFormatError(f"{where}: expected a 3 or 4 element record, got {raw!r}")
    title, target, children = raw[0], raw[1], raw[2]
    if not isinstance(title, str):
        raise FragmentFormatError(f"{where}: title must be a string")
    if target is not None and not isinstance(target, str):
        raise FragmentFormatError(f"{where}: target must be a string or null")

    if len(raw) == 4 and raw[3] is not None:
        if not isinstance(raw[3], str):
            raise FragmentFormatError(f"{where}: fragment id must be a string")
        return title, target, DeferredChildren(raw[3])
    if children is None or isinstance(children, list):
        return title, target, children
    if isinstance(children, str):
        return title, target, DeferredChildren(children)
    raise FragmentFormatError(f"{where}: invalid children slot {children!r}")


def parse_fragment_entries(raw: object, where: str = "fragment") -> tuple[TreeNode, ...]:
    """Convert decoded fragment records into immutable ``TreeNode`` tuples."""
    if not isinstance(raw, list):
        raise FragmentFormatError(f"{where}: expected a list of entries")
    stack = [_EntryList(raw, where)]
    while True:
        frame = stack[-1]
        if frame.position < len(frame.entries):
            entry_where = f"{frame.where}[{frame.position}]"
            title, target, slot = _check_record(frame.entries[frame.position], entry_where)
            frame.position += 1
            if isinstance(slot, list):
                stack.append(_EntryList(slot, f"{entry_where}/{title}", title, target))
            else:
                frame.nodes.append(TreeNode(title, target, slot))
            continue
        stack.pop()
        nodes = tuple(frame.nodes)
        if not stack:
            return nodes
        stack[-1].nodes.append(TreeNode(frame.title, frame.target, InlineChildren(nodes)))


__all__ = [
    "parse_js_assignments",
    "decode_fragment_text",
    "parse_fragment_entries",
]
