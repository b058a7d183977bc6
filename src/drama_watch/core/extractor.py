"""
Path-based extraction of string values from arbitrary JSON documents.

Supports the JSONPath subset that source configurations use in practice:

    $.result.*.title                 field projection and wildcard
    result[*]['title']               bracket notation (root marker optional)
    $..title                         recursive descent
    items[0].name                    array index (negative counts from the end)
    items[1:3].name                  array slice
    items[0,2].name                  union of indexes
    items[*]['title','name']         union of members
    items[?(@.type == 'drama')].title
                                     filter over array elements or object values

Filter expressions support ``@``-relative paths, string/number/boolean/null
literals, the comparisons ``== != === !== < <= > >=``, ``!``, ``&&``, ``||``
and parentheses. A bare ``@.field`` tests that the field is present and truthy.

Matching never fails on the document: a path that does not fit the
document's shape simply matches nothing. Only a syntactically malformed
path raises :class:`ExtractionError`.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Iterator, List, Optional, Tuple

from .errors import ExtractionError

logger = logging.getLogger(__name__)

_MISSING = object()
_PAIRS = {"[": "]", "(": ")"}


def _find_closing(text: str, start: int) -> int:
    """Index of the bracket closing ``text[start]``, skipping quoted strings; -1 if none."""
    expected: List[str] = []
    quote = None
    i = start
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch in _PAIRS:
            expected.append(_PAIRS[ch])
        elif ch in (")", "]"):
            if not expected or expected.pop() != ch:
                return -1
            if not expected:
                return i
        i += 1
    return -1


@dataclass(frozen=True)
class Step:
    """One navigation step.

    kind is one of ``field``, ``wildcard``, ``index``, ``slice``, ``union``
    (``members`` holds the united steps) or ``filter`` (``predicate`` selects
    children); ``recursive`` applies the step to the node and every descendant.
    """

    kind: str
    name: Optional[str] = None
    index: Optional[int] = None
    start: Optional[int] = None
    stop: Optional[int] = None
    recursive: bool = False
    members: Tuple["Step", ...] = ()
    predicate: Optional["FilterExpression"] = None


_FILTER_TOKEN_RE = re.compile(
    r"""
    (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
    |(?P<number>-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)
    |(?P<op>===|!==|==|!=|<=|>=|&&|\|\||[<>!()])
    |(?P<word>true|false|null)\b
    """,
    re.VERBOSE,
)
_COMPARISONS = {"==", "!=", "===", "!==", "<", "<=", ">", ">="}
_LITERAL_WORDS = {"true": True, "false": False, "null": None}


def _unquote(token: str) -> str:
    return re.sub(r"\\(.)", r"\1", token[1:-1])


def _truthy(value: Any) -> bool:
    if value is _MISSING or value is None or value is False:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value != 0
    if isinstance(value, str):
        return value != ""
    return True


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _compare(op: str, left: Any, right: Any) -> bool:
    left = None if left is _MISSING else left
    right = None if right is _MISSING else right
    if op in ("==", "==="):
        if _is_number(left) and _is_number(right):
            return left == right
        return type(left) is type(right) and left == right
    if op in ("!=", "!=="):
        return not _compare("==", left, right)
    if not (_is_number(left) and _is_number(right)) and not (isinstance(left, str) and isinstance(right, str)):
        return False
    if op == "<":
        return left < right
    if op == "<=":
        return left <= right
    if op == ">":
        return left > right
    return left >= right


class FilterExpression:
    """A compiled ``?(...)`` predicate evaluated against one candidate node."""

    def __init__(self, source: str, tree: tuple):
        self.source = source
        self.tree = tree

    def matches(self, current: Any) -> bool:
        return _truthy(self._evaluate(self.tree, current))

    def _evaluate(self, node: tuple, current: Any) -> Any:
        kind = node[0]
        if kind == "literal":
            return node[1]
        if kind == "path":
            found = node[1].find(current)
            return found[0] if found else _MISSING
        if kind == "not":
            return not _truthy(self._evaluate(node[1], current))
        if kind == "and":
            return _truthy(self._evaluate(node[1], current)) and _truthy(self._evaluate(node[2], current))
        if kind == "or":
            return _truthy(self._evaluate(node[1], current)) or _truthy(self._evaluate(node[2], current))
        return _compare(node[1], self._evaluate(node[2], current), self._evaluate(node[3], current))

    def __repr__(self) -> str:
        return f"FilterExpression({self.source!r})"


class _FilterParser:
    """Recursive-descent parser for the body of a ``[?(...)]`` subscript."""

    def __init__(self, text: str, owner: "_PathParser"):
        self.text = text
        self.owner = owner
        self.tokens = self.tokenize()
        self.pos = 0

    def error(self, message: str) -> ExtractionError:
        return self.owner.error(f"{message} in filter '{self.text}'")

    def tokenize(self) -> List[Tuple[str, Any]]:
        tokens: List[Tuple[str, Any]] = []
        i = 0
        while i < len(self.text):
            if self.text[i].isspace():
                i += 1
                continue
            if self.text[i] == "@":
                i, path = self.scan_relative_path(i + 1)
                tokens.append(("path", path))
                continue
            match = _FILTER_TOKEN_RE.match(self.text, i)
            if not match:
                raise self.error(f"Unexpected character '{self.text[i]}'")
            kind = match.lastgroup
            value = match.group(kind)
            if kind == "string":
                tokens.append(("literal", _unquote(value)))
            elif kind == "number":
                tokens.append(("literal", int(value) if re.fullmatch(r"-?\d+", value) else float(value)))
            elif kind == "word":
                tokens.append(("literal", _LITERAL_WORDS[value]))
            else:
                tokens.append(("op", value))
            i = match.end()
        return tokens

    def scan_relative_path(self, i: int) -> Tuple[int, "CompiledPath"]:
        start = i
        while i < len(self.text):
            ch = self.text[i]
            if ch == ".":
                i += 1
                while i < len(self.text) and (self.text[i].isalnum() or self.text[i] in "_$*."):
                    i += 1
            elif ch == "[":
                end = _find_closing(self.text, i)
                if end == -1:
                    raise self.error("Unterminated '['")
                i = end + 1
            else:
                break
        suffix = self.text[start:i]
        return i, CompiledPath("@" + suffix, _PathParser("$" + suffix).parse())

    def peek(self) -> Optional[Tuple[str, Any]]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take_op(self, *ops: str) -> Optional[str]:
        token = self.peek()
        if token and token[0] == "op" and token[1] in ops:
            self.pos += 1
            return token[1]
        return None

    def parse(self) -> tuple:
        if not self.tokens:
            raise self.error("Empty expression")
        tree = self.parse_or()
        if self.peek() is not None:
            raise self.error(f"Unexpected token '{self.peek()[1]}'")
        return tree

    def parse_or(self) -> tuple:
        left = self.parse_and()
        while self.take_op("||"):
            left = ("or", left, self.parse_and())
        return left

    def parse_and(self) -> tuple:
        left = self.parse_unary()
        while self.take_op("&&"):
            left = ("and", left, self.parse_unary())
        return left

    def parse_unary(self) -> tuple:
        if self.take_op("!"):
            return ("not", self.parse_unary())
        if self.take_op("("):
            inner = self.parse_or()
            if not self.take_op(")"):
                raise self.error("Expected ')'")
            return inner
        left = self.parse_operand()
        op = self.take_op(*_COMPARISONS)
        if op is None:
            return left
        return ("compare", op, left, self.parse_operand())

    def parse_operand(self) -> tuple:
        token = self.peek()
        if token is None or token[0] == "op":
            raise self.error("Expected a value")
        self.pos += 1
        return token


class _PathParser:
    """Single-pass parser turning a path string into a tuple of steps."""

    def __init__(self, path: str):
        self.path = path
        self.text = path.strip()
        self.pos = 0

    def error(self, message: str) -> ExtractionError:
        return ExtractionError(f"{message} in path '{self.path}'", path=self.path, position=self.pos)

    def peek(self, n: int = 1) -> str:
        return self.text[self.pos:self.pos + n]

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def parse(self) -> Tuple[Step, ...]:
        if not self.text:
            raise self.error("Empty path")

        steps: List[Step] = []
        if self.peek() == "$":
            self.pos += 1
        elif self.peek() not in (".", "["):
            # Relative form: "result.*.title" starts with a bare member.
            steps.append(self.parse_member(recursive=False))

        while not self.at_end():
            if self.peek(2) == "..":
                self.pos += 2
                if self.peek() == "[":
                    steps.append(self.parse_bracket(recursive=True))
                else:
                    steps.append(self.parse_member(recursive=True))
            elif self.peek() == ".":
                self.pos += 1
                steps.append(self.parse_member(recursive=False))
            elif self.peek() == "[":
                steps.append(self.parse_bracket(recursive=False))
            else:
                raise self.error(f"Unexpected character '{self.peek()}'")
        return tuple(steps)

    def parse_member(self, recursive: bool) -> Step:
        if self.peek() == "*":
            self.pos += 1
            return Step("wildcard", recursive=recursive)
        start = self.pos
        while not self.at_end() and self.peek() not in (".", "["):
            self.pos += 1
        name = self.text[start:self.pos].strip()
        if not name:
            raise self.error("Missing member name")
        return Step("field", name=name, recursive=recursive)

    def parse_bracket(self, recursive: bool) -> Step:
        self.pos += 1  # '['
        self.skip_spaces()
        if self.peek() == "*":
            self.pos += 1
            step = Step("wildcard", recursive=recursive)
        elif self.peek() == "?":
            step = Step("filter", predicate=self.parse_filter(), recursive=recursive)
        else:
            members = [self.parse_subscript()]
            self.skip_spaces()
            while self.peek() == ",":
                self.pos += 1
                self.skip_spaces()
                members.append(self.parse_subscript())
                self.skip_spaces()
            if len(members) == 1:
                step = dataclasses.replace(members[0], recursive=recursive)
            else:
                step = Step("union", members=tuple(members), recursive=recursive)
        self.skip_spaces()
        if self.peek() != "]":
            raise self.error("Expected ']'")
        self.pos += 1
        return step

    def parse_subscript(self) -> Step:
        ch = self.peek()
        if ch in ("'", '"'):
            return Step("field", name=self.parse_quoted(ch))
        start = self.pos
        while not self.at_end() and self.peek() not in (",", "]"):
            self.pos += 1
        if self.at_end():
            raise self.error("Unterminated '['")
        return self.parse_index_or_slice(self.text[start:self.pos].strip())

    def parse_filter(self) -> FilterExpression:
        self.pos += 1  # '?'
        self.skip_spaces()
        if self.peek() != "(":
            raise self.error("Expected '(' after '?'")
        end = _find_closing(self.text, self.pos)
        if end == -1:
            raise self.error("Unterminated filter expression")
        body = self.text[self.pos + 1:end]
        tree = _FilterParser(body, self).parse()
        self.pos = end + 1
        return FilterExpression(body.strip(), tree)

    def parse_quoted(self, quote: str) -> str:
        self.pos += 1
        chars: List[str] = []
        while not self.at_end():
            ch = self.peek()
            if ch == "\\" and self.pos + 1 < len(self.text):
                chars.append(self.text[self.pos + 1])
                self.pos += 2
                continue
            if ch == quote:
                self.pos += 1
                return "".join(chars)
            chars.append(ch)
            self.pos += 1
        raise self.error("Unterminated quoted name")

    def parse_index_or_slice(self, body: str) -> Step:
        try:
            if ":" in body:
                start_text, _, stop_text = body.partition(":")
                if ":" in stop_text:
                    raise ValueError("slice steps are not supported")
                start = int(start_text) if start_text.strip() else None
                stop = int(stop_text) if stop_text.strip() else None
                return Step("slice", start=start, stop=stop)
            return Step("index", index=int(body))
        except ValueError:
            raise self.error(f"Invalid subscript '[{body}]'")

    def skip_spaces(self) -> None:
        while not self.at_end() and self.peek().isspace():
            self.pos += 1


def _children(node: Any) -> List[Any]:
    if isinstance(node, dict):
        return list(node.values())
    if isinstance(node, list):
        return list(node)
    return []


def _walk(node: Any) -> Iterator[Any]:
    """Yield *node* and all its descendants in document (pre-)order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(_children(current)))


def _apply(step: Step, node: Any) -> List[Any]:
    if step.kind == "wildcard":
        return _children(node)
    if step.kind == "field":
        if isinstance(node, dict) and step.name in node:
            return [node[step.name]]
        return []
    if step.kind == "index":
        if isinstance(node, list):
            idx = step.index if step.index >= 0 else len(node) + step.index
            if 0 <= idx < len(node):
                return [node[idx]]
        elif isinstance(node, dict) and str(step.index) in node:
            return [node[str(step.index)]]
        return []
    if step.kind == "slice":
        if isinstance(node, list):
            return node[step.start:step.stop]
        return []
    if step.kind == "union":
        matched: List[Any] = []
        for member in step.members:
            matched.extend(_apply(member, node))
        return matched
    if step.kind == "filter":
        return [child for child in _children(node) if step.predicate.matches(child)]
    return []


class CompiledPath:
    """A parsed extraction path that can be matched against many documents."""

    def __init__(self, path: str, steps: Tuple[Step, ...]):
        self.path = path
        self.steps = steps

    def find(self, document: Any) -> List[Any]:
        """Return every node matched by the path, in document order."""
        nodes = [document]
        for step in self.steps:
            matched: List[Any] = []
            for node in nodes:
                if step.recursive:
                    for inner in _walk(node):
                        matched.extend(_apply(step, inner))
                else:
                    matched.extend(_apply(step, node))
            nodes = matched
            if not nodes:
                break
        return nodes

    def __repr__(self) -> str:
        return f"CompiledPath({self.path!r})"


@lru_cache(maxsize=256)
def compile_path(path: str) -> CompiledPath:
    """Parse *path*, raising :class:`ExtractionError` if it is malformed."""
    if not isinstance(path, str):
        raise ExtractionError("Extraction path must be a string", path=repr(path))
    return CompiledPath(path, _PathParser(path).parse())


def extract(path: str, document: Any) -> List[str]:
    """Apply *path* to *document* and return the string values it matches.

    Non-string matches (numbers, objects, arrays, null) are dropped. A path
    matching nothing yields an empty list.
    """
    matches = compile_path(path).find(document)
    titles = [value for value in matches if isinstance(value, str)]
    if len(titles) != len(matches):
        logger.debug("Path '%s' dropped %d non-string matches", path, len(matches) - len(titles))
    return titles


__all__ = ["CompiledPath", "FilterExpression", "Step", "compile_path", "extract"]
