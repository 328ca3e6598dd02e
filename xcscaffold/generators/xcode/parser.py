# Xcode project file parser.
#
# Reads the OpenStep property list syntax used by project files back into an
# ObjectGraph. Every object is rebuilt as the node class named by its `isa`
# with each field converted according to its declared type, and every
# identifier is reserved in the graph's allocator so later allocations cannot
# collide with it.

import dataclasses
import enum
import logging
import re
import typing
from typing import Any, Dict, List, Optional, Tuple, Union

from xcscaffold.errors import IdentifierCollision, ProjectFormatError
from xcscaffold.generators.xcode.graph import ObjectGraph
from xcscaffold.generators.xcode.identity import IdentityAllocator, is_valid_id
from xcscaffold.generators.xcode.model import (
    NODE_TYPES,
    BuildSetting,
    Reference,
    SettingValue,
    XcodeID,
    XcodeObject,
)

logger = logging.getLogger(__name__)

PUNCTUATION = "{}()=;,"
_INTEGER = re.compile(r"0|[1-9][0-9]*")
_UNESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "\\": "\\"}

Token = Tuple[str, Any, int]  # (kind, value, line); kind is a punctuation mark, "string" or "word"


def tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    i = 0
    line = 1
    length = len(text)
    while i < length:
        c = text[i]
        if c == "\n":
            line += 1
            i += 1
        elif c.isspace():
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = length if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            if end == -1:
                raise ProjectFormatError("unterminated comment", line)
            line += text.count("\n", i, end)
            i = end + 2
        elif c in PUNCTUATION:
            tokens.append((c, c, line))
            i += 1
        elif c == '"':
            start_line = line
            i += 1
            chars = []
            while True:
                if i >= length:
                    raise ProjectFormatError("unterminated string", start_line)
                c = text[i]
                if c == '"':
                    i += 1
                    break
                if c == "\\":
                    if i + 1 >= length:
                        raise ProjectFormatError("unterminated string", start_line)
                    escaped = text[i + 1]
                    if escaped not in _UNESCAPES:
                        raise ProjectFormatError(f"unknown escape sequence \\{escaped}", line)
                    chars.append(_UNESCAPES[escaped])
                    i += 2
                    continue
                if c == "\n":
                    line += 1
                chars.append(c)
                i += 1
            tokens.append(("string", "".join(chars), start_line))
        else:
            start = i
            while (
                i < length
                and not text[i].isspace()
                and text[i] not in PUNCTUATION
                and text[i] != '"'
                and not text.startswith("/*", i)
                and not text.startswith("//", i)
            ):
                i += 1
            tokens.append(("word", text[start:i], line))
    return tokens


class _Parser:
    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.position = 0
        self.path: List[str] = []

    def peek(self) -> Optional[Token]:
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return None

    def next(self, expected: Optional[str] = None) -> Token:
        token = self.peek()
        if token is None:
            last_line = self.tokens[-1][2] if self.tokens else 1
            raise ProjectFormatError(
                f"unexpected end of document, expected {expected or 'a value'}", last_line
            )
        if expected is not None and token[0] != expected:
            raise ProjectFormatError(f"expected {expected!r}, found {token[1]!r}", token[2])
        self.position += 1
        return token

    def value(self) -> Any:
        kind, value, line = self.next()
        if kind == "{":
            return self.dictionary()
        if kind == "(":
            return self.array()
        if kind == "string":
            return value
        if kind == "word":
            # Bare integers only; quoted digits stay strings
            return int(value) if _INTEGER.fullmatch(value) else value
        raise ProjectFormatError(f"unexpected {value!r}", line)

    def key(self) -> Tuple[str, int]:
        kind, value, line = self.next()
        if kind not in ("string", "word"):
            raise ProjectFormatError(f"expected a key, found {value!r}", line)
        return value, line

    def dictionary(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        while True:
            token = self.peek()
            if token is not None and token[0] == "}":
                self.next()
                return result
            key, line = self.key()
            if key in result:
                if self.path == ["objects"]:
                    raise IdentifierCollision(f"line {line}: duplicate object identifier {key}")
                raise ProjectFormatError(f"duplicate key {key!r}", line)
            self.next("=")
            self.path.append(key)
            result[key] = self.value()
            self.path.pop()
            self.next(";")

    def array(self) -> List[Any]:
        result: List[Any] = []
        while True:
            token = self.peek()
            if token is not None and token[0] == ")":
                self.next()
                return result
            result.append(self.value())
            token = self.peek()
            if token is not None and token[0] == ",":
                self.next()
            elif token is None or token[0] != ")":
                self.next(")")


def parse_plist(text: str) -> Dict[str, Any]:
    parser = _Parser(tokenize(text))
    parser.next("{")
    root = parser.dictionary()
    trailing = parser.peek()
    if trailing is not None:
        raise ProjectFormatError(f"unexpected {trailing[1]!r} after the document", trailing[2])
    return root


def _convert(value: Any, tp: Any, context: str) -> Any:
    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if tp is Any:
        return value

    if origin is Union:
        for option in args:
            if option is type(None):
                continue
            try:
                return _convert(value, option, context)
            except ProjectFormatError:
                continue
        raise ProjectFormatError(f"{context}: unexpected value {value!r}")

    if tp is Reference or origin is Reference:
        if not isinstance(value, str) or not is_valid_id(value):
            raise ProjectFormatError(f"{context}: {value!r} is not an object identifier")
        return Reference(XcodeID(value))

    if tp is BuildSetting:
        return BuildSetting(value=_convert(value, SettingValue, context))

    if origin is list:
        if not isinstance(value, list):
            raise ProjectFormatError(f"{context}: expected a list, found {value!r}")
        return [_convert(item, args[0], f"{context}[{i}]") for i, item in enumerate(value)]

    if origin is dict:
        if not isinstance(value, dict):
            raise ProjectFormatError(f"{context}: expected a dictionary, found {value!r}")
        return {k: _convert(v, args[1], f"{context}.{k}") for k, v in value.items()}

    if isinstance(tp, type) and issubclass(tp, enum.Enum):
        try:
            return tp(value)
        except ValueError:
            raise ProjectFormatError(
                f"{context}: {value!r} is not a valid {tp.__name__}"
            ) from None

    if tp is int:
        if isinstance(value, int):
            return value
        if isinstance(value, str) and _INTEGER.fullmatch(value):
            return int(value)
        raise ProjectFormatError(f"{context}: expected an integer, found {value!r}")

    if tp is str:
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str):
            return value
        raise ProjectFormatError(f"{context}: expected a string, found {value!r}")

    raise ProjectFormatError(f"{context}: unsupported field type {tp!r}")


def build_node(id: str, properties: Dict[str, Any]) -> XcodeObject:
    isa = properties.get("isa")
    if isa is None:
        raise ProjectFormatError(f"object {id} has no isa")
    kind = NODE_TYPES.get(isa)
    if kind is None:
        raise ProjectFormatError(f"object {id} has unknown isa {isa!r}")

    hints = typing.get_type_hints(kind)
    fields = {f.name: f for f in dataclasses.fields(kind) if f.init}
    unknown = sorted(set(properties) - set(fields) - {"isa"})
    if unknown:
        raise ProjectFormatError(f"{isa} {id} has unknown fields {', '.join(unknown)}")

    attributes = {}
    for name, field in fields.items():
        if name not in properties:
            if field.default is dataclasses.MISSING and field.default_factory is dataclasses.MISSING:
                raise ProjectFormatError(f"{isa} {id} is missing field {name}")
            continue
        attributes[name] = _convert(properties[name], hints[name], f"{isa} {id}.{name}")
    return kind(**attributes)


def parse_project(text: str, namespace: str = "") -> ObjectGraph:
    document = parse_plist(text)
    objects = document.get("objects")
    if not isinstance(objects, dict):
        raise ProjectFormatError("document has no objects dictionary")
    root = document.get("rootObject")
    if not isinstance(root, str) or not is_valid_id(root):
        raise ProjectFormatError(f"invalid rootObject {root!r}")

    graph = ObjectGraph(IdentityAllocator(namespace=namespace))
    for id, properties in objects.items():
        if not is_valid_id(id):
            raise ProjectFormatError(f"malformed object identifier {id!r}")
        if not isinstance(properties, dict):
            raise ProjectFormatError(f"object {id} is not a dictionary")
        graph.insert(build_node(id, properties), id=id)
    graph.root = XcodeID(root)
    logger.debug("parsed %d objects", len(graph))
    return graph
