"""Parser for the compact type-expression syntax used by graph files.

Supported forms::

    Name                    plain type
    Name<A, B>              parameterized type
    Name[]                  generic array (suffixes may repeat)
    ?                       unbounded wildcard
    ? extends A & B         wildcard with upper bounds
    ? super A               wildcard with a lower bound
"""

from __future__ import annotations

import re
from typing import Callable, Hashable, List, Tuple

from ..errors import ConfigError
from ..models import Concrete, GenericArray, Parameterized, TypeReference, Wildcard

_TOKEN_PATTERN = re.compile(r"\s*(?:([A-Za-z_$][\w$.]*)|(\[\])|([<>,?&]))")

Resolver = Callable[[str], Hashable]


def parse_type_expression(text: str, resolve: Resolver) -> TypeReference:
    """Parse ``text`` into a type reference, mapping names through ``resolve``."""
    parser = _Parser(_tokenize(text), resolve, text)
    reference = parser.parse_type()
    if not parser.at_end():
        raise ConfigError(f"Unexpected trailing input in type expression '{text}'")
    return reference


def _tokenize(text: str) -> List[str]:
    tokens: List[str] = []
    position = 0
    stripped = text.rstrip()
    while position < len(stripped):
        match = _TOKEN_PATTERN.match(stripped, position)
        if match is None:
            raise ConfigError(f"Invalid character in type expression '{text}' at offset {position}")
        tokens.append(match.group(1) or match.group(2) or match.group(3))
        position = match.end()
    if not tokens:
        raise ConfigError("Type expression must not be empty")
    return tokens


class _Parser:
    def __init__(self, tokens: List[str], resolve: Resolver, source: str) -> None:
        self._tokens = tokens
        self._index = 0
        self._resolve = resolve
        self._source = source

    def at_end(self) -> bool:
        return self._index >= len(self._tokens)

    def parse_type(self) -> TypeReference:
        if self._peek() == "?":
            self._index += 1
            return self._parse_wildcard()
        reference = self._parse_named()
        while self._peek() == "[]":
            self._index += 1
            reference = GenericArray(reference)
        return reference

    def _parse_wildcard(self) -> Wildcard:
        keyword = self._peek()
        if keyword == "extends":
            self._index += 1
            return Wildcard(upper_bounds=self._parse_bounds())
        if keyword == "super":
            self._index += 1
            return Wildcard(lower_bounds=self._parse_bounds())
        return Wildcard()

    def _parse_bounds(self) -> Tuple[TypeReference, ...]:
        bounds = [self.parse_type()]
        while self._peek() == "&":
            self._index += 1
            bounds.append(self.parse_type())
        return tuple(bounds)

    def _parse_named(self) -> TypeReference:
        token = self._next()
        if not (token[0].isalpha() or token[0] in "_$"):
            raise ConfigError(f"Expected a type name in '{self._source}', found '{token}'")
        owner = Concrete(self._resolve(token))
        if self._peek() != "<":
            return owner
        self._index += 1
        args = [self.parse_type()]
        while self._peek() == ",":
            self._index += 1
            args.append(self.parse_type())
        if self._next() != ">":
            raise ConfigError(f"Unclosed type arguments in '{self._source}'")
        return Parameterized(owner, tuple(args))

    def _peek(self) -> str | None:
        if self._index < len(self._tokens):
            return self._tokens[self._index]
        return None

    def _next(self) -> str:
        token = self._peek()
        if token is None:
            raise ConfigError(f"Unexpected end of type expression '{self._source}'")
        self._index += 1
        return token


__all__ = ["parse_type_expression"]
