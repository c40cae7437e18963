#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

"""
Typed arguments attached to one in-flight diagnostic.

Arguments are addressed by 0-based index in attachment order; templates refer
to them as %0 .. %9. The store is cleared after every emission.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Tuple

from dc_internal_error import ice

# Templates address arguments with a single digit.
MAX_ARGUMENTS = 10


class ArgumentKind(Enum):
    STD_STRING = auto()  # owned string
    C_STRING = auto()  # borrowed string, may be None
    SINT = auto()
    UINT = auto()
    TOKEN_KIND = auto()
    IDENTIFIER = auto()

    # Rich values, rendered by a RichValueStringifier
    TYPE = auto()
    DECL_NAME = auto()
    NAMED_DECL = auto()
    NESTED_NAME = auto()
    DECL_CONTEXT = auto()
    ATTRIBUTE = auto()

    # Synthesized by %diff when both halves are TYPE
    TYPE_PAIR = auto()


RICH_KINDS = frozenset({
    ArgumentKind.TYPE,
    ArgumentKind.DECL_NAME,
    ArgumentKind.NAMED_DECL,
    ArgumentKind.NESTED_NAME,
    ArgumentKind.DECL_CONTEXT,
    ArgumentKind.ATTRIBUTE,
})

INTEGER_KINDS = frozenset({ArgumentKind.SINT, ArgumentKind.UINT})


@dataclass(frozen=True)
class Identifier:
    """A name argument; renders quoted."""
    name: str


@dataclass(frozen=True)
class Argument:
    kind: ArgumentKind
    value: Any


class ArgumentStore:
    """
    Ordered, bounded list of typed arguments.

    Usage:

        store = ArgumentStore()
        store.add_string("foo")
        store.add_uint(2)
        store.kind(1)   # ArgumentKind.UINT
        store.value(0)  # "foo"
    """

    def __init__(self) -> None:
        self._args: List[Argument] = []

    def __len__(self) -> int:
        return len(self._args)

    def __iter__(self):
        return iter(self._args)

    def add(self, kind: ArgumentKind, value: Any) -> None:
        if len(self._args) >= MAX_ARGUMENTS:
            ice(f"[ICE-3010] too many arguments for one diagnostic (limit is {MAX_ARGUMENTS})")
        if kind is ArgumentKind.TYPE_PAIR:
            ice("[ICE-3011] type pairs are formed by %diff and cannot be attached directly")
        self._args.append(Argument(kind, value))

    def add_string(self, value: str) -> None:
        self.add(ArgumentKind.STD_STRING, value)

    def add_c_string(self, value: Optional[str]) -> None:
        self.add(ArgumentKind.C_STRING, value)

    def add_sint(self, value: int) -> None:
        self.add(ArgumentKind.SINT, int(value))

    def add_uint(self, value: int) -> None:
        if value < 0:
            ice(f"[ICE-3012] unsigned argument cannot be negative: {value}")
        self.add(ArgumentKind.UINT, int(value))

    def add_token_kind(self, kind: Any) -> None:
        self.add(ArgumentKind.TOKEN_KIND, kind)

    def add_identifier(self, ident: Optional[Identifier]) -> None:
        self.add(ArgumentKind.IDENTIFIER, ident)

    def add_value(self, value: Any) -> None:
        """Attach a Python value, picking the kind from its type."""
        if isinstance(value, Argument):
            self.add(value.kind, value.value)
        elif isinstance(value, bool):
            self.add_uint(int(value))
        elif isinstance(value, int):
            self.add_sint(value)
        elif isinstance(value, str):
            self.add_string(value)
        elif isinstance(value, Identifier):
            self.add_identifier(value)
        elif isinstance(value, Enum):
            self.add_token_kind(value)
        else:
            ice(f"[ICE-3013] cannot infer argument kind for {type(value).__name__}; use add()")

    def _check_index(self, index: int) -> Argument:
        if not 0 <= index < len(self._args):
            ice(f"[ICE-3020] argument index {index} out of range ({len(self._args)} argument(s))")
        return self._args[index]

    def kind(self, index: int) -> ArgumentKind:
        return self._check_index(index).kind

    def value(self, index: int) -> Any:
        return self._check_index(index).value

    def clear(self) -> None:
        self._args.clear()

    def snapshot(self) -> Tuple[Argument, ...]:
        return tuple(self._args)


@dataclass
class TokenTable:
    """
    Token-kind spellings used to render TOKEN_KIND arguments.

    Lookup order: punctuator (quoted), keyword, description, debug name
    (angle-bracketed), then "(null)".
    """
    punctuators: Dict[Any, str] = field(default_factory=dict)
    keywords: Dict[Any, str] = field(default_factory=dict)
    descriptions: Dict[Any, str] = field(default_factory=dict)
    names: Dict[Any, str] = field(default_factory=dict)

    def debug_name(self, kind: Any) -> Optional[str]:
        name = self.names.get(kind)
        if name is not None:
            return name
        if isinstance(kind, Enum):
            return kind.name.lower()
        return None

    def spell(self, kind: Any) -> str:
        if kind is None:
            return "(null)"
        s = self.punctuators.get(kind)
        if s is not None:
            return f"'{s}'"
        s = self.keywords.get(kind)
        if s is not None:
            return s
        s = self.descriptions.get(kind)
        if s is not None:
            return s
        s = self.debug_name(kind)
        if s is not None:
            return f"<{s}>"
        return "(null)"
