#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from enum import Enum, auto

import pytest

from dc_arguments import MAX_ARGUMENTS, ArgumentKind, ArgumentStore, Identifier, TokenTable
from dc_internal_error import InternalCompilerError


class Tok(Enum):
    L_PAREN = auto()
    KW_RETURN = auto()
    IDENTIFIER = auto()
    EOF = auto()


def test_arguments_keep_attachment_order():
    store = ArgumentStore()
    store.add_string("foo")
    store.add_uint(2)
    store.add_sint(-1)

    assert len(store) == 3
    assert [store.kind(i) for i in range(3)] == [
        ArgumentKind.STD_STRING, ArgumentKind.UINT, ArgumentKind.SINT,
    ]
    assert store.value(0) == "foo"
    assert store.value(2) == -1


def test_add_value_infers_kind():
    store = ArgumentStore()
    store.add_value(True)
    store.add_value(7)
    store.add_value("s")
    store.add_value(Identifier("x"))
    store.add_value(Tok.EOF)

    assert [a.kind for a in store] == [
        ArgumentKind.UINT,
        ArgumentKind.SINT,
        ArgumentKind.STD_STRING,
        ArgumentKind.IDENTIFIER,
        ArgumentKind.TOKEN_KIND,
    ]
    assert store.value(0) == 1


def test_add_value_rejects_unknown_types():
    with pytest.raises(InternalCompilerError, match=r"\[ICE-3013\]"):
        ArgumentStore().add_value(3.5)


def test_argument_limit():
    store = ArgumentStore()
    for i in range(MAX_ARGUMENTS):
        store.add_sint(i)

    with pytest.raises(InternalCompilerError, match=r"\[ICE-3010\]"):
        store.add_sint(10)


def test_type_pairs_cannot_be_attached():
    with pytest.raises(InternalCompilerError, match=r"\[ICE-3011\]"):
        ArgumentStore().add(ArgumentKind.TYPE_PAIR, ("int", "long"))


def test_unsigned_must_not_be_negative():
    with pytest.raises(InternalCompilerError, match=r"\[ICE-3012\]"):
        ArgumentStore().add_uint(-1)


def test_index_out_of_range():
    store = ArgumentStore()
    store.add_string("only")

    with pytest.raises(InternalCompilerError, match=r"\[ICE-3020\]"):
        store.kind(1)


def test_clear_and_snapshot():
    store = ArgumentStore()
    store.add_string("a")
    snap = store.snapshot()
    store.clear()

    assert len(store) == 0
    assert snap[0].value == "a"


def test_token_spelling_order():
    tokens = TokenTable(
        punctuators={Tok.L_PAREN: "("},
        keywords={Tok.KW_RETURN: "return"},
        descriptions={Tok.IDENTIFIER: "identifier"},
    )

    assert tokens.spell(Tok.L_PAREN) == "'('"
    assert tokens.spell(Tok.KW_RETURN) == "return"
    assert tokens.spell(Tok.IDENTIFIER) == "identifier"
    assert tokens.spell(Tok.EOF) == "<eof>"
    assert tokens.spell(None) == "(null)"
    assert tokens.spell(42) == "(null)"


def test_token_debug_name_override():
    tokens = TokenTable(names={Tok.EOF: "end of file"})

    assert tokens.spell(Tok.EOF) == "<end of file>"
