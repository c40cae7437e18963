#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

"""
Diagnostic message formatting.

A template is literal text interleaved with directives:

    %%                  literal '%' (any punctuation after '%' is emitted as-is)
    %N                  argument N with its default rendering
    %mod N              argument N through modifier 'mod'
    %mod{payload}N      same, with a brace-delimited payload
    %diff{payload}N,M   diff of arguments N and M

Integer modifiers:

    %select{a|b|c}N     pick option N (0-based), rendered as a sub-template
    %sN                 "s" unless N == 1
    %plural{c1:f1|c2:f2|:fd}N
                        first form whose condition matches; a condition is a
                        comma-separated OR of 'n', '[lo,hi]' or '%m=range'
                        tests, and an empty condition always matches
    %ordinalN           1st, 2nd, 3rd, 4th, ... 11th, 12th, 13th, 21st

Payloads may nest further directives. Separators (|, $, :) only count at
brace depth 0 of the payload being scanned.

Templates come from the catalog, not from end users, so any malformed
template raises InternalCompilerError.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from dc_arguments import ArgumentKind, ArgumentStore, INTEGER_KINDS, TokenTable
from dc_internal_error import ice
from dc_stringify import FormattedArg, RichValueStringifier, TypeDiff

_PUNCTUATION = frozenset(string.punctuation)


def _is_digit(c: str) -> bool:
    return "0" <= c <= "9"


@dataclass(frozen=True)
class TemplateRange:
    """
    An immutable [start, end) window over a template string.

    Scanning returns absolute indices into `text`; sub-ranges share the text.
    """
    text: str
    start: int
    end: int

    @classmethod
    def of(cls, text: str) -> TemplateRange:
        return cls(text, 0, len(text))

    def __str__(self) -> str:
        return self.text[self.start:self.end]

    def __len__(self) -> int:
        return self.end - self.start

    def head(self, index: int) -> TemplateRange:
        """The part before `index`."""
        return TemplateRange(self.text, self.start, index)

    def tail(self, index: int) -> TemplateRange:
        """The part from `index` on."""
        return TemplateRange(self.text, index, self.end)

    def between(self, lo: int, hi: int) -> TemplateRange:
        return TemplateRange(self.text, lo, hi)

    def scan(self, target: str) -> int:
        """
        Find `target` at nesting depth 0, skipping nested {...} clauses
        and escaped characters. Returns self.end when not found.
        """
        text = self.text
        end = self.end
        depth = 0
        i = self.start
        while i < end:
            c = text[i]
            if depth == 0 and c == target:
                return i
            if depth != 0 and c == "}":
                depth -= 1

            if c == "%":
                i += 1
                if i == end:
                    break
                c = text[i]
                # Escaped characters and plain %N are skipped by the i += 1 below.
                if not _is_digit(c) and c not in _PUNCTUATION:
                    i += 1
                    while i < end and not _is_digit(text[i]) and text[i] != "{":
                        i += 1
                    if i == end:
                        break
                    if text[i] == "{":
                        depth += 1
            i += 1
        return end


def ordinal_suffix(value: int) -> str:
    if value % 100 in (11, 12, 13):
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(value % 10, "th")


def printable(text: str) -> str:
    return "".join(c for c in text if c.isprintable() or c == "\t")


# --- plural condition evaluation ---

def _plural_number(text: str, pos: int, end: int) -> Tuple[int, int]:
    start = pos
    while pos < end and _is_digit(text[pos]):
        pos += 1
    if pos == start:
        ice("[ICE-2030] bad plural expression syntax: expected number", text, pos)
    return int(text[start:pos]), pos


def _expect(text: str, pos: int, end: int, ch: str) -> int:
    if pos >= end or text[pos] != ch:
        ice(f"[ICE-2030] bad plural expression syntax: expected {ch}", text, pos)
    return pos + 1


def _test_plural_range(value: int, text: str, pos: int, end: int) -> Tuple[bool, int]:
    if pos < end and text[pos] == "[":
        low, pos = _plural_number(text, pos + 1, end)
        pos = _expect(text, pos, end, ",")
        high, pos = _plural_number(text, pos, end)
        pos = _expect(text, pos, end, "]")
        return low <= value <= high, pos
    ref, pos = _plural_number(text, pos, end)
    return ref == value, pos


def eval_plural_expr(value: int, text: str, start: int, end: int) -> bool:
    """Evaluate the condition text[start:end] (the part before ':')."""
    if start == end:
        return True

    pos = start
    while True:
        c = text[pos] if pos < end else ""
        if c == "%":
            modulus, pos = _plural_number(text, pos + 1, end)
            pos = _expect(text, pos, end, "=")
            if modulus == 0:
                ice("[ICE-2030] bad plural expression syntax: modulo by zero", text, pos)
            matched, pos = _test_plural_range(value % modulus, text, pos, end)
        else:
            if c != "[" and not _is_digit(c):
                ice("[ICE-2030] bad plural expression syntax: unexpected character", text, pos)
            matched, pos = _test_plural_range(value, text, pos, end)
        if matched:
            return True

        comma = text.find(",", pos, end)
        if comma < 0:
            return False
        pos = comma + 1


class DiagnosticFormatter:
    """
    Expands templates against one ArgumentStore.

    Public API:

        formatter = DiagnosticFormatter(args, stringifier=..., tokens=...)
        text = formatter.format("%0 parameter%s1")

    Rendered arguments are remembered for the whole message and handed to
    the stringifier, so it can disambiguate same-named rich values. At most
    one diff tree is produced per message; it is appended to the end.
    """

    def __init__(
            self,
            args: ArgumentStore,
            *,
            stringifier: Optional[RichValueStringifier] = None,
            tokens: Optional[TokenTable] = None,
            print_template_tree: bool = False,
            elide_type: bool = True,
            show_colors: bool = False,
    ) -> None:
        self.args = args
        self.stringifier = stringifier or RichValueStringifier()
        self.tokens = tokens or TokenTable()
        self.print_template_tree = print_template_tree
        self.elide_type = elide_type
        self.show_colors = show_colors

        self._formatted_args: List[FormattedArg] = []
        self._type_values: List[Any] = []
        self._tree = ""

    # --- public API ---

    def format(self, template: str) -> str:
        # A bare "%0" with a string argument is an externally supplied,
        # already final message: copy it without interpreting it.
        if (template == "%0" and len(self.args) > 0
                and self.args.kind(0) is ArgumentKind.STD_STRING):
            return printable(self.args.value(0))

        self._formatted_args = []
        self._type_values = [a.value for a in self.args if a.kind is ArgumentKind.TYPE]
        self._tree = ""

        out: List[str] = []
        self.format_range(TemplateRange.of(template), out)
        out.append(self._tree)
        return "".join(out)

    def format_range(self, rng: TemplateRange, out: List[str]) -> None:
        text = rng.text
        end = rng.end
        i = rng.start
        while i < end:
            if text[i] != "%":
                j = text.find("%", i, end)
                if j < 0:
                    j = end
                out.append(text[i:j])
                i = j
                continue
            if i + 1 < end and text[i + 1] in _PUNCTUATION:
                out.append(text[i + 1])
                i += 2
                continue

            # Skip the %.
            i += 1

            modifier = ""
            payload: Optional[TemplateRange] = None
            if i < end and not _is_digit(text[i]):
                mod_start = i
                while i < end and (text[i] == "-" or "a" <= text[i] <= "z"):
                    i += 1
                modifier = text[mod_start:i]

                if i < end and text[i] == "{":
                    i += 1
                    close = rng.tail(i).scan("}")
                    if close == end:
                        ice("[ICE-2010] mismatched {}'s in diagnostic string", text, i - 1)
                    payload = rng.between(i, close)
                    i = close + 1

            if i >= end or not _is_digit(text[i]):
                ice("[ICE-2011] invalid format for argument in diagnostic", text, i)
            arg_no = self._arg_index(text, i)
            i += 1

            if modifier == "diff":
                if i + 1 >= end or text[i] != "," or not _is_digit(text[i + 1]):
                    ice("[ICE-2050] invalid format for diff modifier", text, i)
                arg_no2 = self._arg_index(text, i + 1)
                i += 2
                if payload is None:
                    ice("[ICE-2050] diff modifier requires a payload", text, i)
                if (self.args.kind(arg_no) is ArgumentKind.TYPE
                        and self.args.kind(arg_no2) is ArgumentKind.TYPE):
                    self._format_type_diff(arg_no, arg_no2, modifier, payload, out)
                else:
                    self._format_plain_diff(arg_no, arg_no2, payload, out)
                continue

            self._format_argument(arg_no, modifier, payload, out)

    # --- argument rendering ---

    def _arg_index(self, text: str, pos: int) -> int:
        arg_no = int(text[pos])
        if arg_no >= len(self.args):
            ice(f"[ICE-2012] diagnostic refers to argument %{arg_no} but only "
                f"{len(self.args)} argument(s) were given", text, pos)
        return arg_no

    def _require_no_modifier(self, modifier: str, what: str) -> None:
        if modifier:
            ice(f"[ICE-2060] no modifiers for {what} yet (got '{modifier}')")

    def _format_argument(self, arg_no: int, modifier: str, payload: Optional[TemplateRange],
                         out: List[str]) -> None:
        kind = self.args.kind(arg_no)
        value = self.args.value(arg_no)

        if kind is ArgumentKind.STD_STRING:
            self._require_no_modifier(modifier, "strings")
            out.append(value)
        elif kind is ArgumentKind.C_STRING:
            self._require_no_modifier(modifier, "strings")
            out.append(value if value is not None else "(null)")
        elif kind in INTEGER_KINDS:
            self._format_integer(value, modifier, payload, out)
        elif kind is ArgumentKind.TOKEN_KIND:
            self._require_no_modifier(modifier, "token kinds")
            out.append(self.tokens.spell(value))
        elif kind is ArgumentKind.IDENTIFIER:
            self._require_no_modifier(modifier, "identifiers")
            if value is None:
                out.append("(null)")
                return
            out.append(f"'{value.name}'")
        else:
            out.append(self.stringifier.stringify(
                kind,
                value,
                modifier,
                str(payload) if payload is not None else "",
                tuple(self._formatted_args),
                self._type_values,
            ))

        # Strings are recorded as borrowed strings, like every later lookup sees them.
        if kind is ArgumentKind.STD_STRING:
            self._formatted_args.append((ArgumentKind.C_STRING, value))
        else:
            self._formatted_args.append((kind, value))

    def _format_integer(self, value: int, modifier: str, payload: Optional[TemplateRange],
                        out: List[str]) -> None:
        if modifier == "select":
            self._handle_select(value, self._require_payload(modifier, payload), out)
        elif modifier == "s":
            if value != 1:
                out.append("s")
        elif modifier == "plural":
            self._handle_plural(value, self._require_payload(modifier, payload), out)
        elif modifier == "ordinal":
            if value < 1:
                ice(f"[ICE-2040] ordinal value must be strictly positive, got {value}")
            out.append(f"{value}{ordinal_suffix(value)}")
        elif modifier:
            ice(f"[ICE-2060] unknown integer modifier '{modifier}'")
        else:
            out.append(str(value))

    @staticmethod
    def _require_payload(modifier: str, payload: Optional[TemplateRange]) -> TemplateRange:
        if payload is None:
            ice(f"[ICE-2061] modifier '{modifier}' requires a {{...}} payload")
        return payload

    # --- modifiers ---

    def _handle_select(self, value: int, payload: TemplateRange, out: List[str]) -> None:
        if value < 0:
            ice(f"[ICE-2020] select value {value} is negative", payload.text, payload.start)
        rng = payload
        for _ in range(value):
            bar = rng.scan("|")
            if bar == rng.end:
                ice(f"[ICE-2020] select value {value} is larger than the number of options",
                    payload.text, payload.start)
            rng = rng.tail(bar + 1)
        self.format_range(rng.head(rng.scan("|")), out)

    def _handle_plural(self, value: int, payload: TemplateRange, out: List[str]) -> None:
        if value < 0:
            ice(f"[ICE-2031] plural value {value} is negative", payload.text, payload.start)
        text = payload.text
        rng = payload
        while True:
            if rng.start >= rng.end:
                ice("[ICE-2031] plural expression didn't match", text, payload.start)
            colon = text.find(":", rng.start, rng.end)
            if colon < 0:
                ice("[ICE-2032] plural missing expression end", text, rng.start)
            if eval_plural_expr(value, text, rng.start, colon):
                form = rng.tail(colon + 1)
                self.format_range(form.head(form.scan("|")), out)
                return
            bar = rng.between(rng.start, rng.end - 1).scan("|")
            rng = rng.tail(bar + 1)

    def _diff_dollars(self, rng: TemplateRange) -> Tuple[int, int]:
        first = rng.scan("$")
        if first == rng.end:
            ice("[ICE-2051] diff payload needs two '$' placeholders", rng.text, rng.start)
        second = rng.tail(first + 1).scan("$")
        if second == rng.end:
            ice("[ICE-2051] diff payload needs two '$' placeholders", rng.text, rng.start)
        return first, second

    def _format_plain_diff(self, arg_no: int, arg_no2: int, payload: TemplateRange,
                           out: List[str]) -> None:
        # %diff only diffs types. Anything else is printed the default way:
        #   "%diff{compare $ to $|other text}1,2"  ->  "compare %1 to %2"
        pipe = payload.scan("|")
        if pipe == payload.end:
            ice("[ICE-2050] diff payload needs a '|' alternative", payload.text, payload.start)
        if payload.tail(pipe + 1).scan("|") != payload.end:
            ice("[ICE-2050] found too many '|'s in a %diff modifier", payload.text, pipe)
        inline = payload.head(pipe)
        first, second = self._diff_dollars(inline)
        self.format_range(inline.head(first), out)
        self.format_range(TemplateRange.of(f"%{arg_no}"), out)
        self.format_range(inline.between(first + 1, second), out)
        self.format_range(TemplateRange.of(f"%{arg_no2}"), out)
        self.format_range(inline.between(second + 1, pipe), out)

    def _format_type_diff(self, arg_no: int, arg_no2: int, modifier: str,
                          payload: TemplateRange, out: List[str]) -> None:
        diff = TypeDiff(
            from_type=self.args.value(arg_no),
            to_type=self.args.value(arg_no2),
            elide_type=self.elide_type,
            show_colors=self.show_colors,
        )
        payload_text = str(payload)
        pipe = payload.scan("|")

        # Only the first diff of a message may print a tree.
        if self.print_template_tree and not self._tree:
            diff.print_from_type = True
            diff.print_tree = True
            tree = self._stringify_pair(diff, modifier, payload_text)
            if tree:
                self._tree = tree
                if pipe < payload.end:
                    self.format_range(payload.tail(pipe + 1), out)
                return

        # Inline printing, also the fall-back when no tree could be printed.
        first, second = self._diff_dollars(payload)
        self.format_range(payload.head(first), out)

        diff.print_tree = False
        diff.print_from_type = True
        out.append(self._stringify_pair(diff, modifier, payload_text))
        if not diff.template_diff_used:
            self._formatted_args.append((ArgumentKind.TYPE, diff.from_type))

        self.format_range(payload.between(first + 1, second), out)

        diff.print_from_type = False
        out.append(self._stringify_pair(diff, modifier, payload_text))
        if not diff.template_diff_used:
            self._formatted_args.append((ArgumentKind.TYPE, diff.to_type))

        self.format_range(payload.between(second + 1, pipe), out)

    def _stringify_pair(self, diff: TypeDiff, modifier: str, payload_text: str) -> str:
        return self.stringifier.stringify(
            ArgumentKind.TYPE_PAIR,
            diff,
            modifier,
            payload_text,
            tuple(self._formatted_args),
            self._type_values,
        )


def format_diagnostic(template: str, args: ArgumentStore, **options) -> str:
    """Render `template` against `args`; options as for DiagnosticFormatter."""
    return DiagnosticFormatter(args, **options).format(template)
