#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple

from dc_arguments import ArgumentKind


# (kind, raw value) of arguments already rendered in the current message
FormattedArg = Tuple[ArgumentKind, Any]


@dataclass
class TypeDiff:
    """
    Request object for a %diff of two TYPE arguments.

    The stringifier reads print_tree/print_from_type to decide what to render
    and sets template_diff_used when it produced a structural diff (so the
    halves are not recorded as plain formatted types).
    """
    from_type: Any
    to_type: Any
    elide_type: bool = True
    show_colors: bool = False
    print_tree: bool = False
    print_from_type: bool = True
    template_diff_used: bool = False


class RichValueStringifier:
    """
    Renders rich arguments (types, names, declarations) to text.

    The default renders a placeholder; front ends install their own.
    """

    def stringify(
            self,
            kind: ArgumentKind,
            value: Any,
            modifier: str,
            payload: str,
            formatted_args: Sequence[FormattedArg],
            type_values: List[Any],
    ) -> str:
        return "<can't format argument>"


class QuotingStringifier(RichValueStringifier):
    """
    Quotes str(value). Type pairs render the requested half; no tree form.
    """

    def stringify(self, kind, value, modifier, payload, formatted_args, type_values) -> str:
        if kind is ArgumentKind.TYPE_PAIR:
            if value.print_tree:
                return ""
            half = value.from_type if value.print_from_type else value.to_type
            return f"'{half}'"
        return f"'{value}'"
