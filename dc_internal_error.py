#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

# dc_internal_error.py
from __future__ import annotations

from dataclasses import dataclass
from typing import NoReturn, Optional


@dataclass(frozen=True)
class ICELocation:
    template: Optional[str]
    offset: Optional[int] = None


class InternalCompilerError(RuntimeError):
    """
    ICE = defect in the calling code or the diagnostic catalog
    (malformed template, argument misuse, re-entrant reporting).
    Not for user mistakes (those are Diagnostics).
    """

    def __init__(self, message: str, loc: ICELocation | None = None):
        super().__init__(message)
        self.message = message
        self.loc = loc

    def format(self) -> str:
        message = self.message
        if not "[ICE-" in message:
            message = f"[ICE-9999] {message}"
        if self.loc and self.loc.template is not None:
            if self.loc.offset is not None:
                return f"{self.loc.template!r}:{self.loc.offset}: internal compiler error: {message}"
            return f"{self.loc.template!r}: internal compiler error: {message}"
        return f"internal compiler error: {message}"


def ice(message: str, template: Optional[str] = None, offset: Optional[int] = None) -> NoReturn:
    loc = ICELocation(template=template, offset=offset) if template is not None else None
    raise InternalCompilerError(message, loc)
