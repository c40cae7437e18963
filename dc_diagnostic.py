#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from dataclasses import dataclass
from typing import Optional, Tuple

from dc_location import LocationResolver, SourceLocation
from dc_severity import Severity


@dataclass(frozen=True)
class CharSourceRange:
    begin: SourceLocation
    end: SourceLocation
    is_token_range: bool = True


@dataclass(frozen=True)
class FixItHint:
    """
    A suggested edit: remove `remove_range` and/or insert `code_to_insert`.
    An insertion has an empty range starting at the insertion point.
    """
    remove_range: Optional[CharSourceRange] = None
    code_to_insert: str = ""
    before_previous_insertions: bool = False

    @classmethod
    def insertion(cls, loc: SourceLocation, code: str, before_previous_insertions: bool = False) -> 'FixItHint':
        return cls(
            remove_range=CharSourceRange(loc, loc, is_token_range=False),
            code_to_insert=code,
            before_previous_insertions=before_previous_insertions,
        )

    @classmethod
    def removal(cls, rng: CharSourceRange) -> 'FixItHint':
        return cls(remove_range=rng)

    @classmethod
    def replacement(cls, rng: CharSourceRange, code: str) -> 'FixItHint':
        return cls(remove_range=rng, code_to_insert=code)

    def is_null(self) -> bool:
        return self.remove_range is None


@dataclass(frozen=True)
class StoredDiagnostic:
    """
    A fully resolved diagnostic: level and message are final.

    Consumers receive these; they can also be kept and replayed through
    DiagnosticsEngine.report_stored().
    """
    diag_id: int
    level: Severity
    message: str
    location: Optional[SourceLocation] = None
    ranges: Tuple[CharSourceRange, ...] = ()
    fixits: Tuple[FixItHint, ...] = ()

    # Return the one-line header; snippets are rendered elsewhere
    def format(self, locations: Optional[LocationResolver] = None) -> str:
        loc = ""
        if self.location is not None and locations is not None:
            filename, line, column = locations.spelling(self.location)
            loc = f"{filename}:{line}:{column}: "
        return f"{loc}{self.level.spelling}: {self.message}"
