#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum, auto
from typing import Dict, Optional


class Severity(IntEnum):
    """Ordered action level of a diagnostic; also the level it is emitted at."""
    IGNORED = 0
    NOTE = 1
    REMARK = 2
    WARNING = 3
    ERROR = 4
    FATAL = 5

    @property
    def spelling(self) -> str:
        return _SPELLINGS[self]


_SPELLINGS = {
    Severity.IGNORED: "ignored",
    Severity.NOTE: "note",
    Severity.REMARK: "remark",
    Severity.WARNING: "warning",
    Severity.ERROR: "error",
    Severity.FATAL: "fatal error",
}


class Flavor(Enum):
    """Which diagnostics a group-wide operation applies to."""
    WARNING_OR_ERROR = auto()
    REMARK = auto()


@dataclass
class DiagnosticMapping:
    """
    Severity of one diagnostic kind within a DiagState, plus flags.

    is_user:                set by -W flags or pragmas (not a catalog default)
    is_pragma:              set by an in-source directive
    upgraded_from_warning:  a Warning was requested but an Error/Fatal mapping was kept
    no_warning_as_error:    -Wno-error=group: -Werror does not promote this one
    no_error_as_fatal:      -Wno-fatal-errors=group: -Wfatal-errors does not promote this one
    """
    severity: Severity
    is_user: bool = False
    is_pragma: bool = False
    upgraded_from_warning: bool = False
    no_warning_as_error: bool = False
    no_error_as_fatal: bool = False

    def copy(self) -> DiagnosticMapping:
        return replace(self)


def make_user_mapping(severity: Severity, is_pragma: bool) -> DiagnosticMapping:
    return DiagnosticMapping(severity=severity, is_user=True, is_pragma=is_pragma)


@dataclass(eq=False)
class DiagState:
    """
    Severity mappings in effect over some stretch of source.

    Unset entries fall back to the catalog default. The global toggles live
    here too, so push/pop scoping covers them.

    A state may be referenced by several transition points and scope-stack
    entries. `refs` counts those references; a state with more than one
    reference is shared and must be copied before it is changed.
    """
    mappings: Dict[int, DiagnosticMapping] = field(default_factory=dict)

    ignore_all_warnings: bool = False
    enable_all_warnings: bool = False
    warnings_as_errors: bool = False
    errors_as_fatal: bool = False
    extension_behavior: Severity = Severity.IGNORED

    refs: int = 0

    def get_mapping(self, diag_id: int) -> Optional[DiagnosticMapping]:
        return self.mappings.get(diag_id)

    def set_mapping(self, diag_id: int, mapping: DiagnosticMapping) -> None:
        self.mappings[diag_id] = mapping

    def copy(self) -> DiagState:
        """A private copy with no references."""
        return DiagState(
            mappings={k: m.copy() for k, m in self.mappings.items()},
            ignore_all_warnings=self.ignore_all_warnings,
            enable_all_warnings=self.enable_all_warnings,
            warnings_as_errors=self.warnings_as_errors,
            errors_as_fatal=self.errors_as_fatal,
            extension_behavior=self.extension_behavior,
        )

    # --- ownership ---

    def retain(self) -> None:
        self.refs += 1

    def release(self) -> None:
        if self.refs > 0:
            self.refs -= 1

    @property
    def is_shared(self) -> bool:
        return self.refs > 1
