#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

"""
Severity resolution policy.

Turns (diagnostic id, location) into the level a diagnostic is emitted at,
and decides whether it is emitted at all. The engine owns the counters and
flags; the resolver updates them as a side effect of process().
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from dc_catalog import DiagnosticCatalog
from dc_location import SourceLocation
from dc_logger import log_debug
from dc_severity import Severity

if TYPE_CHECKING:
    from dc_engine import DiagnosticsEngine


class LevelResolver:
    def __init__(self, catalog: DiagnosticCatalog):
        self.catalog = catalog

    def get_severity(self, engine: DiagnosticsEngine, diag_id: int,
                     loc: Optional[SourceLocation]) -> Severity:
        """The severity of `diag_id` at `loc`, after the state's global toggles."""
        catalog = self.catalog
        state = engine.state_at(loc)
        mapping = state.get_mapping(diag_id)
        if mapping is None:
            mapping = catalog.default_mapping(diag_id)
        result = mapping.severity

        # -Weverything wakes up ignored diagnostics nobody mapped explicitly.
        if (state.enable_all_warnings and result == Severity.IGNORED
                and not mapping.is_user and not catalog.is_remark(diag_id)):
            result = Severity.WARNING

        is_ext, enabled_by_default = catalog.is_extension(diag_id)
        if engine.all_extensions_silenced and is_ext and not enabled_by_default:
            return Severity.IGNORED
        if is_ext and not mapping.is_user:
            result = max(result, state.extension_behavior)

        if result == Severity.IGNORED:
            return result

        # -w silences warnings and errors that are only errors because of -Werror.
        if state.ignore_all_warnings:
            if (result == Severity.WARNING
                    or (result >= Severity.ERROR and catalog.default_severity(diag_id) < Severity.ERROR)):
                return Severity.IGNORED

        if result == Severity.WARNING and state.warnings_as_errors and not mapping.no_warning_as_error:
            result = Severity.ERROR

        if result == Severity.ERROR and state.errors_as_fatal and not mapping.no_error_as_fatal:
            result = Severity.FATAL

        return result

    def get_level(self, engine: DiagnosticsEngine, diag_id: int,
                  loc: Optional[SourceLocation]) -> Severity:
        # Notes take the fate of the diagnostic they are attached to.
        if self.catalog.is_note(diag_id):
            return Severity.NOTE
        return self.get_severity(engine, diag_id, loc)

    def process(self, engine: DiagnosticsEngine, diag_id: int,
                loc: Optional[SourceLocation]) -> Optional[Severity]:
        """
        Resolve the level and apply the suppression policy.

        Returns the level to emit at, or None when the diagnostic is dropped.
        """
        context = engine.context
        level = self.get_level(engine, diag_id, loc)

        if context.suppress_all:
            return None

        if level != Severity.NOTE:
            engine.last_diag_level = level

        if engine.fatal_error_occurred and context.suppress_after_fatal:
            # Notes attached to the fatal error itself still go through.
            if not (level == Severity.NOTE and engine.last_diag_level == Severity.FATAL):
                if level >= Severity.ERROR and engine.client.include_in_counts():
                    engine.num_errors += 1
                log_debug(context, f"Suppressed diagnostic {diag_id} after a fatal error")
                return None

        if level == Severity.IGNORED:
            return None
        if level == Severity.NOTE and engine.last_diag_level == Severity.IGNORED:
            return None

        if level >= Severity.ERROR:
            if self.catalog.is_unrecoverable(diag_id):
                engine.unrecoverable_error_occurred = True
            engine.error_occurred = True
            if engine.client.include_in_counts():
                engine.num_errors += 1

            if (context.error_limit and engine.num_errors > context.error_limit
                    and level == Severity.ERROR):
                log_debug(context, f"Error limit {context.error_limit} exceeded")
                engine.set_delayed(self.catalog.too_many_errors_id)
                return None

        if level == Severity.FATAL:
            engine.fatal_error_occurred = True

        return level
