#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

"""
The diagnostics engine.

Usage:

    engine = DiagnosticsEngine(catalog, StoringDiagnosticConsumer(), locations=table)
    engine.report(catalog.id_of("warn_unused_var"), loc).arg("x").emit()

    with engine.report(err_id, loc) as diag:
        diag.add_string("foo")
        diag.add_uint(2)

A report goes through IDLE -> STAGING (arguments bound) -> RESOLVING
(severity lookup and suppression policy) -> RENDERING (message formatted and
handed to the consumer) and back to IDLE. Only one diagnostic may be in
flight per engine.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Any, List, Optional, Tuple

from dc_arguments import ArgumentKind, ArgumentStore, Identifier, TokenTable
from dc_catalog import DiagnosticCatalog, UnknownGroupError
from dc_consumer import DiagnosticConsumer
from dc_context import DiagnosticContext, LogLevel
from dc_diagnostic import CharSourceRange, FixItHint, StoredDiagnostic
from dc_format import DiagnosticFormatter
from dc_internal_error import ice
from dc_location import LocationResolver, SourceLocation
from dc_logger import log_debug
from dc_resolve import LevelResolver
from dc_severity import DiagnosticMapping, DiagState, Flavor, Severity, make_user_mapping
from dc_state_map import DiagStateMap
from dc_stringify import RichValueStringifier


class EngineState(Enum):
    IDLE = auto()
    STAGING = auto()
    RESOLVING = auto()
    RENDERING = auto()


class DiagnosticBuilder:
    """Argument-binding handle for the diagnostic in flight."""

    def __init__(self, engine: DiagnosticsEngine) -> None:
        self.engine = engine
        self.active = True

    def _check(self) -> None:
        if not self.active:
            ice("[ICE-5011] diagnostic builder used after it was emitted or abandoned")

    # --- arguments ---

    def arg(self, value: Any) -> DiagnosticBuilder:
        self._check()
        self.engine.args.add_value(value)
        return self

    def add(self, kind: ArgumentKind, value: Any) -> DiagnosticBuilder:
        self._check()
        self.engine.args.add(kind, value)
        return self

    def add_string(self, value: str) -> DiagnosticBuilder:
        return self.add(ArgumentKind.STD_STRING, value)

    def add_c_string(self, value: Optional[str]) -> DiagnosticBuilder:
        return self.add(ArgumentKind.C_STRING, value)

    def add_sint(self, value: int) -> DiagnosticBuilder:
        self._check()
        self.engine.args.add_sint(value)
        return self

    def add_uint(self, value: int) -> DiagnosticBuilder:
        self._check()
        self.engine.args.add_uint(value)
        return self

    def add_token_kind(self, kind: Any) -> DiagnosticBuilder:
        return self.add(ArgumentKind.TOKEN_KIND, kind)

    def add_identifier(self, ident: Optional[Identifier]) -> DiagnosticBuilder:
        return self.add(ArgumentKind.IDENTIFIER, ident)

    def add_range(self, begin: SourceLocation, end: Optional[SourceLocation] = None) -> DiagnosticBuilder:
        self._check()
        self.engine._ranges.append(CharSourceRange(begin, end if end is not None else begin))
        return self

    def add_fixit(self, hint: FixItHint) -> DiagnosticBuilder:
        self._check()
        if not hint.is_null():
            self.engine._fixits.append(hint)
        return self

    # --- finishing ---

    def emit(self, force: bool = False) -> bool:
        """Emit the diagnostic; returns True if the consumer received it."""
        self._check()
        self.active = False
        return self.engine._emit_current(force)

    def abandon(self) -> None:
        if self.active:
            self.active = False
            self.engine._clear_current()

    def __enter__(self) -> DiagnosticBuilder:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            if self.active:
                self.emit()
        else:
            self.abandon()
        return False


class DiagnosticsEngine:
    """
    Reports diagnostics and tracks per-location severity state.

    Attributes:
        num_errors / num_warnings:      emitted so far (only for counted consumers)
        error_occurred:                 an error or fatal error was emitted
        unrecoverable_error_occurred:   a genuine error (not a promoted warning) was emitted
        fatal_error_occurred:           a fatal error was emitted
        last_diag_level:                level of the last non-note diagnostic
    """

    def __init__(
            self,
            catalog: DiagnosticCatalog,
            client: Optional[DiagnosticConsumer] = None,
            *,
            locations: Optional[LocationResolver] = None,
            stringifier: Optional[RichValueStringifier] = None,
            tokens: Optional[TokenTable] = None,
            context: Optional[DiagnosticContext] = None,
    ) -> None:
        self.catalog = catalog
        self.client = client if client is not None else DiagnosticConsumer()
        self.locations = locations
        self.stringifier = stringifier or RichValueStringifier()
        self.tokens = tokens or TokenTable()
        self.context = context or DiagnosticContext.default()
        self.resolver = LevelResolver(catalog)

        self.args = ArgumentStore()
        self.state = EngineState.IDLE
        self.state_map = DiagStateMap()
        self._scope_stack: List[DiagState] = []
        self._extensions_silenced = 0

        self._cur_diag_id: Optional[int] = None
        self._cur_loc: Optional[SourceLocation] = None
        self._ranges: List[CharSourceRange] = []
        self._fixits: List[FixItHint] = []
        self._delayed: Optional[Tuple[int, str, str]] = None

        self.reset()

    # --- lifecycle ---

    def reset(self) -> None:
        """Forget counts, flags and all severity-state history."""
        self.num_errors = 0
        self.num_warnings = 0
        self.error_occurred = False
        self.unrecoverable_error_occurred = False
        self.fatal_error_occurred = False
        self.last_diag_level = Severity.IGNORED
        self._delayed = None
        self._extensions_silenced = 0
        self._clear_current()

        self._scope_stack.clear()
        self.state_map.clear()
        ctx = self.context
        self.state_map.append_first(DiagState(
            ignore_all_warnings=ctx.ignore_all_warnings,
            enable_all_warnings=ctx.enable_all_warnings,
            warnings_as_errors=ctx.warnings_as_errors,
            errors_as_fatal=ctx.errors_as_fatal,
        ))
        log_debug(ctx, "Diagnostics engine reset")

    def _clear_current(self) -> None:
        self.args.clear()
        self._ranges = []
        self._fixits = []
        self._cur_diag_id = None
        self._cur_loc = None
        self.state = EngineState.IDLE

    # --- reporting ---

    def report(self, diag_id: int, loc: Optional[SourceLocation] = None) -> DiagnosticBuilder:
        """
        Start reporting `diag_id` at `loc`.

        The returned builder must be finished: call emit() or abandon(), or
        use it as a context manager, which emits on a clean exit. Until then
        the diagnostic stays in flight and any other report() raises ICE-5010.
        """
        if self.state is not EngineState.IDLE:
            ice(f"[ICE-5010] multiple diagnostics in flight at once "
                f"(reporting {diag_id} while {self._cur_diag_id} is {self.state.name.lower()})")
        self.catalog.entry(diag_id)
        self._clear_current()
        self._cur_diag_id = diag_id
        self._cur_loc = loc
        self.state = EngineState.STAGING
        return DiagnosticBuilder(self)

    def report_stored(self, stored: StoredDiagnostic) -> None:
        """Replay an already resolved diagnostic; severity is not re-resolved."""
        if self.state is not EngineState.IDLE:
            ice(f"[ICE-5010] multiple diagnostics in flight at once "
                f"(replaying {stored.diag_id} while {self._cur_diag_id} is {self.state.name.lower()})")
        self.state = EngineState.RENDERING
        try:
            self.client.handle_diagnostic(stored)
            if self.client.include_in_counts() and stored.level == Severity.WARNING:
                self.num_warnings += 1
        finally:
            self.state = EngineState.IDLE

    def set_delayed(self, diag_id: int, arg1: str = "", arg2: str = "") -> None:
        """Queue `diag_id` to be reported once the current diagnostic is done."""
        if self._delayed is not None:
            return
        log_debug(self.context, f"Delayed diagnostic {self.catalog.entry(diag_id).name}")
        self._delayed = (diag_id, arg1, arg2)

    def has_delayed(self) -> bool:
        return self._delayed is not None

    def _emit_current(self, force: bool) -> bool:
        diag_id, loc = self._cur_diag_id, self._cur_loc
        self.state = EngineState.RESOLVING
        try:
            if force:
                level = self.resolver.get_level(self, diag_id, loc)
                if level == Severity.IGNORED:
                    level = None
            else:
                level = self.resolver.process(self, diag_id, loc)
            if level is None:
                log_debug(self.context, f"Suppressed diagnostic {self.catalog.entry(diag_id).name}")
            else:
                self._emit(diag_id, loc, level)
        finally:
            self._clear_current()

        if not force and self._delayed is not None:
            self._report_delayed()
        return level is not None

    def _emit(self, diag_id: int, loc: Optional[SourceLocation], level: Severity) -> None:
        self.state = EngineState.RENDERING
        formatter = DiagnosticFormatter(
            self.args,
            stringifier=self.stringifier,
            tokens=self.tokens,
            print_template_tree=self.context.print_template_tree,
            elide_type=self.context.elide_type,
            show_colors=self.context.show_colors,
        )
        message = formatter.format(self.catalog.template(diag_id))
        stored = StoredDiagnostic(
            diag_id=diag_id,
            level=level,
            message=message,
            location=loc,
            ranges=tuple(self._ranges),
            fixits=tuple(self._fixits),
        )
        self.client.handle_diagnostic(stored)
        if self.client.include_in_counts() and level == Severity.WARNING:
            self.num_warnings += 1

    def _report_delayed(self) -> None:
        diag_id, arg1, arg2 = self._delayed
        self._delayed = None
        self.report(diag_id).add_string(arg1).add_string(arg2).emit()

    # --- severity state ---

    def state_at(self, loc: Optional[SourceLocation]) -> DiagState:
        if loc is None or self.locations is None:
            return self.state_map.cur_state
        return self.state_map.lookup(self.locations, loc)

    def mapping_at(self, diag_id: int, loc: Optional[SourceLocation] = None) -> DiagnosticMapping:
        mapping = self.state_at(loc).get_mapping(diag_id)
        if mapping is None:
            mapping = self.catalog.default_mapping(diag_id)
        return mapping

    def effective_severity(self, diag_id: int, loc: Optional[SourceLocation] = None) -> Severity:
        return self.resolver.get_severity(self, diag_id, loc)

    def set_severity(self, diag_id: int, severity: Severity,
                     loc: Optional[SourceLocation] = None) -> None:
        """
        Map `diag_id` to `severity` from `loc` on.

        Without a location the change applies to the current state (command
        line). With one, it takes effect at that point in the source; states
        shared with other points or scopes are copied first.
        """
        catalog = self.catalog
        if (not catalog.is_builtin_warning_or_extension(diag_id)
                and severity not in (Severity.ERROR, Severity.FATAL)):
            ice(f"[ICE-5020] cannot map error diagnostic "
                f"'{catalog.entry(diag_id).name}' to {severity.spelling}")
        if loc is not None and self.locations is None:
            ice("[ICE-5040] severity change at a source location needs a location resolver")

        base = self.state_at(loc)
        current = base.get_mapping(diag_id) or catalog.default_mapping(diag_id)

        # A warning request never weakens an error mapping.
        upgraded = False
        if severity == Severity.WARNING and current.severity >= Severity.ERROR:
            severity = current.severity
            upgraded = True

        mapping = make_user_mapping(severity, is_pragma=loc is not None)
        mapping.upgraded_from_warning = upgraded
        mapping.no_warning_as_error = current.no_warning_as_error
        mapping.no_error_as_fatal = current.no_error_as_fatal

        self._state_for_update(loc).set_mapping(diag_id, mapping)
        log_debug(self.context, f"{catalog.entry(diag_id).name} -> {severity.spelling} "
                                f"at {loc if loc is not None else '<command line>'}")

    def _state_for_update(self, loc: Optional[SourceLocation]) -> DiagState:
        """
        The state a change at `loc` may modify in place.

        For command-line changes that is the current state, replaced by a
        private copy first if a scope still holds it. For located changes it
        is the current state when `loc` is where it took effect and nothing
        else references it; otherwise a private copy is recorded as a new
        transition at `loc`.
        """
        state_map = self.state_map
        if loc is None:
            if state_map.cur_state.is_shared:
                state_map.replace_current(state_map.cur_state.copy())
                log_debug(self.context, "New severity state for command-line change")
            return state_map.cur_state
        if self.locations is None:
            ice("[ICE-5040] severity change at a source location needs a location resolver")

        base = self.state_at(loc)
        if loc == state_map.cur_loc and base is state_map.cur_state and not base.is_shared:
            return base
        new_state = base.copy()
        state_map.append(self.locations, loc, new_state)
        log_debug(self.context, f"New severity state at {loc}")
        return new_state

    def set_severity_for_group(self, flavor: Flavor, group: str, severity: Severity,
                               loc: Optional[SourceLocation] = None) -> bool:
        members = self._group_members(flavor, group)
        if members is None:
            return False
        for diag_id in sorted(members):
            self.set_severity(diag_id, severity, loc)
        return True

    def set_severity_for_all(self, flavor: Flavor, severity: Severity,
                             loc: Optional[SourceLocation] = None) -> bool:
        for diag_id in sorted(self.catalog.all_ids(flavor)):
            if self.catalog.is_builtin_warning_or_extension(diag_id):
                self.set_severity(diag_id, severity, loc)
        return True

    def set_diagnostic_group_warning_as_error(self, group: str, enabled: bool) -> bool:
        if enabled:
            return self.set_severity_for_group(Flavor.WARNING_OR_ERROR, group, Severity.ERROR)
        members = self._group_members(Flavor.WARNING_OR_ERROR, group)
        if members is None:
            return False
        # Errors stay errors; only -Werror stops applying.
        for diag_id in members:
            self._own_mapping(diag_id).no_warning_as_error = True
        return True

    def set_diagnostic_group_error_as_fatal(self, group: str, enabled: bool) -> bool:
        if enabled:
            return self.set_severity_for_group(Flavor.WARNING_OR_ERROR, group, Severity.FATAL)
        members = self._group_members(Flavor.WARNING_OR_ERROR, group)
        if members is None:
            return False
        for diag_id in members:
            mapping = self._own_mapping(diag_id)
            if mapping.severity == Severity.FATAL:
                mapping.severity = Severity.ERROR
            mapping.no_error_as_fatal = True
        return True

    def _group_members(self, flavor: Flavor, group: str):
        try:
            return self.catalog.group_members(flavor, group)
        except UnknownGroupError:
            log_debug(self.context, f"Unknown diagnostic group '{group}'")
            return None

    def _own_mapping(self, diag_id: int) -> DiagnosticMapping:
        state = self._state_for_update(None)
        mapping = state.get_mapping(diag_id)
        if mapping is None:
            mapping = self.catalog.default_mapping(diag_id)
            state.set_mapping(diag_id, mapping)
        return mapping

    # --- global toggles (per state, so they follow push/pop) ---

    def set_ignore_all_warnings(self, value: bool, loc: Optional[SourceLocation] = None) -> None:
        self._state_for_update(loc).ignore_all_warnings = value

    def set_enable_all_warnings(self, value: bool, loc: Optional[SourceLocation] = None) -> None:
        self._state_for_update(loc).enable_all_warnings = value

    def set_warnings_as_errors(self, value: bool, loc: Optional[SourceLocation] = None) -> None:
        self._state_for_update(loc).warnings_as_errors = value

    def set_errors_as_fatal(self, value: bool, loc: Optional[SourceLocation] = None) -> None:
        self._state_for_update(loc).errors_as_fatal = value

    def set_extension_handling_behavior(self, severity: Severity,
                                        loc: Optional[SourceLocation] = None) -> None:
        self._state_for_update(loc).extension_behavior = severity

    @property
    def all_extensions_silenced(self) -> bool:
        return self._extensions_silenced > 0

    def increment_all_extensions_silenced(self) -> None:
        self._extensions_silenced += 1

    def decrement_all_extensions_silenced(self) -> None:
        if self._extensions_silenced == 0:
            ice("[ICE-5050] extension silencing decremented below zero")
        self._extensions_silenced -= 1

    # --- scoping ---

    def push_scope(self, loc: Optional[SourceLocation] = None) -> None:
        state = self.state_map.cur_state
        state.retain()
        self._scope_stack.append(state)
        log_debug(self.context, f"Pushed severity scope at {loc} (depth {len(self._scope_stack)})")

    def pop_scope(self, loc: Optional[SourceLocation] = None) -> bool:
        """Restore the state saved by the matching push_scope(); False if there is none."""
        if not self._scope_stack:
            log_debug(self.context, f"Severity scope pop at {loc} without a matching push")
            return False

        saved = self._scope_stack[-1]
        if saved is not self.state_map.cur_state:
            if loc is None or self.locations is None:
                self.state_map.replace_current(saved)
            else:
                self.state_map.append(self.locations, loc, saved)
        self._scope_stack.pop()
        saved.release()

        log_debug(self.context, f"Popped severity scope at {loc} (depth {len(self._scope_stack)})")
        if self.context.log_level >= LogLevel.DEBUG:
            log_debug(self.context, "Severity states:\n" + self.state_map.dump())
        return True

    @property
    def scope_depth(self) -> int:
        return len(self._scope_stack)
