#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import pytest

from dc_arguments import ArgumentKind
from dc_consumer import IgnoringDiagnosticConsumer, StoringDiagnosticConsumer
from dc_context import DiagnosticContext
from dc_diagnostic import FixItHint, StoredDiagnostic
from dc_engine import DiagnosticsEngine, EngineState
from dc_internal_error import InternalCompilerError
from dc_severity import Severity
from dc_stringify import RichValueStringifier


def _engine(catalog, table, **context_options):
    consumer = StoringDiagnosticConsumer()
    engine = DiagnosticsEngine(catalog, consumer, locations=table,
                               context=DiagnosticContext(**context_options))
    return engine, consumer


def test_report_formats_and_delivers(engine, consumer, catalog, table):
    loc = table.location(1, 7)

    assert engine.report(catalog.id_of("err_undeclared"), loc).arg("foo").emit()

    diag = consumer.diagnostics[0]
    assert diag.level == Severity.ERROR
    assert diag.message == "use of undeclared identifier foo"
    assert diag.location == loc
    assert diag.format(table) == "main.c:2:1: error: use of undeclared identifier foo"
    assert engine.num_errors == 1 and consumer.num_errors == 1
    assert engine.error_occurred and engine.unrecoverable_error_occurred
    assert engine.state is EngineState.IDLE
    assert len(engine.args) == 0


def test_context_manager_emits_on_exit(engine, consumer, catalog):
    with engine.report(catalog.id_of("warn_unused_var")) as diag:
        diag.add_string("x")

    assert consumer.messages() == ["unused variable x"]
    assert engine.num_warnings == 1
    assert not engine.error_occurred


def test_context_manager_abandons_on_exception(engine, consumer, catalog):
    with pytest.raises(ValueError):
        with engine.report(catalog.id_of("warn_unused_var")) as diag:
            diag.add_string("x")
            raise ValueError("stop")

    assert consumer.diagnostics == []
    assert engine.state is EngineState.IDLE
    assert engine.report(catalog.id_of("warn_unused_var")).arg("y").emit()


def test_ranges_and_fixits_travel_with_the_diagnostic(engine, consumer, catalog, table):
    begin, end = table.location(1, 0), table.location(1, 3)
    hint = FixItHint.insertion(table.location(1, 5), ";")

    (engine.report(catalog.id_of("err_undeclared"), begin)
     .arg("x")
     .add_range(begin, end)
     .add_fixit(hint)
     .add_fixit(FixItHint())
     .emit())

    diag = consumer.diagnostics[0]
    assert [(r.begin, r.end) for r in diag.ranges] == [(begin, end)]
    assert diag.fixits == (hint,)
    assert diag.fixits[0].code_to_insert == ";"


def test_second_report_while_in_flight(engine, catalog):
    engine.report(catalog.id_of("warn_unused_var"))

    with pytest.raises(InternalCompilerError, match=r"\[ICE-5010\]"):
        engine.report(catalog.id_of("err_undeclared"))


def test_reporting_while_formatting_is_rejected(catalog, table):
    class Reentrant(RichValueStringifier):
        def stringify(self, kind, value, modifier, payload, formatted_args, type_values):
            engine.report(catalog.id_of("err_undeclared")).arg("inner").emit()
            return "T"

    bad_type = catalog.add("err_bad_type", "bad type %0")
    engine = DiagnosticsEngine(catalog, StoringDiagnosticConsumer(), locations=table,
                               stringifier=Reentrant())

    with pytest.raises(InternalCompilerError, match=r"\[ICE-5010\]"):
        engine.report(bad_type).add(ArgumentKind.TYPE, "int").emit()

    assert engine.state is EngineState.IDLE


def test_builder_cannot_be_reused(engine, catalog):
    diag = engine.report(catalog.id_of("warn_unused_var")).arg("x")
    diag.emit()

    with pytest.raises(InternalCompilerError, match=r"\[ICE-5011\]"):
        diag.arg("y")


def test_unknown_diagnostic_id(engine):
    with pytest.raises(InternalCompilerError, match=r"\[ICE-5030\]"):
        engine.report(12345)


def test_ignored_diagnostic_is_not_emitted(engine, consumer, catalog):
    assert not engine.report(catalog.id_of("warn_shadow")).emit()

    assert consumer.diagnostics == []
    assert engine.state is EngineState.IDLE


def test_notes_follow_their_parent(engine, consumer, catalog):
    note = catalog.id_of("note_declared_here")

    engine.report(catalog.id_of("warn_shadow")).emit()
    engine.report(note).arg("a").emit()
    engine.report(catalog.id_of("warn_unused_var")).arg("b").emit()
    engine.report(note).arg("b").emit()

    assert consumer.messages() == ["unused variable b", "b declared here"]
    assert consumer.diagnostics[1].level == Severity.NOTE


def test_error_limit_turns_into_fatal_error(catalog, table):
    engine, consumer = _engine(catalog, table, error_limit=2)
    err = catalog.id_of("err_undeclared")

    results = [engine.report(err).arg(name).emit() for name in ("a", "b", "c", "d")]

    assert results == [True, True, False, False]
    assert consumer.messages() == [
        "use of undeclared identifier a",
        "use of undeclared identifier b",
        "too many errors emitted, stopping now",
    ]
    assert consumer.diagnostics[-1].level == Severity.FATAL
    assert engine.fatal_error_occurred
    assert engine.num_errors == 5
    assert consumer.num_errors == 3
    assert not engine.has_delayed()


def test_nothing_after_a_fatal_error_but_its_notes(catalog, table):
    engine, consumer = _engine(catalog, table, errors_as_fatal=True)
    note = catalog.id_of("note_declared_here")

    engine.report(catalog.id_of("err_undeclared")).arg("x").emit()
    engine.report(note).arg("x").emit()
    engine.report(catalog.id_of("warn_unused_var")).arg("y").emit()
    engine.report(note).arg("y").emit()

    assert consumer.messages() == ["use of undeclared identifier x", "x declared here"]
    assert consumer.diagnostics[0].level == Severity.FATAL
    assert consumer.diagnostics[0].format() == "fatal error: use of undeclared identifier x"


def test_suppress_after_fatal_can_be_disabled(catalog, table):
    engine, consumer = _engine(catalog, table, errors_as_fatal=True, suppress_after_fatal=False)

    engine.report(catalog.id_of("err_undeclared")).arg("x").emit()
    engine.report(catalog.id_of("warn_unused_var")).arg("y").emit()

    assert len(consumer.diagnostics) == 2


def test_suppress_all(catalog, table):
    engine, consumer = _engine(catalog, table, suppress_all=True)

    assert not engine.report(catalog.id_of("err_undeclared")).arg("x").emit()
    assert consumer.diagnostics == []
    assert not engine.error_occurred


def test_forced_emission_bypasses_suppression(catalog, table):
    engine, consumer = _engine(catalog, table, suppress_all=True)

    assert engine.report(catalog.id_of("err_undeclared")).arg("x").emit(force=True)
    assert not engine.report(catalog.id_of("warn_shadow")).emit(force=True)

    assert consumer.messages() == ["use of undeclared identifier x"]


def test_delayed_diagnostic_follows_the_current_one(engine, consumer, catalog):
    few_args = catalog.id_of("err_too_few_args")

    engine.set_delayed(few_args, "2", "1")
    engine.set_delayed(catalog.id_of("err_undeclared"), "ignored", "")
    assert consumer.diagnostics == []
    assert engine.has_delayed()

    engine.report(catalog.id_of("warn_unused_var")).arg("x").emit()

    assert consumer.messages() == [
        "unused variable x",
        "too few arguments to function call, expected 2, have 1",
    ]
    assert not engine.has_delayed()


def test_forced_emission_keeps_delayed_diagnostic(engine, consumer, catalog):
    engine.set_delayed(catalog.id_of("err_too_few_args"), "2", "1")

    engine.report(catalog.id_of("warn_unused_var")).arg("x").emit(force=True)

    assert consumer.messages() == ["unused variable x"]
    assert engine.has_delayed()


def test_report_stored_replays_without_resolution(catalog, table):
    first, first_consumer = _engine(catalog, table)
    first.report(catalog.id_of("warn_unused_var")).arg("x").emit()
    stored = first_consumer.diagnostics[0]

    second, second_consumer = _engine(catalog, table, ignore_all_warnings=True)
    second.report_stored(stored)

    assert second_consumer.diagnostics == [stored]
    assert second.num_warnings == 1


def test_report_stored_respects_in_flight_guard(engine, catalog):
    engine.report(catalog.id_of("warn_unused_var"))

    with pytest.raises(InternalCompilerError, match=r"\[ICE-5010\]"):
        engine.report_stored(StoredDiagnostic(1, Severity.ERROR, "x"))


def test_uncounted_consumer(catalog, table):
    engine = DiagnosticsEngine(catalog, IgnoringDiagnosticConsumer(), locations=table)

    assert engine.report(catalog.id_of("err_undeclared")).arg("x").emit()
    assert engine.num_errors == 0
    assert engine.error_occurred


def test_reset_clears_counts_flags_and_history(engine, consumer, catalog, table):
    warn = catalog.id_of("warn_unused_var")
    engine.set_severity(warn, Severity.ERROR, table.location(1, 10))
    engine.push_scope()
    engine.report(catalog.id_of("err_undeclared")).arg("x").emit()
    engine.set_delayed(catalog.id_of("err_too_few_args"))

    engine.reset()

    assert engine.num_errors == 0 and engine.num_warnings == 0
    assert not (engine.error_occurred or engine.unrecoverable_error_occurred or engine.fatal_error_occurred)
    assert not engine.has_delayed()
    assert engine.scope_depth == 0
    assert engine.effective_severity(warn, table.location(1, 20)) == Severity.WARNING
    assert engine.state_map.files == {}


def test_reset_reapplies_command_line_toggles(catalog, table):
    engine, _ = _engine(catalog, table, warnings_as_errors=True)
    warn = catalog.id_of("warn_unused_var")
    engine.set_warnings_as_errors(False)
    assert engine.effective_severity(warn) == Severity.WARNING

    engine.reset()

    assert engine.effective_severity(warn) == Severity.ERROR
