#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from dc_consumer import (
    DiagnosticConsumer,
    ForwardingDiagnosticConsumer,
    IgnoringDiagnosticConsumer,
    StoringDiagnosticConsumer,
    TextDiagnosticPrinter,
)
from dc_context import DiagnosticContext, LogLevel
from dc_diagnostic import StoredDiagnostic
from dc_engine import DiagnosticsEngine
from dc_severity import Severity


def _diag(level: Severity, message: str = "m", location=None) -> StoredDiagnostic:
    return StoredDiagnostic(diag_id=1, level=level, message=message, location=location)


def test_base_consumer_counts_warnings_and_errors():
    consumer = DiagnosticConsumer()

    for level in (Severity.WARNING, Severity.ERROR, Severity.FATAL, Severity.NOTE, Severity.REMARK):
        consumer.handle_diagnostic(_diag(level))

    assert consumer.num_warnings == 1
    assert consumer.num_errors == 2

    consumer.clear()
    assert consumer.num_warnings == consumer.num_errors == 0


def test_ignoring_consumer_is_not_counted():
    consumer = IgnoringDiagnosticConsumer()

    consumer.handle_diagnostic(_diag(Severity.ERROR))

    assert not consumer.include_in_counts()
    assert consumer.num_errors == 0


def test_forwarding_consumer_delegates():
    target = StoringDiagnosticConsumer()
    forwarder = ForwardingDiagnosticConsumer(target)

    forwarder.handle_diagnostic(_diag(Severity.ERROR, "boom"))

    assert target.messages() == ["boom"]
    assert target.num_errors == 1
    assert forwarder.include_in_counts()

    forwarder.clear()
    assert target.diagnostics == [] and target.num_errors == 0


def test_forwarding_to_ignoring_consumer_is_not_counted(catalog):
    engine = DiagnosticsEngine(catalog, ForwardingDiagnosticConsumer(IgnoringDiagnosticConsumer()))

    engine.report(catalog.id_of("err_undeclared")).arg("x").emit()

    assert engine.num_errors == 0


def test_text_printer_logs_with_location(capsys, table):
    printer = TextDiagnosticPrinter(DiagnosticContext(log_level=LogLevel.WARNING), table)

    printer.handle_diagnostic(_diag(Severity.ERROR, "bad thing", table.location(1, 14)))
    printer.handle_diagnostic(_diag(Severity.WARNING, "odd thing"))

    err = capsys.readouterr().err
    assert err.splitlines() == ["main.c:3:1: error: bad thing", "warning: odd thing"]
    assert printer.num_errors == 1 and printer.num_warnings == 1


def test_text_printer_respects_log_level(capsys):
    printer = TextDiagnosticPrinter(DiagnosticContext(log_level=LogLevel.ERROR))

    printer.handle_diagnostic(_diag(Severity.WARNING, "quiet"))
    printer.handle_diagnostic(_diag(Severity.FATAL, "loud"))

    assert capsys.readouterr().err == "fatal error: loud\n"
