#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from typing import List, Optional

from dc_context import DiagnosticContext
from dc_diagnostic import StoredDiagnostic
from dc_location import LocationResolver
from dc_logger import log_error, log_warning
from dc_severity import Severity


class DiagnosticConsumer:
    """
    Sink for emitted diagnostics.

    The base class only keeps the warning/error tallies. Subclasses call
    super().handle_diagnostic() first and then do their own work.
    """

    def __init__(self) -> None:
        self.num_warnings = 0
        self.num_errors = 0

    def include_in_counts(self) -> bool:
        return True

    def handle_diagnostic(self, diag: StoredDiagnostic) -> None:
        if not self.include_in_counts():
            return
        if diag.level == Severity.WARNING:
            self.num_warnings += 1
        elif diag.level >= Severity.ERROR:
            self.num_errors += 1

    def clear(self) -> None:
        self.num_warnings = 0
        self.num_errors = 0

    def finish(self) -> None:
        pass


class IgnoringDiagnosticConsumer(DiagnosticConsumer):
    def include_in_counts(self) -> bool:
        return False

    def handle_diagnostic(self, diag: StoredDiagnostic) -> None:
        pass


class ForwardingDiagnosticConsumer(DiagnosticConsumer):
    """Hands everything to `target`, which also decides about counting."""

    def __init__(self, target: DiagnosticConsumer) -> None:
        super().__init__()
        self.target = target

    def include_in_counts(self) -> bool:
        return self.target.include_in_counts()

    def handle_diagnostic(self, diag: StoredDiagnostic) -> None:
        self.target.handle_diagnostic(diag)

    def clear(self) -> None:
        self.target.clear()

    def finish(self) -> None:
        self.target.finish()


class StoringDiagnosticConsumer(DiagnosticConsumer):
    def __init__(self) -> None:
        super().__init__()
        self.diagnostics: List[StoredDiagnostic] = []

    def handle_diagnostic(self, diag: StoredDiagnostic) -> None:
        super().handle_diagnostic(diag)
        self.diagnostics.append(diag)

    def messages(self) -> List[str]:
        return [d.message for d in self.diagnostics]

    def clear(self) -> None:
        super().clear()
        self.diagnostics.clear()


class TextDiagnosticPrinter(DiagnosticConsumer):
    """Logs the one-line header of every diagnostic."""

    def __init__(self, context: Optional[DiagnosticContext] = None,
                 locations: Optional[LocationResolver] = None) -> None:
        super().__init__()
        self.context = context or DiagnosticContext.default()
        self.locations = locations

    def handle_diagnostic(self, diag: StoredDiagnostic) -> None:
        super().handle_diagnostic(diag)
        text = diag.format(self.locations)
        if diag.level >= Severity.ERROR:
            log_error(self.context, text)
        else:
            log_warning(self.context, text)
