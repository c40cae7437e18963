#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

"""
Cross-run diagnostic aggregation.

Several compilation runs (each with its own engine) feed one
DiagnosticAggregator; identical diagnostics are merged and the runs that
reported them are listed together:

    run1, run2:
    main.c:5:1: error: bad

Two diagnostics are the same when message and line match. File and column
are not compared: the first record's file and column are kept.
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from dc_consumer import DiagnosticConsumer
from dc_diagnostic import StoredDiagnostic
from dc_location import LocationResolver

NO_ERRORS_REPORT = "No compiler instance reported any errors!\n"


@dataclass
class AggregatedDiagnostic:
    filename: str
    line: int
    column: int
    message: str
    labels: List[str] = field(default_factory=list)

    @property
    def key(self) -> Tuple[str, int]:
        return self.message, self.line

    def format(self) -> str:
        return (f"{', '.join(self.labels)}:\n"
                f"{self.filename}:{self.line}:{self.column}: error: {self.message}\n")


class DiagnosticAggregator:
    """
    Merges diagnostics from several runs.

    record() may be called from several threads; render() only after all
    producers are done.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: List[AggregatedDiagnostic] = []
        self._by_key: Dict[Tuple[str, int], AggregatedDiagnostic] = {}

    def record(self, label: str, filename: str, line: int, column: int, message: str) -> None:
        with self._lock:
            entry = self._by_key.get((message, line))
            if entry is None:
                entry = AggregatedDiagnostic(filename=filename, line=line, column=column, message=message)
                self._by_key[entry.key] = entry
                self._entries.append(entry)
            entry.labels.append(label)

    @property
    def entries(self) -> List[AggregatedDiagnostic]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def render(self) -> str:
        if not self._entries:
            return NO_ERRORS_REPORT
        return "".join(e.format() for e in self._entries)


class AggregatingConsumer(DiagnosticConsumer):
    """Feeds one run's diagnostics into a shared aggregator under `label`."""

    def __init__(self, aggregator: DiagnosticAggregator, label: str,
                 locations: Optional[LocationResolver] = None) -> None:
        super().__init__()
        self.aggregator = aggregator
        self.label = label
        self.locations = locations

    def handle_diagnostic(self, diag: StoredDiagnostic) -> None:
        super().handle_diagnostic(diag)
        filename, line, column = "", 0, 0
        if diag.location is not None and self.locations is not None:
            filename, line, column = self.locations.spelling(diag.location)
        self.aggregator.record(self.label, filename, line, column, diag.message)
