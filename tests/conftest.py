#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from dc_arguments import ArgumentStore
from dc_catalog import DiagnosticCatalog
from dc_consumer import StoringDiagnosticConsumer
from dc_engine import DiagnosticsEngine
from dc_location import SourceFileTable
from dc_stringify import QuotingStringifier

CATALOG_DATA = {
    "groups": {
        "all": ["unused", "conversion"],
        "unused": [],
        "conversion": [],
        "pedantic": [],
    },
    "diagnostics": [
        {"name": "err_undeclared", "class": "error",
         "template": "use of undeclared identifier %0"},
        {"name": "err_too_few_args", "class": "error",
         "template": "too few arguments to function call, expected %0, have %1"},
        {"name": "warn_unused_var", "class": "warning",
         "template": "unused variable %0", "groups": ["unused"]},
        {"name": "warn_unused_param", "class": "warning",
         "template": "unused parameter %0", "groups": ["unused"]},
        {"name": "warn_conversion", "class": "warning",
         "template": "implicit conversion from %0 to %1", "groups": ["conversion"]},
        {"name": "warn_shadow", "class": "warning", "severity": "ignored",
         "template": "declaration shadows a local variable"},
        {"name": "ext_gnu_stmt_expr", "class": "extension",
         "template": "use of GNU statement expression extension", "groups": ["pedantic"]},
        {"name": "note_declared_here", "class": "note",
         "template": "%0 declared here"},
        {"name": "remark_inlined", "class": "remark",
         "template": "%0 inlined into %1", "groups": ["pass"]},
    ],
}


@pytest.fixture
def catalog_data() -> dict:
    return json.loads(json.dumps(CATALOG_DATA))


@pytest.fixture
def catalog(catalog_data) -> DiagnosticCatalog:
    return DiagnosticCatalog.from_dict(catalog_data)


@pytest.fixture
def catalog_file(tmp_path: Path, catalog_data) -> Path:
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(catalog_data), encoding="utf-8")
    return path


@pytest.fixture
def table() -> SourceFileTable:
    """A table with 'main.c' (file 1) of twenty short lines."""
    table = SourceFileTable()
    table.add_file("main.c", "int x;\n" * 20)
    return table


@pytest.fixture
def consumer() -> StoringDiagnosticConsumer:
    return StoringDiagnosticConsumer()


@pytest.fixture
def engine(catalog, consumer, table) -> DiagnosticsEngine:
    return DiagnosticsEngine(catalog, consumer, locations=table, stringifier=QuotingStringifier())


@pytest.fixture
def make_args():
    """Build an ArgumentStore from Python values.

    Usage:
        def test_something(make_args):
            args = make_args("foo", 2)
    """

    def _make(*values) -> ArgumentStore:
        store = ArgumentStore()
        for value in values:
            store.add_value(value)
        return store

    return _make
