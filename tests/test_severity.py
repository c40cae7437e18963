#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from dc_severity import DiagnosticMapping, DiagState, Severity, make_user_mapping


def test_severity_order_and_spelling():
    assert Severity.IGNORED < Severity.NOTE < Severity.REMARK < Severity.WARNING < Severity.ERROR < Severity.FATAL
    assert Severity.FATAL.spelling == "fatal error"
    assert Severity.WARNING.spelling == "warning"


def test_user_mapping_flags():
    mapping = make_user_mapping(Severity.ERROR, is_pragma=True)

    assert mapping.is_user and mapping.is_pragma
    assert not mapping.upgraded_from_warning


def test_copy_is_private():
    state = DiagState(warnings_as_errors=True)
    state.set_mapping(4, DiagnosticMapping(Severity.WARNING))
    state.retain()
    state.retain()

    copy = state.copy()
    copy.get_mapping(4).severity = Severity.ERROR

    assert state.get_mapping(4).severity == Severity.WARNING
    assert copy.warnings_as_errors
    assert copy.refs == 0
    assert state.is_shared and not copy.is_shared


def test_release_never_goes_negative():
    state = DiagState()
    state.release()
    state.retain()

    assert state.refs == 1
    assert not state.is_shared
    assert state.get_mapping(1) is None
