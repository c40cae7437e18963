#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import pytest

from dc_internal_error import ICELocation, InternalCompilerError, ice


def test_format_without_location():
    err = InternalCompilerError("boom")

    assert err.format() == "internal compiler error: [ICE-9999] boom"


def test_format_with_template_only():
    err = InternalCompilerError("boom", ICELocation(template="%0 is %select{a|b}1"))

    assert err.format() == "'%0 is %select{a|b}1': internal compiler error: [ICE-9999] boom"


def test_format_with_template_and_offset():
    err = InternalCompilerError("[ICE-2010] mismatched", ICELocation(template="%select{a", offset=8))

    assert err.format() == "'%select{a':8: internal compiler error: [ICE-2010] mismatched"


def test_ice_helper_raises_with_location():
    with pytest.raises(InternalCompilerError) as exc:
        ice("[ICE-1234] bad", "tmpl", 3)

    assert exc.value.loc == ICELocation(template="tmpl", offset=3)
    assert exc.value.message == "[ICE-1234] bad"


def test_ice_helper_without_template_has_no_location():
    with pytest.raises(InternalCompilerError) as exc:
        ice("[ICE-1234] bad")

    assert exc.value.loc is None
    assert isinstance(exc.value, RuntimeError)
