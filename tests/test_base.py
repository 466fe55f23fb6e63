"""Severity 테스트"""

import pytest

from analyzers.base import Severity


def test_from_string_maps_npm_labels():
    assert Severity.from_string("moderate") is Severity.MEDIUM
    assert Severity.from_string("CRITICAL") is Severity.CRITICAL
    assert Severity.from_string("unknown") is Severity.INFO


@pytest.mark.parametrize(
    "lower, higher",
    [
        (Severity.HIGH, Severity.CRITICAL),
        (Severity.MEDIUM, Severity.HIGH),
        (Severity.LOW, Severity.MEDIUM),
        (Severity.INFO, Severity.LOW),
    ],
)
def test_comparisons_follow_severity_order(lower, higher):
    assert lower < higher
    assert lower <= higher
    assert higher > lower
    assert higher >= lower
    assert not higher < lower


def test_sorting_uses_severity_order():
    ordered = sorted([Severity.CRITICAL, Severity.INFO, Severity.HIGH, Severity.LOW])

    assert ordered == [Severity.INFO, Severity.LOW, Severity.HIGH, Severity.CRITICAL]
