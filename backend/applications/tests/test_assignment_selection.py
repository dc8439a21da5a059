"""
Unit tests for handler selection (``applications.assignment``).

The selectors work on an in-memory pool plus a workload snapshot, so
these tests need no database.
"""

from __future__ import annotations

from datetime import datetime, timezone as dt_timezone
from types import SimpleNamespace

import pytest

from applications.assignment import (
    normalize_department,
    select_escalation_handler,
    select_handler,
)

_JOINED = datetime(2024, 1, 1, tzinfo=dt_timezone.utc)


def _handler(pk, department="Health", *, sub_department="", tier=1, total=0, joined=_JOINED):
    return SimpleNamespace(
        pk=pk,
        department=department,
        sub_department=sub_department,
        hierarchy_level=tier,
        total_assigned_count=total,
        date_joined=joined,
    )


# ── normalize_department ─────────────────────────────────────────────

@pytest.mark.parametrize(
    "value, expected",
    [
        ("Health – Ministry of Health", "Health"),
        ("  Health  ", "Health"),
        ("Health", "Health"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_department(value, expected):
    assert normalize_department(value) == expected


def test_normalize_department_custom_separator():
    assert normalize_department("Police / Traffic", separator="/") == "Police"


# ── select_handler ───────────────────────────────────────────────────

def test_least_active_workload_wins():
    h1 = _handler(1, total=10)
    h2 = _handler(2, total=3)
    chosen = select_handler("Health", None, [h1, h2], workloads={1: 2, 2: 0})
    assert chosen is h2


def test_lifetime_count_breaks_workload_tie():
    h1 = _handler(1, total=10)
    h2 = _handler(2, total=3)
    chosen = select_handler("Health", None, [h1, h2], workloads={1: 0, 2: 0})
    assert chosen is h2


def test_full_tie_is_deterministic():
    h1 = _handler(7)
    h2 = _handler(3)
    workloads = {7: 1, 3: 1}
    first = select_handler("Health", None, [h1, h2], workloads=workloads)
    second = select_handler("Health", None, [h2, h1], workloads=workloads)
    assert first is second is h2


def test_earlier_join_date_breaks_count_tie():
    older = _handler(9, joined=datetime(2023, 1, 1, tzinfo=dt_timezone.utc))
    newer = _handler(1)
    assert select_handler("Health", None, [newer, older], workloads={}) is older


def test_long_form_department_matches_short_form():
    h = _handler(1, department="Health – Ministry of Health")
    assert select_handler("Health", None, [h], workloads={}) is h
    assert select_handler("Health – Ministry of Health", None, [_handler(2)], workloads={}).pk == 2


def test_department_match_is_case_sensitive():
    assert select_handler("health", None, [_handler(1)], workloads={}) is None


def test_other_departments_are_never_selected():
    pool = [_handler(1, "Police"), _handler(2, "Transport")]
    assert select_handler("Health", None, pool, workloads={}) is None


def test_missing_department_selects_nobody():
    assert select_handler("", None, [_handler(1)], workloads={}) is None
    assert select_handler(None, None, [_handler(1)], workloads={}) is None


def test_empty_pool_returns_none():
    assert select_handler("Health", None, [], workloads={}) is None


def test_sub_department_is_preferred():
    general = _handler(1, total=0)
    specialist = _handler(2, sub_department="Licensing", total=50)
    chosen = select_handler("Health", "Licensing", [general, specialist], workloads={1: 0, 2: 5})
    assert chosen is specialist


def test_unmatched_sub_department_falls_back_to_department():
    h1 = _handler(1, sub_department="Licensing", total=4)
    h2 = _handler(2, total=1)
    chosen = select_handler("Health", "Inspections", [h1, h2], workloads={})
    assert chosen is h2


# ── select_escalation_handler ────────────────────────────────────────

def test_escalation_picks_lowest_higher_tier():
    tier1 = _handler(1, tier=1)
    tier3 = _handler(2, tier=3)
    tier2 = _handler(3, tier=2, total=99)
    chosen = select_escalation_handler("Health", 1, [tier1, tier3, tier2], workloads={3: 10})
    assert chosen is tier2


def test_escalation_requires_strictly_higher_tier():
    pool = [_handler(1, tier=2), _handler(2, tier=2)]
    assert select_escalation_handler("Health", 2, pool, workloads={}) is None


def test_escalation_stays_in_department():
    pool = [_handler(1, "Police", tier=5)]
    assert select_escalation_handler("Health", 1, pool, workloads={}) is None


def test_escalation_ties_within_tier_use_workload():
    busy = _handler(1, tier=2)
    idle = _handler(2, tier=2)
    chosen = select_escalation_handler("Health", 1, [busy, idle], workloads={1: 3, 2: 0})
    assert chosen is idle
