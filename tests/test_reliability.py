import random
from datetime import datetime, timezone

import pytest

from reliability import SourceReliabilityTracker, next_reliability

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_steps_and_clamps():
    assert next_reliability(0.5, True) == 0.51
    assert next_reliability(0.5, False) == 0.45
    assert next_reliability(1.0, True) == 1.0
    assert next_reliability(0.02, False) == 0.0


def test_reliability_stays_in_bounds_for_any_sequence():
    rng = random.Random(7)
    value = 0.5
    for _ in range(2000):
        value = next_reliability(value, rng.random() < 0.5)
        assert 0.0 <= value <= 1.0


def test_five_failures_from_default(db, make_profile, make_source):
    source = make_source(make_profile())
    tracker = SourceReliabilityTracker(db)

    for _ in range(5):
        source = tracker.on_failure(db.get_source(source.id), NOW)

    stored = db.get_source(source.id)
    assert stored.reliability == pytest.approx(0.25)
    assert stored.last_checked == NOW


def test_success_persists_last_checked(db, make_profile, make_source):
    source = make_source(make_profile(), reliability=0.995)
    updated = SourceReliabilityTracker(db).on_success(source, NOW)

    assert updated.reliability == 1.0
    stored = db.get_source(source.id)
    assert stored.reliability == 1.0
    assert stored.last_checked == NOW
