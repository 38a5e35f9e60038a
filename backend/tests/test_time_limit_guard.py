from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from quiz_engine.core.errors import TimeLimitExceededError
from quiz_engine.schemas.quiz_config import QuizDefinition
from quiz_engine.services.time_limit_guard import as_utc, check_within_limit, deadline_for


T0 = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


def _quiz(timer):
    return QuizDefinition.model_validate({"id": "1", "pages": [], "globalTimerSeconds": timer})


@pytest.mark.parametrize("elapsed", [0, 30, 59.999, 60])
def test_within_limit_including_boundary(elapsed):
    sub = SimpleNamespace(id=1, started_at=T0)
    check_within_limit(sub, _quiz(60), T0 + timedelta(seconds=elapsed))


@pytest.mark.parametrize("elapsed", [60.001, 61, 120])
def test_past_limit_fails(elapsed):
    sub = SimpleNamespace(id=1, started_at=T0)
    with pytest.raises(TimeLimitExceededError) as exc:
        check_within_limit(sub, _quiz(60), T0 + timedelta(seconds=elapsed))
    assert exc.value.details["limit_seconds"] == 60


@pytest.mark.parametrize("timer", [None, 0, -5])
def test_untimed_quiz_never_fails(timer):
    sub = SimpleNamespace(id=1, started_at=T0)
    check_within_limit(sub, _quiz(timer), T0 + timedelta(days=3))


def test_naive_started_at_is_treated_as_utc():
    sub = SimpleNamespace(id=1, started_at=T0.replace(tzinfo=None))
    check_within_limit(sub, _quiz(60), T0 + timedelta(seconds=60))
    with pytest.raises(TimeLimitExceededError):
        check_within_limit(sub, _quiz(60), T0 + timedelta(seconds=61))


def test_deadline_for():
    assert deadline_for(T0, _quiz(90)) == T0 + timedelta(seconds=90)
    assert deadline_for(T0.replace(tzinfo=None), _quiz(90)) == T0 + timedelta(seconds=90)
    assert deadline_for(T0, _quiz(None)) is None


def test_as_utc_converts_other_zones():
    plus_two = timezone(timedelta(hours=2))
    assert as_utc(datetime(2026, 3, 1, 11, 0, tzinfo=plus_two)) == T0
