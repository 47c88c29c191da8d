from datetime import datetime, timedelta, timezone

import pytest

from cardsmith.repositories.generation_logs import GenerationLogRepository
from cardsmith.services.quota import DAILY_LIMIT, QuotaTracker

LAST_SECOND = datetime(2026, 3, 14, 23, 59, 59, tzinfo=timezone.utc)
MIDNIGHT = datetime(2026, 3, 15, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def quota(session):
    return QuotaTracker(GenerationLogRepository(session))


def test_fresh_user_has_full_allowance(quota, user_id):
    usage = quota.usage(user_id, LAST_SECOND)

    assert usage.used_today == 0
    assert usage.remaining == DAILY_LIMIT
    assert usage.reset_at == MIDNIGHT


def test_allowance_resets_at_utc_midnight(quota, session, user_id):
    log = quota.record_usage(user_id, 50, LAST_SECOND)
    session.commit()

    assert log.cards_count == 50
    assert quota.remaining(user_id, LAST_SECOND) == 0
    assert quota.remaining(user_id, MIDNIGHT) == 50


def test_window_follows_utc_not_local_offset(quota, session, user_id):
    # 01:00 at UTC+02:00 is still 23:00 UTC the previous day
    local = datetime(2026, 3, 15, 1, 0, tzinfo=timezone(timedelta(hours=2)))
    quota.record_usage(user_id, 20, local)
    session.commit()

    assert quota.usage(user_id, LAST_SECOND).used_today == 20
    assert quota.usage(user_id, MIDNIGHT).used_today == 0


def test_partial_grant_when_request_exceeds_remaining(quota, session, user_id):
    quota.record_usage(user_id, 45, LAST_SECOND)
    log = quota.record_usage(user_id, 10, LAST_SECOND)
    session.commit()

    assert log.cards_count == 5
    assert quota.remaining(user_id, LAST_SECOND) == 0


def test_nothing_written_when_exhausted(quota, session, user_id):
    quota.record_usage(user_id, 50, LAST_SECOND)
    session.commit()

    assert quota.record_usage(user_id, 1, LAST_SECOND) is None
    session.commit()
    assert quota.usage(user_id, LAST_SECOND).used_today == 50


def test_remaining_never_negative(session, user_id):
    # ledger written under a higher limit, read under a lower one
    GenerationLogRepository(session).add(user_id, 50, LAST_SECOND)
    session.commit()
    tracker = QuotaTracker(GenerationLogRepository(session), daily_limit=30)

    usage = tracker.usage(user_id, LAST_SECOND)
    assert usage.used_today == 50
    assert usage.remaining == 0


def test_usage_is_per_user(quota, session, user_id, other_user_id):
    quota.record_usage(user_id, 30, LAST_SECOND)
    session.commit()

    assert quota.remaining(other_user_id, LAST_SECOND) == 50


def test_zero_count_records_nothing(quota, user_id):
    assert quota.record_usage(user_id, 0, LAST_SECOND) is None
