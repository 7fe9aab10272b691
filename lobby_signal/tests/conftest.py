"""
Shared fixtures for the lobby_signal test suite.

Run tests:
    pytest lobby_signal/tests -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from lobby_signal.config import PrivacyConfig, ScoringConfig
from lobby_signal.models import InterestRecord, PledgeRecord

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed clock; the engine never reads the wall clock."""
    return NOW


@pytest.fixture
def scoring():
    return ScoringConfig()


@pytest.fixture
def privacy():
    return PrivacyConfig()


@pytest.fixture
def make_record():
    """Factory for InterestRecord with sensible defaults."""
    def _make(user_id="user-1", intensity="HIGH", days_ago=0, verified=True, region="US", reason=None):
        return InterestRecord(
            user_id=user_id,
            intensity=intensity,
            created_at=NOW - timedelta(days=days_ago),
            verified=verified,
            region=region,
            reason=reason,
        )
    return _make


@pytest.fixture
def make_pledge():
    """Factory for PledgeRecord with sensible defaults."""
    def _make(user_id="user-1", amount=50.0, status="PAID", currency="USD", days_ago=0):
        return PledgeRecord(
            user_id=user_id,
            amount=amount,
            currency=currency,
            status=status,
            created_at=NOW - timedelta(days=days_ago),
        )
    return _make
