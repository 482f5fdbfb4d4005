"""Tests for review_insight.history.ledger."""

import pytest

from review_insight.exceptions import MissingCommitDateError
from review_insight.history.ledger import date_ledger
from review_insight.history.models import LineRecord, LineStatus

C1, C2 = "1" * 40, "2" * 40


class TestDateLedger:
    def test_lifetime_is_death_minus_birth(self):
        records = [LineRecord("f", 0, C1, C2, LineStatus.DIED)]
        (dated,) = date_ledger(records, {C1: 1000, C2: 4600})
        assert dated.birth_ts == 1000
        assert dated.death_ts == 4600
        assert dated.lifetime == 3600

    def test_live_line_has_no_lifetime(self):
        (dated,) = date_ledger([LineRecord("f", 0, C1, None, LineStatus.LIVE)], {C1: 1000})
        assert dated.death_ts is None
        assert dated.lifetime is None

    def test_missing_birth_commit_is_fatal(self):
        with pytest.raises(MissingCommitDateError) as exc:
            date_ledger([LineRecord("f", 0, C1, None, LineStatus.LIVE)], {})
        assert exc.value.role == "birth"
        assert exc.value.sha == C1

    def test_missing_death_commit_is_fatal(self):
        with pytest.raises(MissingCommitDateError) as exc:
            date_ledger([LineRecord("f", 0, C1, C2, LineStatus.DIED)], {C1: 1000})
        assert exc.value.role == "death"

    def test_clock_skew_clamps_to_zero(self):
        (dated,) = date_ledger([LineRecord("f", 0, C1, C2, LineStatus.DIED)], {C1: 5000, C2: 4000})
        assert dated.lifetime == 0

    def test_to_dict(self):
        (dated,) = date_ledger([LineRecord("f", 3, C1, C2, LineStatus.DIED)], {C1: 10, C2: 25})
        assert dated.to_dict() == {
            "path": "f",
            "line_id": 3,
            "birth_commit": C1,
            "death_commit": C2,
            "status": "died",
            "birth_ts": 10,
            "death_ts": 25,
            "lifetime": 15,
        }
