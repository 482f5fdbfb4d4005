"""Tests for ledger/attribution joins used by the statistics."""

from review_insight.history.models import LineRecord, LineStatus
from review_insight.metrics import label_lines, reviewed_file_overlap
from review_insight.review.attribution import AttributionTable
from review_insight.review.models import CommitLabel, ReviewLabel

C1, C2, C3 = "1" * 40, "2" * 40, "3" * 40


def test_label_lines_joins_on_birth_commit():
    records = [
        LineRecord("b.py", 0, C2, None, LineStatus.LIVE),
        LineRecord("a.py", 0, C1, None, LineStatus.LIVE),
        LineRecord("a.py", 1, C3, None, LineStatus.LIVE),
    ]
    table = AttributionTable(
        labels=[CommitLabel(C1, ReviewLabel.REVIEWED), CommitLabel(C2, ReviewLabel.UNREVIEWED)]
    )
    lines, unlabelled = label_lines(records, table)
    assert unlabelled == 1
    assert [(l.record.path, l.label.label) for l in lines] == [
        ("a.py", ReviewLabel.REVIEWED),
        ("b.py", ReviewLabel.UNREVIEWED),
    ]
    assert lines[0].groups == ("reviewed",)


def test_identical_birth_distributions_overlap_fully():
    records = [
        LineRecord("a.py", 0, C1, None, LineStatus.LIVE),
        LineRecord("a.py", 1, C2, None, LineStatus.LIVE),
    ]
    table = AttributionTable(
        labels=[CommitLabel(C1, ReviewLabel.REVIEWED), CommitLabel(C2, ReviewLabel.UNREVIEWED)]
    )
    lines, _ = label_lines(records, table)
    assert reviewed_file_overlap(lines)["weighted_jaccard"] == 1.0
