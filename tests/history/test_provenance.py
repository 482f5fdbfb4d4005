"""Tests for review_insight.history.provenance."""

from review_insight.history.models import ChangeKind, DiffHunk, LineStatus
from review_insight.history.provenance import (
    LineProvenanceTracker,
    group_lineages,
    track_lines,
)


def by_birth(records):
    return {(r.path, r.birth_commit, r.status): r for r in records}


class TestLineLifecycle:
    """Birth and death of lines through single-parent history."""

    def test_added_then_removed(self, linear_commits, sha, hunk, file_diff):
        """One line born in C1 and removed in C2 gives one died record."""
        c1, c2 = sha(1), sha(2)
        diffs = [
            file_diff(c1, "f", hunk(c1, "f", 0, [], 1, ["L"]), kind=ChangeKind.ADDED),
            file_diff(c2, "f", hunk(c2, "f", 1, ["L"], 0, []), parent=c1),
        ]
        result = track_lines(diffs, linear_commits)

        assert len(result.records) == 1
        record = result.records[0]
        assert (record.path, record.birth_commit, record.death_commit) == ("f", c1, c2)
        assert record.status == LineStatus.DIED

    def test_replacement_and_insertion(self, linear_commits, sha, hunk, file_diff):
        c1, c2, c3 = sha(1), sha(2), sha(3)
        diffs = [
            file_diff(c1, "f", hunk(c1, "f", 0, [], 1, ["a", "b", "c"])),
            file_diff(c2, "f", hunk(c2, "f", 2, ["b"], 2, ["B"]), parent=c1),
            file_diff(c3, "f", hunk(c3, "f", 0, [], 1, ["top"]), parent=c2),
        ]
        result = track_lines(diffs, linear_commits)

        live = [r for r in result.records if r.status == LineStatus.LIVE]
        died = [r for r in result.records if r.status == LineStatus.DIED]
        assert [(r.line_id, r.birth_commit) for r in live] == [
            (0, c1), (2, c1), (3, c2), (4, c3),
        ]
        assert [(r.line_id, r.birth_commit, r.death_commit) for r in died] == [(1, c1, c2)]

    def test_later_hunks_use_running_offset(self, linear_commits, sha, hunk, file_diff):
        """Hunk positions refer to the old file; earlier hunks shift them."""
        c1, c2 = sha(1), sha(2)
        lines = ["l1", "l2", "l3", "l4", "l5"]
        diffs = [
            file_diff(c1, "f", hunk(c1, "f", 0, [], 1, lines)),
            file_diff(
                c2, "f",
                hunk(c2, "f", 2, ["l2"], 2, ["x", "y"]),
                hunk(c2, "f", 5, ["l5"], 6, ["z"]),
                parent=c1,
            ),
        ]
        result = track_lines(diffs, linear_commits)

        died = sorted(r.line_id for r in result.records if r.status == LineStatus.DIED)
        assert died == [1, 4]
        assert result.live == 6

    def test_file_deletion_kills_remaining_lines(self, linear_commits, sha, hunk, file_diff):
        c1, c2 = sha(1), sha(2)
        diffs = [
            file_diff(c1, "f", hunk(c1, "f", 0, [], 1, ["a", "b"])),
            file_diff(c2, "f", kind=ChangeKind.REMOVED, parent=c1),
        ]
        result = track_lines(diffs, linear_commits)
        assert result.died == 2
        assert result.live == 0

    def test_every_born_line_has_exactly_one_final_record(self, linear_commits, sha, hunk, file_diff):
        c1, c2, c3 = sha(1), sha(2), sha(3)
        diffs = [
            file_diff(c1, "f", hunk(c1, "f", 0, [], 1, ["a", "b", "c"])),
            file_diff(c2, "f", hunk(c2, "f", 1, ["a"], 1, ["A"]), parent=c1),
            file_diff(c3, "f", hunk(c3, "f", 1, ["A", "b"], 0, []), parent=c2),
        ]
        result = track_lines(diffs, linear_commits)
        ids = [r.line_id for r in result.records]
        assert sorted(ids) == sorted(set(ids)) == [0, 1, 2, 3]


class TestMergesAndRepeats:
    def test_diff_against_second_parent_is_ignored(self, make_commit, sha, hunk, file_diff):
        """Content a merge brings in is born once, against the first parent."""
        commits = [
            make_commit(1, 1000),
            make_commit(2, 2000, parents=(sha(1), "e" * 40)),
        ]
        c1, c2 = sha(1), sha(2)
        diffs = [
            file_diff(c1, "f", hunk(c1, "f", 0, [], 1, ["a"])),
            file_diff(c2, "f", hunk(c2, "f", 1, [], 2, ["side"]), parent="e" * 40),
        ]
        result = track_lines(diffs, commits)
        assert result.skipped_diffs == 1
        assert [r.birth_commit for r in result.records] == [c1]

    def test_repeated_diff_is_applied_once(self, linear_commits, sha, hunk, file_diff):
        c1 = sha(1)
        diff = file_diff(c1, "f", hunk(c1, "f", 0, [], 1, ["a"]))
        tracker = LineProvenanceTracker()
        tracker.apply(diff)
        tracker.apply(diff)
        result = tracker.finish()
        assert len(result.records) == 1
        assert result.skipped_diffs == 1

    def test_commits_outside_history_are_skipped(self, linear_commits, sha, hunk, file_diff):
        stray = "d" * 40
        diffs = [file_diff(stray, "f", hunk(stray, "f", 0, [], 1, ["a"]))]
        result = track_lines(diffs, linear_commits)
        assert result.records == []
        assert result.skipped_diffs == 1


class TestBinariesAndRenames:
    def test_binary_files_are_excluded(self, linear_commits, sha, hunk, file_diff):
        c1, c2 = sha(1), sha(2)
        diffs = [
            file_diff(c1, "logo.png", DiffHunk.binary_marker(c1, "logo.png")),
            file_diff(c1, "f", hunk(c1, "f", 0, [], 1, ["a"])),
        ]
        result = track_lines(diffs, linear_commits)
        assert result.binaries == {"logo.png"}
        assert {r.path for r in result.records} == {"f"}

    def test_file_turning_binary_drops_its_history(self, linear_commits, sha, hunk, file_diff):
        c1, c2 = sha(1), sha(2)
        diffs = [
            file_diff(c1, "data", hunk(c1, "data", 0, [], 1, ["text"])),
            file_diff(c2, "data", DiffHunk.binary_marker(c2, "data"), parent=c1),
        ]
        result = track_lines(diffs, linear_commits)
        assert result.records == []
        assert result.binaries == {"data"}

    def test_rename_carries_lines(self, linear_commits, sha, hunk, file_diff):
        c1, c2, c3 = sha(1), sha(2), sha(3)
        diffs = [
            file_diff(c1, "a.txt", hunk(c1, "a.txt", 0, [], 1, ["one", "two"])),
            file_diff(c2, "b.txt", kind=ChangeKind.RENAMED, old_path="a.txt", parent=c1),
            file_diff(c3, "b.txt", hunk(c3, "b.txt", 1, ["one"], 0, []), parent=c2),
        ]
        result = track_lines(diffs, linear_commits)

        records = by_birth(result.records)
        assert set(r.path for r in result.records) == {"b.txt"}
        assert records[("b.txt", c1, LineStatus.DIED)].death_commit == c3
        assert records[("b.txt", c1, LineStatus.LIVE)].line_id == 1

    def test_rename_groups_paths_into_one_lineage(self, sha, file_diff):
        diffs = [
            file_diff(sha(1), "a"),
            file_diff(sha(2), "b", kind=ChangeKind.RENAMED, old_path="a"),
            file_diff(sha(3), "c"),
        ]
        lineages = group_lineages(diffs)
        assert sorted(sorted(d.path for d in lineage) for lineage in lineages) == [
            ["a", "b"], ["c"],
        ]


class TestUntrackedContent:
    def test_removal_of_unknown_line_is_counted(self, linear_commits, sha, hunk, file_diff):
        """Lines that predate the replayed history cannot die in the ledger."""
        c2 = sha(2)
        diffs = [file_diff(c2, "f", hunk(c2, "f", 3, ["old"], 2, []), parent=sha(1))]
        result = track_lines(diffs, linear_commits)
        assert result.records == []
        assert result.untracked_removals == 1

    def test_undecodable_added_line_is_not_tracked(self, linear_commits, sha, hunk, file_diff):
        c1, c2 = sha(1), sha(2)
        diffs = [
            file_diff(c1, "f", hunk(c1, "f", 0, [], 1, ["a", None, "c"])),
            file_diff(c2, "f", hunk(c2, "f", 2, [None], 1, []), parent=c1),
        ]
        result = track_lines(diffs, linear_commits)
        assert result.live == 2
        assert result.untracked_removals == 1
