"""Tests for blake3 change tracking between builds."""

import json

import pytest

from funcsync.sync.delta import Added, Changed, Removed
from funcsync.sync.merkle_tree import ChangeTracker, IncrementalSyncSession


@pytest.fixture
def tracker(tmp_path):
    return ChangeTracker(tmp_path / "state")


def test_fresh_tracker_reports_everything_added(tracker, workspace, files):
    files.write("/web/a.js", "var a;\n")
    files.write("/web/b.js", "var b;\n")

    assert not tracker.has_state
    assert tracker.plan_delta(workspace) == [Added("/web/a.js"), Added("/web/b.js")]


def test_delta_after_commit(tracker, workspace, files):
    files.write("/web/a.js", "var a;\n")
    files.write("/web/b.js", "var b;\n")
    files.write("/web/c.js", "var c;\n")
    tracker.refresh(workspace)
    tracker.commit()

    files.write("/web/a.js", "var a = 2;\n")
    files.delete("/web/b.js")
    files.write("/web/d.js", "var d;\n")

    assert tracker.plan_delta(workspace) == [
        Changed("/web/a.js"),
        Added("/web/d.js"),
        Removed("/web/b.js"),
    ]


def test_state_survives_reload(tmp_path, workspace, files):
    files.write("/web/a.js", "var a;\n")
    tracker = ChangeTracker(tmp_path / "state")
    tracker.refresh(workspace)
    tracker.commit()

    reloaded = ChangeTracker(tmp_path / "state")

    assert reloaded.has_state
    assert reloaded.plan_delta(workspace) == []
    assert reloaded.get_stats()["tracked_files"] == 1


def test_corrupt_state_starts_fresh(tmp_path):
    state = tmp_path / "state"
    state.mkdir()
    (state / "sync_state.json").write_text("{not json")

    assert not ChangeTracker(state).has_state


def test_session_commits_on_success_and_skips_failed(tracker, workspace, files):
    files.write("/web/a.js", "var a;\n")
    files.write("/web/bad.js", "function broken( {\n")

    with IncrementalSyncSession(tracker, workspace) as session:
        assert len(session.plan()) == 2
        session.mark_failed(["/web/bad.js"])

    data = json.loads(tracker.state_file.read_text())
    assert list(data) == ["/web/a.js"]
    assert tracker.plan_delta(workspace) == [Added("/web/bad.js")]


def test_session_does_not_commit_on_error(tracker, workspace, files):
    files.write("/web/a.js", "var a;\n")

    with pytest.raises(RuntimeError):
        with IncrementalSyncSession(tracker, workspace):
            raise RuntimeError("boom")

    assert not tracker.state_file.exists()


def test_failed_removal_stays_in_next_delta(tracker, workspace, files):
    files.write("/web/a.js", "var a;\n")
    files.write("/web/b.js", "var b;\n")
    tracker.refresh(workspace)
    files.delete("/web/a.js")

    tracker.refresh(workspace, skip=["/web/a.js"])

    assert tracker.plan_delta(workspace) == [Removed("/web/a.js")]


def test_failed_existing_file_is_reported_as_added(tracker, workspace, files):
    files.write("/web/a.js", "var a;\n")
    tracker.refresh(workspace)

    tracker.refresh(workspace, skip=["/web/a.js"])

    assert tracker.plan_delta(workspace) == [Added("/web/a.js")]
