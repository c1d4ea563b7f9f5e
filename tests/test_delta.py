"""Tests for the change-delta driver."""

import pytest

from funcsync.sync.delta import (
    Added,
    BuildKind,
    Changed,
    ChangeKind,
    Removed,
    SyncBuilder,
    dispatch,
    make_event,
)

ADD = """/**
 * @copyTo lib/b.js
 */
function add(a, b) {
  return a + b;
}
"""


@pytest.fixture
def builder(engine):
    return SyncBuilder(engine)


@pytest.fixture
def project(files):
    files.write("/web/src/a.js", ADD)
    files.write("/web/lib/b.js", "var x = 1;\n")
    return files


def test_events_are_tagged_variants():
    assert Added("/web/a.js").kind is ChangeKind.ADDED
    assert Changed("/web/a.js").kind is ChangeKind.CHANGED
    assert Removed("/web/a.js").kind is ChangeKind.REMOVED
    assert make_event("removed", "/web/a.js") == Removed("/web/a.js")
    assert Added("/web/a.js") != Changed("/web/a.js")


def test_added_and_changed_are_handled_alike(engine, project):
    assert dispatch(engine, Added("/web/src/a.js")).written == ["/web/lib/b.js"]

    project.write("/web/src/a.js", ADD.replace("a + b", "b + a"))
    assert dispatch(engine, Changed("/web/src/a.js")).written == ["/web/lib/b.js"]


def test_full_build_visits_every_managed_file(builder, project):
    project.write("/web/node_modules/dep/index.js", ADD)

    report = builder.build(BuildKind.FULL)

    assert report.success
    assert report.kind is BuildKind.FULL
    assert sorted(report.processed) == ["/web/lib/b.js", "/web/src/a.js"]
    assert report.written == ["/web/lib/b.js"]
    assert "@generatedFrom /web/src/a.js" in project.read("/web/lib/b.js")


def test_incremental_without_delta_falls_back_to_full_build(builder, project):
    report = builder.build(BuildKind.INCREMENTAL, None)

    assert report.kind is BuildKind.FULL
    assert len(report.processed) == 2


def test_incremental_build_processes_delta_in_order(builder, project):
    builder.build(BuildKind.FULL)
    project.delete("/web/src/a.js")

    report = builder.build(
        BuildKind.INCREMENTAL, [Changed("/web/lib/b.js"), Removed("/web/src/a.js")]
    )

    assert report.processed == ["/web/lib/b.js", "/web/src/a.js"]
    assert report.removed_functions == 1
    # the replica was still present when b.js was validated
    assert report.markers == 1
    assert project.read("/web/lib/b.js") == "var x = 1;\n"


def test_failure_on_one_file_does_not_stop_the_build(builder, project):
    project.write("/web/src/broken.js", "function broken( {\n")

    report = builder.build(BuildKind.FULL)

    assert not report.success
    assert [failure.path for failure in report.failures] == ["/web/src/broken.js"]
    assert report.failures[0].message == "Failed to build."
    assert report.written == ["/web/lib/b.js"]


def test_progress_callback_can_cancel(builder, project):
    seen = []

    def progress(done, total, path):
        seen.append((done, total, path))
        return done < 1

    report = builder.build(BuildKind.FULL, progress=progress)

    assert report.cancelled
    assert len(report.processed) == 1
    assert seen[0] == (0, 2, "/web/lib/b.js")


def test_report_to_dict(builder, project):
    result = builder.build(BuildKind.FULL).to_dict()

    assert result["success"] is True
    assert result["kind"] == "full"
    assert result["processed"] == 2
    assert result["written"] == ["/web/lib/b.js"]
    assert result["failures"] == []
    assert result["duration_seconds"] is not None
