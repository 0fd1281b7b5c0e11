import pytest

from tracking.aggregator import AttentionAggregator, duration_weight
from tracking.fixations import FixationClassifier
from tracking.layout import DocumentLayout, Fixation, MappedPoint, Rect, Region
from tracking.regions import SpatialIndex
from tracking.session import GazeSession, TrackingMode

R1 = Region(1, "R1", Rect(0, 0, 100, 20), "first line")
R2 = Region(1, "R2", Rect(0, 30, 100, 20), "second line")

# within (10, 5) +/- 3 for 200 ms
DWELL_R1 = [(8, 4, 0), (12, 6, 40), (10, 3, 80), (11, 7, 120), (9, 5, 200)]


def _session(mode=TrackingMode.FIXATION):
    session = GazeSession(mode=mode, classifier=FixationClassifier(60, 150))
    session.load_document(DocumentLayout.stacked([(200, 100)]), {1: [R1, R2]})
    return session


def _feed(session, points, offset=0.0):
    return [f for f in (session.on_gaze(x, y, t + offset) for x, y, t in points) if f is not None]


def test_end_to_end_single_fixation():
    session = _session()
    fixations = _feed(session, DWELL_R1)
    assert len(fixations) == 1
    fix = fixations[0]
    assert fix.page == 1
    assert (fix.x, fix.y) == (pytest.approx(10), pytest.approx(5))

    stats = session.aggregator.region_stats
    assert (stats[(1, "R1")].count, stats[(1, "R1")].total_duration) == (1, 200)
    assert (stats[(1, "R2")].count, stats[(1, "R2")].total_duration) == (0, 0)
    assert session.aggregator.gaze_log[0].intensity == 2


def test_unmapped_fixation_never_attributes():
    session = _session()
    fixations = _feed(session, [(x + 500, y + 500, t) for x, y, t in DWELL_R1])
    assert len(fixations) == 1
    assert fixations[0].page is None
    assert all(stat.count == 0 for stat in session.aggregator.region_stats.values())
    assert session.aggregator.gaze_log[0].page is None


def test_whitespace_fixation_logged_without_region():
    session = _session()
    _feed(session, [(x, y + 20, t) for x, y, t in DWELL_R1])  # y ~ 25, between lines
    assert len(session.aggregator.fixations) == 1
    assert len(session.aggregator.gaze_log) == 1
    assert all(stat.count == 0 for stat in session.aggregator.region_stats.values())


def test_raw_mode_logs_every_sample():
    session = _session(TrackingMode.RAW)
    assert _feed(session, DWELL_R1 + [(900, 900, 300)]) == []
    log = session.aggregator.gaze_log
    assert len(log) == 6
    assert all(entry.intensity == 1 for entry in log)
    assert log[-1].page is None
    assert session.aggregator.fixations == []
    assert session.aggregator.region_stat(1, "R1").count == 0


def test_pause_drops_samples_but_keeps_window():
    session = _session()
    _feed(session, DWELL_R1[:2])
    session.pause()
    assert session.on_gaze(10, 5, 100) is None
    assert session.classifier.buffered == 2
    assert session.samples_dropped == 1
    session.resume()
    assert len(_feed(session, DWELL_R1[2:])) == 1


def test_resume_after_idle_gap_evicts_stale_samples():
    session = _session()
    _feed(session, DWELL_R1[:2])
    session.pause()
    session.resume()
    session.on_gaze(10, 5, 5000)
    assert session.classifier.buffered == 1


def test_samples_without_document_are_dropped():
    session = GazeSession()
    assert session.on_gaze(1, 1) is None
    assert session.get_statistics()['samples_dropped'] == 1


def test_missing_timestamp_uses_monotonic_clock():
    session = _session(TrackingMode.RAW)
    session.on_gaze(10, 5)
    assert len(session.aggregator.gaze_log) == 1


def test_reset_is_idempotent():
    session = _session()
    _feed(session, DWELL_R1)
    session.reset()
    first = session.aggregator.region_stats
    session.reset()
    assert session.aggregator.region_stats == first
    assert set(first) == {(1, "R1"), (1, "R2")}
    assert all(stat.count == 0 and stat.total_duration == 0 for stat in first.values())
    assert session.aggregator.gaze_log == []
    assert session.aggregator.fixations == []


def test_reload_page_orphans_old_stats():
    session = _session()
    _feed(session, DWELL_R1)
    session.load_page(1, [Region(1, "R1", Rect(0, 0, 100, 20), "rewrapped")])
    assert session.aggregator.region_stat(1, "R1").count == 0
    assert set(session.aggregator.region_stats) == {(1, "R1")}
    # the log keeps its history
    assert len(session.aggregator.gaze_log) == 1


def test_load_page_unknown_page():
    session = _session()
    with pytest.raises(ValueError):
        session.load_page(7, [])


def test_new_document_replaces_state():
    session = _session()
    _feed(session, DWELL_R1)
    session.load_document(DocumentLayout.stacked([(50, 50)]))
    assert session.aggregator.region_stats == {}
    assert session.aggregator.fixations == []
    assert session.get_statistics()['pages'] == 1


def test_set_mode_clears_window():
    session = _session()
    _feed(session, DWELL_R1[:2])
    session.set_mode(TrackingMode.RAW)
    assert session.classifier.buffered == 0


def test_aggregator_direct():
    index = SpatialIndex()
    index.register_page(1, [R1, R2])
    agg = AttentionAggregator(index)
    assert agg.on_fixation(Fixation(1, 50, 40, 0, 320, 320)) == "R2"
    assert agg.on_fixation(Fixation(None, 50, 40, 400, 500, 100)) is None
    agg.on_raw_sample(MappedPoint(1, 1, 1))
    assert [e.intensity for e in agg.gaze_log] == [3, 1, 1]
    assert agg.region_stat(1, "R2").total_duration == 320


def test_duration_weight():
    assert duration_weight(0) == 1
    assert duration_weight(40) == 1
    assert duration_weight(200) == 2
    assert duration_weight(1000) == 10


def test_invalid_document_keeps_previous_one():
    session = _session()
    _feed(session, DWELL_R1)
    old_layout = session.layout
    new_layout = DocumentLayout.stacked([(200, 100), (200, 100)])
    dup = Region(2, "d", Rect(0, 0, 10, 10))
    with pytest.raises(ValueError):
        session.load_document(new_layout, {1: [R1], 2: [dup, dup]})
    assert session.layout is old_layout
    assert session.index.pages() == [1]
    assert session.aggregator.region_stat(1, "R1").count == 1


def test_reload_page_uncredits_old_fixations():
    session = _session()
    _feed(session, DWELL_R1)
    assert [region_id for _, region_id in session.aggregator.credited_fixations] == ["R1"]
    session.load_page(1, [Region(1, "new", Rect(0, 0, 100, 20))])
    assert session.aggregator.credited_fixations == []
    assert len(session.aggregator.fixations) == 1
