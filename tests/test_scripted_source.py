from pathlib import Path

import pytest

from capture.scripted_source import (
    ScriptedDetectionSource,
    ScriptError,
    ScriptEvent,
    load_script,
    parse_events,
)
from core.config import Config
from core.interfaces import ObservationSink
from core.main_loop import run_script
from schemas import Rect

SESSIONS_DIR = Path(__file__).resolve().parent.parent / "sessions"


class RecordingSink(ObservationSink):
    def __init__(self):
        self.calls = []

    def on_no_face(self):
        self.calls.append(("no_face",))

    def on_geometry(self, bounding_box, roll, pitch, yaw):
        self.calls.append(("geometry", bounding_box, roll, pitch, yaw))

    def on_quality(self, score):
        self.calls.append(("quality", score))

    def on_smile(self, detected):
        self.calls.append(("smile", detected))

    def on_geometry_error(self, reason):
        self.calls.append(("geometry_error", reason))

    def on_quality_error(self, reason):
        self.calls.append(("quality_error", reason))

    def on_smile_error(self, reason):
        self.calls.append(("smile_error", reason))

    def on_viewport_resized(self, rect):
        self.calls.append(("resize", rect))

    def on_debug_toggle_requested(self):
        self.calls.append(("toggle_debug",))


class TestParseEvents:
    def test_sorted_by_time_stable_for_ties(self):
        events = parse_events([
            {"t": 1.0, "event": "quality", "score": 0.5},
            {"t": 0.5, "event": "no_face"},
            {"t": 1.0, "event": "smile", "detected": True},
        ])
        assert [(e.t, e.kind) for e in events] == [(0.5, "no_face"), (1.0, "quality"), (1.0, "smile")]
        assert events[1].payload == {"score": 0.5}

    def test_missing_time_defaults_to_zero(self):
        (ev,) = parse_events([{"event": "toggle_debug"}])
        assert ev == ScriptEvent(t=0.0, kind="toggle_debug")

    @pytest.mark.parametrize(
        "entry",
        [
            "no_face",
            {"t": 0.0, "event": "wave"},
            {"t": -1.0, "event": "no_face"},
            {"t": "soon", "event": "no_face"},
            {"t": 0.0, "event": "geometry", "roll": 1.4},
            {"t": 0.0, "event": "geometry", "box": [1, 2, 3]},
            {"t": 0.0, "event": "quality"},
            {"t": 0.0, "event": "quality", "score": "high"},
            {"t": 0.0, "event": "smile"},
            {"t": 0.0, "event": "smile", "detected": "false"},
            {"t": 0.0, "event": "smile", "detected": 1},
            {"t": 0.0, "event": "error", "kind": "pose"},
            {"t": 0.0, "event": "resize", "rect": "full"},
        ],
    )
    def test_malformed_entries_rejected(self, entry):
        with pytest.raises(ScriptError):
            parse_events([entry])


class TestLoadScript:
    def test_list_root(self, tmp_path):
        path = tmp_path / "s.yaml"
        path.write_text("- {t: 0.2, event: quality, score: 0.4}\n- {t: 0.1, event: no_face}\n")
        events = load_script(path)
        assert [e.kind for e in events] == ["no_face", "quality"]

    def test_mapping_root(self, tmp_path):
        path = tmp_path / "s.yaml"
        path.write_text("events:\n  - {t: 0, event: toggle_debug}\n")
        assert len(load_script(path)) == 1

    def test_empty_file(self, tmp_path):
        path = tmp_path / "s.yaml"
        path.write_text("")
        assert load_script(path) == []

    def test_bad_root(self, tmp_path):
        path = tmp_path / "s.yaml"
        path.write_text("just a string\n")
        with pytest.raises(ScriptError):
            load_script(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_script(tmp_path / "nope.yaml")

    @pytest.mark.parametrize("name", ["smile_capture.yaml", "interrupted.yaml"])
    def test_bundled_sessions_parse(self, name):
        assert load_script(SESSIONS_DIR / name)


class TestScriptedDetectionSource:
    def test_replays_every_kind_into_sink(self):
        events = parse_events([
            {"t": 0.0, "event": "resize", "rect": [0, 0, 400, 600]},
            {"t": 0.1, "event": "geometry", "box": [1, 2, 3, 4], "roll": 1.4, "pitch": 0.1},
            {"t": 0.2, "event": "quality", "score": 0.6},
            {"t": 0.3, "event": "smile", "detected": True},
            {"t": 0.4, "event": "no_face"},
            {"t": 0.5, "event": "error", "kind": "geometry", "reason": "a"},
            {"t": 0.6, "event": "error", "kind": "quality"},
            {"t": 0.7, "event": "error", "kind": "smile", "reason": "c"},
            {"t": 0.8, "event": "toggle_debug"},
        ])
        waits = []
        sink = RecordingSink()
        ScriptedDetectionSource(events, wait_until=waits.append, end_time=3.0).run(sink)

        assert sink.calls == [
            ("resize", Rect(0, 0, 400, 600)),
            ("geometry", Rect(1, 2, 3, 4), 1.4, 0.1, 0.0),
            ("quality", 0.6),
            ("smile", True),
            ("no_face",),
            ("geometry_error", "a"),
            ("quality_error", "detector error"),
            ("smile_error", "c"),
            ("toggle_debug",),
        ]
        assert waits == [0.0, 0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 3.0]

    def test_stop_ends_replay_early(self):
        events = parse_events([{"t": float(i), "event": "no_face"} for i in range(5)])
        sink = RecordingSink()
        source = ScriptedDetectionSource(events, wait_until=lambda t: t >= 2 and source.stop())
        source.run(sink)
        assert len(sink.calls) == 3

    def test_from_file(self):
        source = ScriptedDetectionSource.from_file(SESSIONS_DIR / "smile_capture.yaml")
        assert source.events[0].kind == "resize"


class TestReplaySessions:
    """Bundled timelines through a full simulated-clock session"""

    @pytest.mark.parametrize("name", ["smile_capture.yaml", "interrupted.yaml"])
    def test_bundled_sessions_release_once(self, name):
        releases = run_script(Config(), load_script(SESSIONS_DIR / name))
        assert len(releases) == 1
        assert releases[0].success

    def test_smile_before_grace_period_does_not_release(self):
        events = parse_events([
            {"t": 0.0, "event": "geometry", "box": [0, 0, 200, 300], "roll": 1.4},
            {"t": 0.0, "event": "quality", "score": 0.5},
            {"t": 1.0, "event": "smile", "detected": True},
            {"t": 1.5, "event": "no_face"},
        ])
        assert run_script(Config(), events) == []

    def test_trailing_timer_fires_within_tail(self):
        events = parse_events([
            {"t": 0.0, "event": "geometry", "box": [0, 0, 200, 300], "roll": 1.4},
            {"t": 0.0, "event": "quality", "score": 0.5},
            {"t": 0.5, "event": "smile", "detected": True},
        ])
        assert len(run_script(Config(), events)) == 1
        assert run_script(Config(), events, tail_sec=0.5) == []


class TestSmileValues:
    def test_quoted_boolean_in_yaml_is_rejected(self, tmp_path):
        path = tmp_path / "s.yaml"
        path.write_text('- {t: 0.0, event: smile, detected: "false"}\n')
        with pytest.raises(ScriptError):
            load_script(path)

    def test_yaml_booleans_accepted(self, tmp_path):
        path = tmp_path / "s.yaml"
        path.write_text("- {t: 0.0, event: smile, detected: false}\n- {t: 0.1, event: smile, detected: yes}\n")
        sink = RecordingSink()
        ScriptedDetectionSource(load_script(path), wait_until=lambda t: None).run(sink)
        assert sink.calls == [("smile", False), ("smile", True)]
