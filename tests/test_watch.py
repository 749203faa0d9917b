"""Tests for the polling regeneration loop."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from unittest.mock import MagicMock

from gouml.errors import IOFailure, ParseFailure
from gouml.watch.loop import LoopState, RegenerationLoop, detect_changes
from tests.helpers import bump_mtime, write_go


class _Recorder:
    """Fake generation step that records calls and the loop state it ran in."""

    def __init__(self, loop_ref: list, fail_with: Exception | None = None) -> None:
        self.calls = 0
        self.states: list[LoopState] = []
        self._loop_ref = loop_ref
        self.fail_with = fail_with

    def __call__(self, settings, on_progress=None) -> dict:
        self.calls += 1
        self.states.append(self._loop_ref[0].state)
        if self.fail_with is not None:
            raise self.fail_with
        if on_progress:
            on_progress({"step": "build"})
        return {"files": 0, "structs": 0, "interfaces": 0, "relations": 0}


def _loop_with_recorder(settings, fail_with=None):
    ref: list = []
    recorder = _Recorder(ref, fail_with)
    sleep = MagicMock()
    loop = RegenerationLoop(settings, generate=recorder, sleep=sleep)
    ref.append(loop)
    return loop, recorder, sleep


class TestDetectChanges:
    def test_added_removed_modified(self) -> None:
        a, b, c = Path("a.go"), Path("b.go"), Path("c.go")
        changes = detect_changes({a: 1, b: 1}, {a: 2, c: 1})
        assert changes.added == [c]
        assert changes.removed == [b]
        assert changes.modified == [a]
        assert changes

    def test_no_changes(self) -> None:
        changes = detect_changes({Path("a.go"): 1}, {Path("a.go"): 1})
        assert not changes
        assert changes.describe() == "0 added, 0 removed, 0 modified"


class TestTick:
    def test_first_tick_builds(self, settings) -> None:
        loop, recorder, _ = _loop_with_recorder(settings)
        result = loop.tick()
        assert result.ran
        assert len(result.changes.added) == 2
        assert recorder.calls == 1
        assert recorder.states == [LoopState.BUILDING]
        assert loop.state is LoopState.IDLE

    def test_unchanged_tree_does_not_rebuild(self, settings) -> None:
        loop, recorder, _ = _loop_with_recorder(settings)
        loop.tick()
        result = loop.tick()
        assert not result.ran
        assert recorder.calls == 1

    def test_forced_tick_rebuilds_without_changes(self, settings) -> None:
        loop, recorder, _ = _loop_with_recorder(settings)
        loop.tick()
        assert loop.tick(force=True).ran
        assert recorder.calls == 2

    def test_modification_triggers_rebuild(self, settings) -> None:
        loop, recorder, _ = _loop_with_recorder(settings)
        loop.tick()
        bump_mtime(settings.watch_path / "shapes" / "shapes.go")
        result = loop.tick()
        assert result.ran
        assert result.changes.modified == [settings.watch_path / "shapes" / "shapes.go"]

    def test_added_and_removed_files_trigger_rebuild(self, settings) -> None:
        loop, recorder, _ = _loop_with_recorder(settings)
        loop.tick()
        write_go(settings.watch_path / "extra.go", "package p\n")
        assert loop.tick().ran
        (settings.watch_path / "extra.go").unlink()
        result = loop.tick()
        assert result.ran
        assert result.changes.removed == [settings.watch_path / "extra.go"]
        assert recorder.calls == 3

    def test_settle_delay_before_reading(self, settings) -> None:
        loop, _, sleep = _loop_with_recorder(replace(settings, settle_delay=0.5))
        loop.tick()
        sleep.assert_called_once_with(0.5)
        sleep.reset_mock()
        loop.tick()
        sleep.assert_not_called()

    def test_failure_is_reported_and_loop_recovers(self, settings) -> None:
        loop, recorder, _ = _loop_with_recorder(
            settings, fail_with=ParseFailure("car.go", "missing }", line=3, column=1),
        )
        result = loop.tick()
        assert not result.ran
        assert "car.go:3:1" in result.error
        assert loop.last_error == result.error
        assert loop.state is LoopState.IDLE

        # Same file, same mtime: the broken pass is not retried every tick
        assert not loop.tick().ran
        recorder.fail_with = None
        bump_mtime(settings.watch_path / "vehicles" / "car.go")
        assert loop.tick().ran
        assert loop.last_error is None

    def test_scan_failure_is_reported(self, settings, tmp_path: Path) -> None:
        loop, recorder, _ = _loop_with_recorder(replace(settings, watch_path=tmp_path / "gone"))
        result = loop.tick(force=True)
        assert result.error is not None
        assert recorder.calls == 0
        assert loop.state is LoopState.IDLE

    def test_io_failure_during_pass(self, settings) -> None:
        loop, _, _ = _loop_with_recorder(settings, fail_with=IOFailure("cannot write out/uml_diagram.puml"))
        result = loop.tick()
        assert result.error == "cannot write out/uml_diagram.puml"

    def test_unexpected_error_is_reported(self, settings) -> None:
        loop, _, _ = _loop_with_recorder(settings, fail_with=ValueError("unexpected"))
        result = loop.tick()
        assert not result.ran
        assert result.error == "unexpected"
        assert loop.state is LoopState.IDLE

    def test_pass_duration_comes_from_clock(self, settings) -> None:
        ticks = iter([10.0, 12.5])
        loop = RegenerationLoop(
            settings,
            generate=lambda s, on_progress=None: {},
            sleep=MagicMock(),
            clock=lambda: next(ticks),
        )
        assert loop.tick().duration == 2.5


class TestRun:
    def test_initial_forced_run_then_polls(self, settings) -> None:
        loop, recorder, sleep = _loop_with_recorder(settings)
        loop.run(max_ticks=3)
        assert recorder.calls == 1
        assert [c.args[0] for c in sleep.call_args_list] == [settings.poll_interval] * 2

    def test_failures_never_stop_the_loop(self, settings) -> None:
        loop, recorder, _ = _loop_with_recorder(settings, fail_with=ParseFailure("x.go", "syntax error"))
        loop.run(max_ticks=2)
        assert recorder.calls == 1
        assert loop.last_error is not None

    def test_unexpected_errors_never_stop_the_loop(self, settings) -> None:
        loop, recorder, _ = _loop_with_recorder(settings, fail_with=ValueError("unexpected"))
        loop.run(max_ticks=2)
        assert recorder.calls == 1
        assert loop.last_error == "unexpected"


class TestEndToEnd:
    def test_deleted_unit_disappears_from_next_output(self, settings) -> None:
        loop = RegenerationLoop(settings, sleep=lambda _: None)
        loop.tick(force=True)
        text = settings.puml_path.read_text()
        assert "class Circle" in text
        assert "Shape <|.. Circle" in text

        (settings.watch_path / "shapes" / "shapes.go").unlink()
        assert loop.tick().ran
        text = settings.puml_path.read_text()
        assert "Circle" not in text
        assert "Shape" not in text
        assert "Car *-- Engine" in text

    def test_half_written_file_is_reported_not_accepted(self, settings) -> None:
        loop = RegenerationLoop(settings, sleep=lambda _: None)
        loop.tick(force=True)
        before = settings.puml_path.read_text()

        path = settings.watch_path / "vehicles" / "car.go"
        full = path.read_text()
        path.write_text(full[: full.index("type Car struct {") + len("type Car struct {")])
        bump_mtime(path)
        result = loop.tick()
        assert result.error is not None
        # The previous diagram is left in place rather than replaced by an empty one
        assert settings.puml_path.read_text() == before

        path.write_text(full)
        bump_mtime(path, seconds=20)
        assert loop.tick().ran
        assert settings.puml_path.read_text() == before

    def test_deeply_nested_type_is_reported_not_fatal(self, settings) -> None:
        path = settings.watch_path / "deep.go"
        write_go(path, "package p\n\ntype Deep struct {\n\tgrid " + "[]" * 3000 + "int\n}\n")
        loop = RegenerationLoop(settings, sleep=lambda _: None)
        loop.run(max_ticks=2)
        assert "nested too deeply" in loop.last_error
        assert loop.state is LoopState.IDLE
