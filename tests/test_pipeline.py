from pathlib import Path

import pytest
import yaml

import vidproc.pipeline.stabilize_pipeline as stabilize_pipeline
from conftest import FakeInvoker
from vidproc.domain.exceptions import RunInterrupted
from vidproc.domain.stage import RunStatus
from vidproc.pipeline.stabilize_pipeline import StabilizeJoinPipeline


def make_pipeline(input_dir: Path, invoker: FakeInvoker, output_name: str = "out.mp4") -> StabilizeJoinPipeline:
    return StabilizeJoinPipeline(input_dir, input_dir / output_name, invoker=invoker, probe_inputs=False)


def snapshot(folder: Path) -> dict:
    if not folder.exists():
        return {}
    return {path.name: (path.read_bytes(), path.stat().st_mtime_ns) for path in folder.iterdir()}


def scratch_files(input_dir: Path) -> list:
    candidates = [
        input_dir / "transforms.trf",
        input_dir / "files.txt",
        input_dir / "vidproc" / "temp_stabilized.mp4",
    ]
    existing = [path for path in candidates if path.exists()]
    if (input_dir / "vidproc").is_dir():
        existing.extend((input_dir / "vidproc").glob("*.part"))
    return existing


def test_full_run_stabilizes_and_joins_in_name_order(input_dir: Path, fake_invoker: FakeInvoker) -> None:
    result = make_pipeline(input_dir, fake_invoker).run()

    assert result.status is RunStatus.COMPLETED
    assert result.exit_code == 0
    assert fake_invoker.kinds() == ["analysis", "transform"] * 3 + ["concat"]
    assert fake_invoker.inputs_for("analysis") == ["a.mov", "b.mov", "c.mov"]

    work_dir = input_dir / "vidproc"
    listing = (input_dir / "out.mp4").read_text().splitlines()
    assert listing == [f"file '{work_dir.resolve() / name}'" for name in ("a.mp4", "b.mp4", "c.mp4")]
    assert result.stabilized_videos == [work_dir.resolve() / name for name in ("a.mp4", "b.mp4", "c.mp4")]
    assert len(result.stages) == 7
    assert scratch_files(input_dir) == []


def test_manifest_order_ignores_enumeration_order(input_dir: Path, fake_invoker: FakeInvoker, monkeypatch) -> None:
    real_iterdir = Path.iterdir

    def reversed_iterdir(self):
        return iter(sorted(real_iterdir(self), reverse=True))

    monkeypatch.setattr(Path, "iterdir", reversed_iterdir)
    make_pipeline(input_dir, fake_invoker).run()

    concat_cmd = fake_invoker.calls[-1][1]
    assert concat_cmd[-1] == str((input_dir / "out.mp4").resolve())
    monkeypatch.undo()
    names = [Path(line.split("'")[1]).name for line in (input_dir / "out.mp4").read_text().splitlines()]
    assert names == ["a.mp4", "b.mp4", "c.mp4"]


def test_second_run_reuses_all_checkpoints(input_dir: Path) -> None:
    make_pipeline(input_dir, FakeInvoker()).run()
    (input_dir / "out.mp4").unlink()

    second = FakeInvoker()
    result = make_pipeline(input_dir, second).run()

    assert result.status is RunStatus.COMPLETED
    assert second.kinds() == ["concat"]
    assert (input_dir / "out.mp4").is_file()


def test_run_resumes_at_transform_after_abort(input_dir: Path) -> None:
    def fail_b_transform(kind, cmd):
        return 1 if kind == "transform" and cmd[cmd.index("-i") + 1].endswith("b.mov") else 0

    first = FakeInvoker(fail_on=fail_b_transform)
    result = make_pipeline(input_dir, first).run()

    assert result.status is RunStatus.FAILED
    assert result.exit_code == 1
    assert "b.mov" in result.message
    # c.mov is never started once b.mov fails.
    assert first.inputs_for("analysis") == ["a.mov", "b.mov"]
    work_dir = input_dir / "vidproc"
    assert sorted(path.name for path in work_dir.iterdir()) == ["a.mp4", "a.trf", "b.trf"]
    assert not (input_dir / "out.mp4").exists()
    assert scratch_files(input_dir) == []

    second = FakeInvoker()
    result = make_pipeline(input_dir, second).run()

    assert result.status is RunStatus.COMPLETED
    assert second.inputs_for("analysis") == ["c.mov"]
    assert second.inputs_for("transform") == ["b.mov", "c.mov"]
    assert (work_dir / "b.mp4").read_text() == "stabilized b.mov using transforms of b.mov"


def test_existing_output_is_a_no_op(input_dir: Path, fake_invoker: FakeInvoker) -> None:
    work_dir = input_dir / "vidproc"
    work_dir.mkdir()
    (work_dir / "a.trf").write_text("t")
    (work_dir / "temp_stabilized.mp4").write_text("left over")
    (input_dir / "out.mp4").write_text("finished")
    before = snapshot(work_dir)

    result = make_pipeline(input_dir, fake_invoker).run()

    assert result.status is RunStatus.ALREADY_DONE
    assert result.exit_code == 0
    assert fake_invoker.calls == []
    assert snapshot(work_dir) == before
    assert (input_dir / "out.mp4").read_text() == "finished"


@pytest.mark.parametrize("output_name", ["out.mkv", "out", "out.mp4.bak"])
def test_bad_output_suffix_is_rejected(input_dir: Path, fake_invoker: FakeInvoker, output_name: str) -> None:
    result = make_pipeline(input_dir, fake_invoker, output_name=output_name).run()

    assert result.status is RunStatus.CONFIG_ERROR
    assert result.exit_code == 2
    assert fake_invoker.calls == []
    assert not (input_dir / "vidproc").exists()


def test_output_suffix_is_case_insensitive(input_dir: Path, fake_invoker: FakeInvoker) -> None:
    result = make_pipeline(input_dir, fake_invoker, output_name="Holiday.MP4").run()
    assert result.status is RunStatus.COMPLETED
    assert (input_dir / "Holiday.MP4").is_file()


def test_tool_failure_leaves_no_temp_files(input_dir: Path) -> None:
    invoker = FakeInvoker(fail_on=lambda kind, cmd: 1 if kind == "analysis" else 0)
    (input_dir / "files.txt").write_text("stale listing")

    result = make_pipeline(input_dir, invoker).run()

    assert result.status is RunStatus.FAILED
    assert invoker.kinds() == ["analysis"]
    assert scratch_files(input_dir) == []
    assert list((input_dir / "vidproc").iterdir()) == []


def test_failed_join_removes_partial_output(input_dir: Path) -> None:
    invoker = FakeInvoker(fail_on=lambda kind, cmd: 1 if kind == "concat" else 0)

    result = make_pipeline(input_dir, invoker).run()

    assert result.status is RunStatus.FAILED
    assert "Joining failed" in result.message
    assert not (input_dir / "out.mp4").exists()
    assert scratch_files(input_dir) == []
    # Every input stays checkpointed for the next attempt.
    assert sorted(p.name for p in (input_dir / "vidproc").glob("*.mp4")) == ["a.mp4", "b.mp4", "c.mp4"]


def test_interrupt_cleans_up_and_propagates(input_dir: Path) -> None:
    def interrupt_transform(kind, cmd):
        if kind == "transform":
            raise KeyboardInterrupt
        return 0

    invoker = FakeInvoker(fail_on=interrupt_transform)
    with pytest.raises(KeyboardInterrupt):
        make_pipeline(input_dir, invoker).run()

    assert scratch_files(input_dir) == []
    assert (input_dir / "vidproc" / "a.trf").is_file()
    assert not (input_dir / "vidproc" / "a.mp4").exists()


def test_shared_base_names_are_rejected_before_any_work(input_dir: Path, fake_invoker: FakeInvoker) -> None:
    (input_dir / "a.mp4").write_bytes(b"raw")

    result = make_pipeline(input_dir, fake_invoker).run()

    assert result.status is RunStatus.CONFIG_ERROR
    assert "a.mov, a.mp4" in result.message
    assert fake_invoker.calls == []


def test_empty_input_directory_is_nothing_to_do(tmp_path: Path, fake_invoker: FakeInvoker) -> None:
    result = make_pipeline(tmp_path, fake_invoker).run()
    assert result.status is RunStatus.NO_INPUTS
    assert result.exit_code == 0
    assert fake_invoker.calls == []


def test_scratch_files_are_not_inputs(input_dir: Path, fake_invoker: FakeInvoker) -> None:
    (input_dir / "transforms.trf").write_text("stale")
    (input_dir / "files.txt").write_text("stale")

    make_pipeline(input_dir, fake_invoker).run()

    assert fake_invoker.inputs_for("analysis") == ["a.mov", "b.mov", "c.mov"]


def test_preflight_warnings_do_not_stop_the_run(input_dir: Path, fake_invoker: FakeInvoker, monkeypatch, log_messages) -> None:
    monkeypatch.setattr(stabilize_pipeline, "preflight_check", lambda paths: ["b.mov (640x480) differs"])
    pipeline = StabilizeJoinPipeline(input_dir, input_dir / "out.mp4", invoker=fake_invoker, probe_inputs=True)

    result = pipeline.run()

    assert result.status is RunStatus.COMPLETED
    assert "b.mov (640x480) differs" in log_messages


def test_completed_run_is_recorded_in_history(input_dir: Path, fake_invoker: FakeInvoker) -> None:
    make_pipeline(input_dir, fake_invoker).run()

    with (input_dir / "vidproc" / "run_history.yaml").open() as f:
        history = yaml.safe_load(f)
    assert len(history) == 1
    assert history[0]["index"] == 1
    assert history[0]["inputs"] == ["a.mov", "b.mov", "c.mov"]
    assert [stage["stage"] for stage in history[0]["stages"]][-1] == "concat"


def test_signal_interrupt_cleans_up_and_propagates(input_dir: Path) -> None:
    def terminate_during_transform(kind, cmd):
        if kind == "transform":
            raise RunInterrupted("Received signal SIGTERM")
        return 0

    invoker = FakeInvoker(fail_on=terminate_during_transform)
    with pytest.raises(RunInterrupted):
        make_pipeline(input_dir, invoker).run()

    assert scratch_files(input_dir) == []
    assert (input_dir / "vidproc" / "a.trf").is_file()
    assert not (input_dir / "vidproc" / "a.mp4").exists()
    assert not (input_dir / "out.mp4").exists()


def test_input_named_like_a_temp_file_is_rejected(input_dir: Path, fake_invoker: FakeInvoker) -> None:
    (input_dir / "temp_stabilized.mov").write_bytes(b"raw")

    result = make_pipeline(input_dir, fake_invoker).run()

    assert result.status is RunStatus.CONFIG_ERROR
    assert result.exit_code == 2
    assert "temp_stabilized.mov" in result.message
    assert fake_invoker.calls == []


def test_relative_output_is_written_to_the_input_directory(
    input_dir: Path, tmp_path: Path, fake_invoker: FakeInvoker, monkeypatch
) -> None:
    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()
    monkeypatch.chdir(elsewhere)

    pipeline = StabilizeJoinPipeline(input_dir, Path("out.mp4"), invoker=fake_invoker, probe_inputs=False)
    result = pipeline.run()

    assert result.status is RunStatus.COMPLETED
    assert pipeline.output_path == (input_dir / "out.mp4").resolve()
    assert (input_dir / "out.mp4").is_file()
    assert not (elsewhere / "out.mp4").exists()


def test_output_elsewhere_does_not_hide_an_input_with_the_same_name(
    input_dir: Path, tmp_path: Path, fake_invoker: FakeInvoker
) -> None:
    (input_dir / "d.mp4").write_bytes(b"raw d.mp4")
    exports = tmp_path / "exports"
    exports.mkdir()

    result = StabilizeJoinPipeline(input_dir, exports / "d.mp4", invoker=fake_invoker, probe_inputs=False).run()

    assert result.status is RunStatus.COMPLETED
    assert fake_invoker.inputs_for("analysis") == ["a.mov", "b.mov", "c.mov", "d.mp4"]
    assert (exports / "d.mp4").is_file()
