from datetime import timedelta
from pathlib import Path
from typing import Callable, List, Optional

import pytest
from loguru import logger

from vidproc.domain.stage import ToolResult


def command_kind(cmd: List[str]) -> str:
    if "-f" in cmd and cmd[cmd.index("-f") + 1] == "concat":
        return "concat"
    video_filter = cmd[cmd.index("-vf") + 1]
    if video_filter.startswith("vidstabdetect"):
        return "analysis"
    if video_filter.startswith("vidstabtransform"):
        return "transform"
    raise AssertionError(f"unexpected command: {cmd}")


class FakeInvoker:
    """
    Stands in for FFmpeg by reproducing its side effects on disk.

    - analysis writes `transforms.trf` into the working directory;
    - transform needs that file and writes the last argument;
    - concat reads the listing and writes the output.

    `fail_on(kind, cmd)` may return a non-zero exit code or raise.
    """

    def __init__(self, fail_on: Optional[Callable[[str, List[str]], int]] = None):
        self.calls: List[tuple] = []
        self.fail_on = fail_on

    def kinds(self) -> List[str]:
        return [kind for kind, _ in self.calls]

    def inputs_for(self, kind: str) -> List[str]:
        return [Path(cmd[cmd.index("-i") + 1]).name for k, cmd in self.calls if k == kind]

    def run(self, cmd: List[str], cwd: Optional[Path] = None) -> ToolResult:
        kind = command_kind(cmd)
        self.calls.append((kind, cmd))
        if self.fail_on is not None:
            returncode = self.fail_on(kind, cmd)
            if returncode:
                if kind == "concat":
                    Path(cmd[-1]).write_text("partial")
                return ToolResult(cmd=cmd, returncode=returncode)

        cwd = Path(cwd)
        input_name = Path(cmd[cmd.index("-i") + 1]).name
        if kind == "analysis":
            (cwd / "transforms.trf").write_text(f"transforms of {input_name}")
        elif kind == "transform":
            transforms = cwd / "transforms.trf"
            if not transforms.is_file():
                return ToolResult(cmd=cmd, returncode=1)
            Path(cmd[-1]).write_text(f"stabilized {input_name} using {transforms.read_text()}")
        else:
            listing = cwd / cmd[cmd.index("-i") + 1]
            Path(cmd[-1]).write_text(listing.read_text())
        return ToolResult(cmd=cmd, returncode=0, elapsed=timedelta(seconds=1))


@pytest.fixture
def fake_invoker() -> FakeInvoker:
    return FakeInvoker()


@pytest.fixture
def input_dir(tmp_path: Path) -> Path:
    folder = tmp_path / "videos"
    folder.mkdir()
    # Created out of order on purpose.
    for name in ("c.mov", "a.mov", "b.mov"):
        (folder / name).write_bytes(b"raw " + name.encode())
    return folder


@pytest.fixture
def log_messages():
    messages: List[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
