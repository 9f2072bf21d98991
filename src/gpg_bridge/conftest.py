"""
测试公共夹具：可编程的假 gpg 执行器与定位器，以及使用它们的 BridgeContext。
"""

from typing import Callable, List, Optional, Sequence, Tuple

import pytest

from src.gpg_bridge.config import Config
from src.gpg_bridge.context import BridgeContext
from src.gpg_bridge.errors import ExecutableNotFound
from src.gpg_bridge.gpg.schemas import ProcessResult
from src.gpg_bridge.notifier import Notifier

FAKE_GPG = "/fake/bin/gpg"
PASSCODE = "042917"


class FakeRunner:
    """记录每次调用；handler 决定返回结果或抛出异常。"""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, List[str]]] = []
        self.handler: Callable[[str, List[str]], ProcessResult] = (
            lambda executable, args: ProcessResult(exit_code=0)
        )

    async def run(self, executable: str, args: Sequence[str]) -> ProcessResult:
        args = list(args)
        self.calls.append((executable, args))
        return self.handler(executable, args)


class FakeLocator:
    def __init__(self, path: Optional[str] = FAKE_GPG) -> None:
        self.path = path

    def find_gpg_path(self) -> Optional[str]:
        return self.path

    def require_gpg_path(self) -> str:
        if self.path is None:
            raise ExecutableNotFound("GPG executable not found.")
        return self.path


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def context(tmp_path, fake_runner) -> BridgeContext:
    work_dir = tmp_path / "work"
    work_dir.mkdir()
    cfg = Config(
        require_tls=False,
        allowed_hosts=["testclient", "127.0.0.1"],
        app_name="GPG Bridge",
        app_version="9.9.9",
    )
    return BridgeContext(
        config=cfg,
        passcode=PASSCODE,
        locator=FakeLocator(),
        runner=fake_runner,
        notifier=Notifier(),
        temp_dir=work_dir,
    )
