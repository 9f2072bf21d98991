"""
服务进程上下文：持有口令、临时目录、GPG 路径缓存等进程级状态。
初始化后只读，由 FastAPI lifespan 创建并挂在 app.state 上；测试中可直接构造并替换组件。
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import shutil
import tempfile

from loguru import logger

from src.gpg_bridge.bridge.auth import generate_passcode
from src.gpg_bridge.config import Config, config as default_config
from src.gpg_bridge.gpg.locator import GpgLocator
from src.gpg_bridge.gpg.process import ProcessRunner
from src.gpg_bridge.notifier import Notifier


@dataclass
class BridgeContext:
    config: Config
    passcode: str
    locator: GpgLocator
    runner: ProcessRunner
    notifier: Notifier
    temp_dir: Path

    @classmethod
    def create(cls, cfg: Config | None = None, notifier: Notifier | None = None) -> "BridgeContext":
        cfg = cfg or default_config
        temp_dir = Path(tempfile.mkdtemp(prefix="gpg-bridge-"))
        logger.info(f"临时目录已就绪: {temp_dir}")
        return cls(
            config=cfg,
            passcode=generate_passcode(),
            locator=GpgLocator(cfg.gpg_path),
            runner=ProcessRunner(),
            notifier=notifier or Notifier(),
            temp_dir=temp_dir,
        )

    def close(self) -> None:
        """删除进程级临时目录；失败只记录日志。"""
        try:
            shutil.rmtree(self.temp_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"删除临时目录失败 {self.temp_dir}: {e}")
