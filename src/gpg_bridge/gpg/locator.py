"""
GPG 可执行文件探测。

查找顺序：
1) 配置中显式指定的路径
2) 系统 PATH 查询（which/where）
3) 各平台常见安装位置
首次找到后在进程生命周期内缓存，不再重新探测。
"""

from __future__ import annotations

import os
import shutil
from typing import Iterable, List, Optional

from loguru import logger

from src.gpg_bridge.errors import ExecutableNotFound

_PATH_NAMES = ("gpg", "gpg2")

WELL_KNOWN_LOCATIONS: List[str] = [
    # Linux
    "/usr/bin/gpg",
    "/usr/local/bin/gpg",
    "/bin/gpg",
    "/usr/bin/gpg2",
    # macOS: Homebrew / MacGPG2 / MacPorts
    "/opt/homebrew/bin/gpg",
    "/usr/local/MacGPG2/bin/gpg",
    "/usr/local/MacGPG2/bin/gpg2",
    "/opt/local/bin/gpg",
    # Windows: GnuPG / Gpg4win
    r"C:\Program Files (x86)\GnuPG\bin\gpg.exe",
    r"C:\Program Files\GnuPG\bin\gpg.exe",
    r"C:\Program Files (x86)\Gpg4win\bin\gpg.exe",
    r"C:\Program Files\Gpg4win\bin\gpg.exe",
]


def _is_executable(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.X_OK)


class GpgLocator:
    def __init__(
        self,
        configured_path: Optional[str] = None,
        locations: Optional[Iterable[str]] = None,
    ) -> None:
        self._configured_path = configured_path
        self._locations = list(WELL_KNOWN_LOCATIONS if locations is None else locations)
        self._cached: Optional[str] = None

    def _candidates(self) -> Iterable[str]:
        if self._configured_path:
            yield self._configured_path
        for name in _PATH_NAMES:
            found = shutil.which(name)
            if found:
                yield found
        yield from self._locations

    def find_gpg_path(self) -> Optional[str]:
        """返回 gpg 的绝对路径；找不到时返回 None（不缓存失败结果）。"""
        if self._cached is not None:
            return self._cached
        for candidate in self._candidates():
            if _is_executable(candidate):
                self._cached = os.path.abspath(candidate)
                logger.info(f"使用 GPG 可执行文件: {self._cached}")
                return self._cached
        logger.warning("未找到 GPG 可执行文件")
        return None

    def require_gpg_path(self) -> str:
        path = self.find_gpg_path()
        if path is None:
            raise ExecutableNotFound(
                "GPG executable not found. Install GnuPG or set GPG_BRIDGE_GPG_PATH."
            )
        return path
