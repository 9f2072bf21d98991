"""
子进程执行原语。

以协程形式启动进程并完整收集 stdout/stderr，不阻塞事件循环。
启动失败抛出 SpawnError；非零退出码作为结果返回，由调用方判断。
不设超时：硬件令牌需要人工触摸，等待时间不可预知。
"""

from __future__ import annotations

import asyncio
from typing import Sequence

from loguru import logger

from src.gpg_bridge.errors import SpawnError
from .schemas import ProcessResult


class ProcessRunner:
    async def run(self, executable: str, args: Sequence[str]) -> ProcessResult:
        logger.debug(f"Executing command: {executable} {' '.join(args)}")
        try:
            proc = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"启动进程失败 {executable}: {e}")
            raise SpawnError(executable, str(e)) from e

        stdout, stderr = await proc.communicate()
        result = ProcessResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=proc.returncode,
        )
        if not result.ok:
            logger.debug(f"进程 {executable} 退出码 {result.exit_code}")
        return result
