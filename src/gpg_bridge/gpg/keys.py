"""
文件功能：
    调用 gpg 的机器可读模式（--with-colons）列出公钥，并为每把密钥导出 ASCII 装甲公钥。

公开接口：
    - parse_key_listing: 解析冒号分隔的密钥列表输出
    - list_keys: 列出密钥并附带导出的公钥

内部方法：
    - _unescape: 还原 gpg 对字段中特殊字符的 \\xNN 转义
    - _export_pubkey: 导出单把公钥，失败时返回 None
"""

from __future__ import annotations

import asyncio
import re
from typing import Iterable, List, Optional

from loguru import logger

from src.gpg_bridge.errors import ProcessFailure, SpawnError
from .locator import GpgLocator
from .process import ProcessRunner
from .schemas import KeyRecord

# fpr / uid 记录的第 10 个字段
_FIELD_INDEX = 9
_ESCAPE_RE = re.compile(r"\\x([0-9a-fA-F]{2})")


def _unescape(value: str) -> str:
    return _ESCAPE_RE.sub(lambda m: chr(int(m.group(1), 16)), value)


def _field(parts: List[str]) -> str:
    return parts[_FIELD_INDEX] if len(parts) > _FIELD_INDEX else ""


def parse_key_listing(lines: Iterable[str]) -> List[KeyRecord]:
    """
    解析 `gpg --list-keys --with-colons` 的输出。
    pub 开启新记录；其后第一个 fpr 设置指纹；uid 设置 UID 并结束该记录。
    没有 uid 的 pub 不产生记录。
    """
    records: List[KeyRecord] = []
    fingerprint: Optional[str] = None
    is_open = False

    for line in lines:
        parts = line.rstrip("\r\n").split(":")
        kind = parts[0]
        if kind == "pub":
            is_open = True
            fingerprint = None
        elif not is_open:
            continue
        elif kind == "fpr":
            # 只取主钥的指纹，忽略同一记录中后续的 fpr
            if fingerprint is None:
                fingerprint = _field(parts)
        elif kind == "uid":
            records.append(KeyRecord(fingerprint=fingerprint or "", uid=_unescape(_field(parts))))
            is_open = False
    return records


async def _export_pubkey(
    gpg_path: str, runner: ProcessRunner, fingerprint: str
) -> Optional[str]:
    # 末尾的 "!" 要求精确匹配该指纹，避免子串误匹配
    args = [
        "--export",
        "--armor",
        "--export-options",
        "export-minimal",
        f"{fingerprint}!",
    ]
    try:
        result = await runner.run(gpg_path, args)
    except SpawnError as e:
        logger.warning(f"导出公钥失败 {fingerprint}: {e}")
        return None
    if not result.ok or not result.stdout.strip():
        logger.warning(f"导出公钥失败 {fingerprint}: {result.stderr.strip()}")
        return None
    return result.stdout


async def list_keys(locator: GpgLocator, runner: ProcessRunner) -> List[KeyRecord]:
    """
    列出本地公钥环中的密钥。
    导出失败的记录会被剔除，因此返回数量可能少于密钥环中的密钥数。
    :raises ExecutableNotFound: 找不到 gpg。
    :raises SpawnError: gpg 无法启动。
    :raises ProcessFailure: 列表命令以非零状态退出。
    """
    gpg_path = locator.require_gpg_path()
    result = await runner.run(gpg_path, ["--list-keys", "--with-colons"])
    if not result.ok:
        raise ProcessFailure(result.exit_code, result.stderr)

    records = parse_key_listing(result.stdout.splitlines())
    pubkeys = await asyncio.gather(
        *(_export_pubkey(gpg_path, runner, r.fingerprint) for r in records)
    )

    keys: List[KeyRecord] = []
    for record, pubkey in zip(records, pubkeys):
        if pubkey is None:
            continue
        keys.append(record.model_copy(update={"pubkey": pubkey}))
    logger.info(f"列出密钥 {len(records)} 把，成功导出 {len(keys)} 把")
    return keys
