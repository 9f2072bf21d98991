"""
GPG 业务流程层：签名、导入与密钥列表。
签名与导入共用同一流程：写临时文件 -> 调用 gpg -> 无论成败都删除临时文件 -> 回复客户端。
回复通过 send 协程发送，发送前由协议层校验。
"""

from __future__ import annotations

import asyncio
import secrets
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List

from loguru import logger

from src.gpg_bridge.context import BridgeContext
from src.gpg_bridge.errors import (
    ExecutableNotFound,
    ProcessFailure,
    ResourceCleanupError,
    SpawnError,
)
from src.gpg_bridge.notifier import TOUCH_COMPLETE, TOUCH_REQUIRED
from .keys import list_keys
from .schemas import ProcessResult

Send = Callable[[Dict[str, Any]], Awaitable[None]]

SIGN_STARTED = "Signing process started. Please touch your YubiKey."
SIGN_SUCCEEDED = "Message has been signed successfully."
SIGN_FAILED = "Signing process failed."
SIGN_UNAVAILABLE = "Signing failed"
IMPORT_STARTED = "Key import started."
IMPORT_SUCCEEDED = "Key has been successfully imported."
IMPORT_FAILED = "Key import failed."
KEYS_RETRIEVED = "Keys retrieved."
KEYS_EMPTY = "No GPG keys found."
KEYS_FAILED = "Failed to retrieve keys."
INTERNAL_ERROR = "Internal server error"


def _write_file(path: Path, data: bytes) -> None:
    # "xb"：文件名冲突时直接失败，不覆盖其它请求的文件
    f = open(path, "xb")
    try:
        with f:
            f.write(data)
    except BaseException:
        # 文件已由本次创建，写入或关闭失败时不留半截文件
        path.unlink(missing_ok=True)
        raise


def _remove_file(path: Path) -> None:
    try:
        path.unlink()
    except OSError as e:
        raise ResourceCleanupError(f"删除临时文件失败 {path}: {e}") from e


async def _write_temp_file(temp_dir: Path, kind: str, data: bytes) -> Path:
    """写入进程级临时目录中的唯一文件（时间戳 + 随机串）。"""
    path = temp_dir / f"{kind}_{time.time_ns()}_{secrets.token_hex(4)}.txt"
    await asyncio.to_thread(_write_file, path, data)
    logger.debug(f"临时文件已写入 {path.name} ({len(data)} bytes)")
    return path


async def _cleanup_temp_file(path: Path) -> None:
    try:
        await asyncio.to_thread(_remove_file, path)
    except ResourceCleanupError as e:
        logger.error(str(e))


async def _run_gpg_on_temp_file(
    ctx: BridgeContext,
    kind: str,
    data: bytes,
    announce: Callable[[], Awaitable[None]],
    build_args: Callable[[str], List[str]],
) -> ProcessResult:
    """
    写临时文件、通知开始、解析 gpg 路径并执行；临时文件总会被删除。
    :raises ExecutableNotFound: 找不到 gpg。
    :raises SpawnError: gpg 无法启动。
    """
    temp_path = await _write_temp_file(ctx.temp_dir, kind, data)
    try:
        await announce()
        gpg_path = ctx.locator.require_gpg_path()
        return await ctx.runner.run(gpg_path, build_args(str(temp_path)))
    finally:
        await _cleanup_temp_file(temp_path)


async def sign_message(
    ctx: BridgeContext, message_b64: str, data: bytes, fingerprint: str, send: Send
) -> None:
    """
    使用指定指纹对消息做分离式 ASCII 装甲签名。
    :param message_b64: 客户端发来的 Base64 原文，成功时原样返回。
    :param data: 解码后的原始字节。
    :param fingerprint: 签名所用密钥指纹。
    """
    logger.info(f"签名请求: fingerprint={fingerprint}, size={len(data)}")

    async def announce() -> None:
        await send({"communication": SIGN_STARTED})
        ctx.notifier.emit(TOUCH_REQUIRED, {"message": "Please touch your YubiKey."})

    try:
        result = await _run_gpg_on_temp_file(
            ctx,
            "message",
            data,
            announce,
            lambda path: [
                "--sign",
                "--detach-sign",
                "--armor",
                "--local-user",
                fingerprint,
                "--output",
                "-",
                "--no-tty",
                path,
            ],
        )
    except ExecutableNotFound as e:
        await send({"communication": SIGN_UNAVAILABLE, "error": str(e)})
        return
    except SpawnError as e:
        await send({"communication": INTERNAL_ERROR, "error": str(e)})
        return
    finally:
        ctx.notifier.emit(TOUCH_COMPLETE, {"message": "Signing process finished."})

    if result.ok:
        logger.info(f"签名成功: fingerprint={fingerprint}")
        await send(
            {
                "communication": SIGN_SUCCEEDED,
                "message": message_b64,
                "signature": result.stdout,
            }
        )
    else:
        logger.warning(f"签名失败: fingerprint={fingerprint}, exit={result.exit_code}")
        await send({"communication": SIGN_FAILED, "error": result.stderr})


async def import_key(ctx: BridgeContext, data: bytes, send: Send) -> None:
    """将客户端提供的密钥材料导入本地密钥环。"""
    logger.info(f"导入密钥请求: size={len(data)}")

    async def announce() -> None:
        await send({"communication": IMPORT_STARTED})

    try:
        result = await _run_gpg_on_temp_file(
            ctx,
            "key",
            data,
            announce,
            lambda path: ["--batch", "--no-tty", "--import", path],
        )
    except ExecutableNotFound as e:
        await send({"communication": IMPORT_FAILED, "error": str(e)})
        return
    except SpawnError as e:
        await send({"communication": INTERNAL_ERROR, "error": str(e)})
        return

    if result.ok:
        logger.info("密钥导入成功")
        # gpg 把导入摘要写在 stderr
        await send({"communication": IMPORT_SUCCEEDED, "message": result.stderr.strip()})
    else:
        logger.warning(f"密钥导入失败: exit={result.exit_code}")
        await send({"communication": IMPORT_FAILED, "error": result.stderr})


async def get_keys(ctx: BridgeContext, send: Send) -> None:
    """列出本地公钥；没有密钥时返回空列表而非错误。"""
    try:
        keys = await list_keys(ctx.locator, ctx.runner)
    except ProcessFailure as e:
        await send({"communication": KEYS_FAILED, "error": e.stderr})
        return
    except (ExecutableNotFound, SpawnError) as e:
        await send({"communication": KEYS_FAILED, "error": str(e)})
        return

    if not keys:
        await send({"communication": KEYS_EMPTY, "gpgkeys": []})
        return
    await send({"communication": KEYS_RETRIEVED, "gpgkeys": [k.model_dump() for k in keys]})
