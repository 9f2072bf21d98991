from __future__ import annotations

from dataclasses import dataclass
import secrets
from typing import Optional

from loguru import logger

from src.gpg_bridge.errors import AuthenticationError


PASSCODE_DIGITS = 6


def generate_passcode() -> str:
    """进程启动时生成一次的 6 位数字口令（含前导零）。"""
    return f"{secrets.randbelow(10 ** PASSCODE_DIGITS):0{PASSCODE_DIGITS}d}"


def verify_passcode(expected: str, submitted: Optional[str]) -> bool:
    # constant-time compare
    return secrets.compare_digest(expected.encode("utf-8"), (submitted or "").encode("utf-8"))


@dataclass
class Session:
    """单个连接的认证状态，连接建立时创建，断开时丢弃。"""

    authenticated: bool = False


def authenticate(session: Session, expected: str, submitted: Optional[str]) -> None:
    """
    唯一的状态迁移：未认证 -> 已认证。
    :raises AuthenticationError: 口令缺失或不一致，会话保持未认证。
    """
    if not verify_passcode(expected, submitted):
        logger.warning("口令校验失败")
        raise AuthenticationError("Authentication failed.")
    session.authenticated = True
    logger.info("会话认证成功")


def require_authenticated(session: Session) -> None:
    if not session.authenticated:
        raise AuthenticationError("Authentication required.")
