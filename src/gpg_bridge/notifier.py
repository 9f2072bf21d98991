"""
面向外部 UI 外壳的单向事件通道（发出即忘）。

事件：
- server-status: {"running": True, "port": ..., "passCode": ...} / {"running": False}
- yubikey-touch-required / yubikey-touch-complete: {"message": ...}
- log-message: {"line": ...}，由 loguru sink 转发
监听器抛出的异常会被记录，不会影响调用方。
"""

from __future__ import annotations

import sys
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

Listener = Callable[[str, Dict[str, Any]], None]

SERVER_STATUS = "server-status"
TOUCH_REQUIRED = "yubikey-touch-required"
TOUCH_COMPLETE = "yubikey-touch-complete"
LOG_MESSAGE = "log-message"

LOG_FORMAT = "{time:YYYY-MM-DDTHH:mm:ss.SSSZ} - {level}: {message}"


class Notifier:
    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """注册监听器，返回取消注册的函数。"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _dispatch(self, event: str, payload: Dict[str, Any]) -> List[Exception]:
        errors: List[Exception] = []
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception as e:
                errors.append(e)
        return errors

    def emit(self, event: str, payload: Optional[Dict[str, Any]] = None) -> None:
        for e in self._dispatch(event, payload or {}):
            logger.warning(f"UI 事件 {event} 的监听器出错: {e}")

    def log_sink(self, message) -> None:
        """loguru sink：把日志行转发给 UI。"""
        # sink 内部不能再调用 logger，监听器错误直接写到 stderr
        for e in self._dispatch(LOG_MESSAGE, {"line": str(message).rstrip("\n")}):
            print(f"log-message listener failed: {e}", file=sys.stderr)
