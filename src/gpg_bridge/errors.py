"""
文件功能：
    定义桥接进程的异常分类。

公开接口：
    - BridgeError: 所有桥接异常的基类
    - ConfigurationError: 证书文件缺失/歧义，启动期致命
    - TransportRejection: 非 TLS 或非回环连接，升级被拒绝
    - InvalidPayloadError: 入站消息格式错误，可恢复
    - AuthenticationError: 口令错误或未认证，可恢复
    - ExecutableNotFound: 找不到 GPG 可执行文件，可恢复
    - SpawnError: 子进程启动失败，可恢复
    - ProcessFailure: 子进程以非零状态退出，可恢复
    - ResourceCleanupError: 临时文件删除失败，仅记录日志
"""

from __future__ import annotations


class BridgeError(Exception):
    """桥接进程异常基类。"""


class ConfigurationError(BridgeError):
    pass


class TransportRejection(BridgeError):
    pass


class InvalidPayloadError(BridgeError):
    pass


class AuthenticationError(BridgeError):
    pass


class ExecutableNotFound(BridgeError):
    pass


class SpawnError(BridgeError):
    def __init__(self, executable: str, reason: str) -> None:
        super().__init__(f"无法启动进程 {executable}: {reason}")
        self.executable = executable
        self.reason = reason


class ProcessFailure(BridgeError):
    def __init__(self, exit_code: int, stderr: str) -> None:
        super().__init__(f"进程退出码 {exit_code}: {stderr.strip()}")
        self.exit_code = exit_code
        self.stderr = stderr


class ResourceCleanupError(BridgeError):
    pass
