"""
协议分发层。
每个连接持有一个 ProtocolDispatcher：校验入站消息、检查认证状态、路由到对应业务流程，
并在发送前校验每一条出站响应（校验失败只记录日志，不发送）。
"""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, Dict, Optional

from loguru import logger
from pydantic import ValidationError
from starlette.websockets import WebSocketDisconnect

from src.gpg_bridge.context import BridgeContext
from src.gpg_bridge.errors import AuthenticationError, InvalidPayloadError
from src.gpg_bridge.gpg import services as gpg_services
from .auth import Session, authenticate, require_authenticated
from .schemas import (
    COMMAND_NAMES,
    CommandMessage,
    GetKeysCommand,
    ImportKeyCommand,
    InboundEnvelope,
    PasscodeCommand,
    ResponseMessage,
    SignCommand,
    VersionCommand,
    command_adapter,
)

AUTH_SUCCEEDED = "Authentication successful."
ALREADY_AUTHENTICATED = "Already authenticated."
INVALID_PAYLOAD = "Invalid payload."
UNKNOWN_COMMAND = "Unknown command."
VERSION = "version"


def parse_envelope(raw: str) -> InboundEnvelope:
    """
    解析入站 JSON 的外层结构。
    :raises InvalidPayloadError: 不是合法 JSON 对象，或 command 缺失/类型错误。
    """
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise InvalidPayloadError(f"malformed JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidPayloadError("payload is not a JSON object")
    try:
        return InboundEnvelope.model_validate(data)
    except ValidationError as e:
        raise InvalidPayloadError(str(e)) from e


def to_command(envelope: InboundEnvelope) -> CommandMessage:
    """:raises InvalidPayloadError: 命令所需字段缺失或不合法。"""
    try:
        return command_adapter.validate_python(envelope.model_dump(exclude_none=True))
    except ValidationError as e:
        raise InvalidPayloadError(str(e)) from e


def build_response(payload: Dict[str, Any]) -> Optional[ResponseMessage]:
    try:
        return ResponseMessage.model_validate(payload)
    except ValidationError as e:
        logger.error(f"Invalid outbound payload: {e}")
        return None


class ProtocolDispatcher:
    def __init__(self, ctx: BridgeContext, transmit: Callable[[str], Awaitable[None]]) -> None:
        self.ctx = ctx
        self.session = Session()
        self._transmit = transmit
        self._handlers: Dict[type, Callable[[Any], Awaitable[None]]] = {
            PasscodeCommand: self._on_passcode,
            SignCommand: self._on_sign,
            GetKeysCommand: self._on_getkeys,
            VersionCommand: self._on_version,
            ImportKeyCommand: self._on_importkey,
        }

    async def send(self, payload: Dict[str, Any]) -> None:
        response = build_response(payload)
        if response is None:
            return
        await self._transmit(response.model_dump_json(exclude_none=True))

    async def handle(self, raw: str) -> None:
        """按到达顺序处理一条入站消息；任何请求级错误都不会关闭连接。"""
        try:
            envelope = parse_envelope(raw)
            if envelope.command != "passcode":
                require_authenticated(self.session)
            if envelope.command not in COMMAND_NAMES:
                logger.warning(f"未知命令: {envelope.command!r}")
                await self.send({"communication": UNKNOWN_COMMAND})
                return
            command = to_command(envelope)
        except InvalidPayloadError as e:
            logger.warning(f"无效的入站消息: {e}")
            await self.send({"communication": INVALID_PAYLOAD})
            return
        except AuthenticationError as e:
            await self.send({"communication": str(e)})
            return

        logger.info(f"收到命令: {command.command}")
        try:
            await self._handlers[type(command)](command)
        except WebSocketDisconnect:
            raise
        except Exception as e:
            logger.exception(f"处理命令 {command.command} 时发生错误: {e}")
            await self.send({"communication": gpg_services.INTERNAL_ERROR, "error": str(e)})

    async def _on_passcode(self, command: PasscodeCommand) -> None:
        if self.session.authenticated:
            await self.send({"communication": ALREADY_AUTHENTICATED})
            return
        try:
            authenticate(self.session, self.ctx.passcode, command.message)
        except AuthenticationError as e:
            await self.send({"communication": str(e)})
            return
        await self.send({"communication": AUTH_SUCCEEDED})

    async def _on_sign(self, command: SignCommand) -> None:
        await gpg_services.sign_message(
            self.ctx, command.message, command.payload(), command.fingerprint, self.send
        )

    async def _on_getkeys(self, command: GetKeysCommand) -> None:
        await gpg_services.get_keys(self.ctx, self.send)

    async def _on_version(self, command: VersionCommand) -> None:
        await self.send(
            {
                "communication": VERSION,
                "name": self.ctx.config.app_name,
                "version": self.ctx.config.app_version,
            }
        )

    async def _on_importkey(self, command: ImportKeyCommand) -> None:
        await gpg_services.import_key(self.ctx, command.payload(), self.send)
