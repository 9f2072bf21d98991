"""
文件功能：
    定义 WebSocket 协议的入站命令与出站响应数据模型（Pydantic）。

公开接口：
    - InboundEnvelope: 入站消息的外层结构（仅校验 JSON 形状）
    - PasscodeCommand / SignCommand / GetKeysCommand / VersionCommand / ImportKeyCommand
    - CommandMessage: 以 command 字段区分的命令联合类型
    - COMMAND_NAMES: 全部已知命令字面量
    - ResponseMessage: 出站响应

内部方法：
    - _decode_base64: 解码 Base64 负载（允许缺省填充）
"""

from __future__ import annotations

import base64
import binascii
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr, TypeAdapter, field_validator

from src.gpg_bridge.gpg.schemas import KeyRecord


def _decode_base64(value: str) -> bytes:
    text = "".join(value.split())
    # 与浏览器端保持一致：允许省略末尾的 "=" 填充
    text += "=" * (-len(text) % 4)
    return base64.b64decode(text, validate=True)


class InboundEnvelope(BaseModel):
    """入站消息：{command, message?, fingerprint?}，多余字段忽略。"""

    model_config = ConfigDict(extra="ignore")

    command: StrictStr
    message: Optional[StrictStr] = None
    fingerprint: Optional[StrictStr] = None


class PasscodeCommand(BaseModel):
    command: Literal["passcode"]
    message: Optional[str] = Field(default=None, description="6 位数字口令")


class SignCommand(BaseModel):
    command: Literal["sign"]
    message: str = Field(description="Base64 编码的待签名内容")
    fingerprint: str = Field(min_length=1, description="签名密钥指纹")

    @field_validator("message")
    @classmethod
    def check_base64(cls, value: str) -> str:
        try:
            _decode_base64(value)
        except binascii.Error as e:
            raise ValueError(f"message is not valid base64: {e}")
        return value

    def payload(self) -> bytes:
        return _decode_base64(self.message)


class GetKeysCommand(BaseModel):
    command: Literal["getkeys"]


class VersionCommand(BaseModel):
    command: Literal["version"]


class ImportKeyCommand(BaseModel):
    command: Literal["importkey"]
    message: str = Field(description="Base64 编码的密钥材料")

    @field_validator("message")
    @classmethod
    def check_base64(cls, value: str) -> str:
        try:
            _decode_base64(value)
        except binascii.Error as e:
            raise ValueError(f"message is not valid base64: {e}")
        return value

    def payload(self) -> bytes:
        return _decode_base64(self.message)


CommandMessage = Annotated[
    Union[PasscodeCommand, SignCommand, GetKeysCommand, VersionCommand, ImportKeyCommand],
    Field(discriminator="command"),
]

COMMAND_NAMES = ("passcode", "sign", "getkeys", "version", "importkey")

command_adapter: TypeAdapter[CommandMessage] = TypeAdapter(CommandMessage)


class ResponseMessage(BaseModel):
    """出站响应，发送前必须通过校验。"""

    model_config = ConfigDict(extra="forbid")

    communication: str = Field(description="面向人的状态描述")
    message: Optional[str] = None
    signature: Optional[str] = None
    error: Optional[str] = None
    gpgkeys: Optional[List[KeyRecord]] = None
    name: Optional[str] = None
    version: Optional[str] = None
