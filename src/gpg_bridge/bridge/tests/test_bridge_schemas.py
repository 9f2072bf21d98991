"""
测试协议数据模型。
"""

import base64

import pytest
from pydantic import ValidationError

from src.gpg_bridge.bridge.schemas import (
    InboundEnvelope,
    ResponseMessage,
    SignCommand,
    command_adapter,
)


def test_envelope_ignores_extra_fields():
    env = InboundEnvelope.model_validate({"command": "version", "extra": 1})
    assert env.command == "version"
    assert env.message is None


def test_envelope_requires_string_command():
    with pytest.raises(ValidationError):
        InboundEnvelope.model_validate({"command": 5})
    with pytest.raises(ValidationError):
        InboundEnvelope.model_validate({"message": "x"})


def test_command_union_discriminates():
    cmd = command_adapter.validate_python({"command": "getkeys"})
    assert cmd.command == "getkeys"

    sign = command_adapter.validate_python(
        {"command": "sign", "message": "aGVsbG8=", "fingerprint": "ABCD"}
    )
    assert isinstance(sign, SignCommand)
    assert sign.payload() == b"hello"


def test_sign_command_requires_fields():
    with pytest.raises(ValidationError):
        command_adapter.validate_python({"command": "sign", "message": "aGVsbG8="})
    with pytest.raises(ValidationError):
        command_adapter.validate_python({"command": "sign", "fingerprint": "ABCD"})
    with pytest.raises(ValidationError):
        command_adapter.validate_python(
            {"command": "sign", "message": "aGVsbG8=", "fingerprint": ""}
        )


def test_sign_command_rejects_invalid_base64():
    with pytest.raises(ValidationError):
        command_adapter.validate_python(
            {"command": "sign", "message": "not base64!!", "fingerprint": "ABCD"}
        )


def test_payload_tolerates_line_breaks():
    data = bytes(range(256))
    encoded = base64.encodebytes(data).decode("ascii")
    sign = SignCommand(command="sign", message=encoded, fingerprint="ABCD")
    assert sign.payload() == data


def test_response_keeps_empty_key_list():
    response = ResponseMessage(communication="No GPG keys found.", gpgkeys=[])
    assert response.model_dump_json(exclude_none=True) == (
        '{"communication":"No GPG keys found.","gpgkeys":[]}'
    )


def test_response_rejects_unknown_fields():
    with pytest.raises(ValidationError):
        ResponseMessage.model_validate({"communication": "x", "bogus": True})


def test_payload_accepts_missing_padding():
    sign = SignCommand(command="sign", message="aGVsbG8", fingerprint="ABCD")
    assert sign.payload() == b"hello"
    key = command_adapter.validate_python({"command": "importkey", "message": "aGk"})
    assert key.payload() == b"hi"
