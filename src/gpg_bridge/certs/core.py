"""
TLS 证书的加载与生成。
证书目录中必须恰好存在一个私钥文件和一个证书文件（按文件名不区分大小写匹配），
若目录中完全没有候选文件，则生成一份自签名证书并落盘。
"""

import ipaddress
import os
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    PrivateFormat,
    NoEncryption,
)
from cryptography.x509.oid import NameOID, ExtendedKeyUsageOID
from loguru import logger

from src.gpg_bridge.errors import ConfigurationError
from .schemas import CertificateBundle

KEY_NAME_RE = re.compile(r"^cert(?:ificate)?\.key$|^key\.pem$", re.IGNORECASE)
CERT_NAME_RE = re.compile(r"^cert(?:ificate)?\.(?:crt|pem)$", re.IGNORECASE)

KEY_FILE_NAME = "key.pem"
CERT_FILE_NAME = "cert.pem"

# 自签名证书的固定主体
_SUBJECT = x509.Name(
    [
        x509.NameAttribute(NameOID.COUNTRY_NAME, "US"),
        x509.NameAttribute(NameOID.STATE_OR_PROVINCE_NAME, "Texas"),
        x509.NameAttribute(NameOID.LOCALITY_NAME, "Austin"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Unchained"),
        x509.NameAttribute(NameOID.COMMON_NAME, "GPG-Bridge"),
    ]
)
_VALID_DAYS = 365


def _find_candidates(cert_dir: Path) -> Tuple[List[str], List[str]]:
    """返回目录中匹配的 (私钥文件名列表, 证书文件名列表)。"""
    names = sorted(p.name for p in cert_dir.iterdir() if p.is_file())
    keys = [n for n in names if KEY_NAME_RE.match(n)]
    certs = [n for n in names if CERT_NAME_RE.match(n)]
    return keys, certs


def _pick_single(candidates: List[str], kind: str, expected: str, cert_dir: Path) -> str:
    if not candidates:
        raise ConfigurationError(f"Expected file `{cert_dir / expected}` not found.")
    if len(candidates) > 1:
        raise ConfigurationError(
            f"Ambiguous {kind} files in {cert_dir}: {', '.join(candidates)}"
        )
    return candidates[0]


def load_certificates(cert_dir: str | Path) -> CertificateBundle:
    """
    从证书目录加载私钥与证书。
    :param cert_dir: 证书目录。
    :return: CertificateBundle。
    :raises ConfigurationError: 目录缺失、候选文件为零或多于一个、内容无法解析或不匹配。
    """
    cert_dir = Path(cert_dir)
    if not cert_dir.is_dir():
        raise ConfigurationError(f"Certificate directory `{cert_dir}` not found.")

    keys, certs = _find_candidates(cert_dir)
    key_name = _pick_single(keys, "private key", KEY_FILE_NAME, cert_dir)
    cert_name = _pick_single(certs, "certificate", CERT_FILE_NAME, cert_dir)

    key_path = cert_dir / key_name
    cert_path = cert_dir / cert_name
    private_key_pem = key_path.read_text(encoding="utf-8")
    certificate_pem = cert_path.read_text(encoding="utf-8")

    try:
        private_key = serialization.load_pem_private_key(
            private_key_pem.encode("utf-8"), password=None
        )
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"无法解析私钥 {key_path}: {e}") from e
    try:
        certificate = x509.load_pem_x509_certificate(certificate_pem.encode("utf-8"))
    except ValueError as e:
        raise ConfigurationError(f"无法解析证书 {cert_path}: {e}") from e

    public_format = serialization.PublicFormat.SubjectPublicKeyInfo
    if private_key.public_key().public_bytes(Encoding.PEM, public_format) != certificate.public_key().public_bytes(
        Encoding.PEM, public_format
    ):
        raise ConfigurationError(f"私钥 {key_name} 与证书 {cert_name} 不匹配")

    logger.info(f"已加载 TLS 证书: {cert_path}")
    return CertificateBundle(
        private_key=private_key_pem,
        certificate=certificate_pem,
        key_path=str(key_path),
        cert_path=str(cert_path),
    )


def _build_self_signed() -> Tuple[ec.EllipticCurvePrivateKey, x509.Certificate]:
    key = ec.generate_private_key(ec.SECP256R1())
    now = datetime.now(timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(_SUBJECT)
        .issuer_name(_SUBJECT)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=1))
        .not_valid_after(now + timedelta(days=_VALID_DAYS))
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(
            x509.SubjectAlternativeName(
                [
                    x509.DNSName("localhost"),
                    x509.IPAddress(ipaddress.ip_address("127.0.0.1")),
                    x509.IPAddress(ipaddress.ip_address("::1")),
                ]
            ),
            critical=False,
        )
        .add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]),
            critical=False,
        )
    )
    cert = builder.sign(private_key=key, algorithm=hashes.SHA256())
    return key, cert


def create_certificates(cert_dir: str | Path) -> bool:
    """
    在证书目录中没有任何候选文件时生成自签名证书。
    :param cert_dir: 证书目录（不存在时自动创建）。
    :return: 生成了新证书返回 True；已存在有效的一对时返回 False。
    :raises ConfigurationError: 已有候选文件但缺失或有歧义（不会覆盖）。
    """
    cert_dir = Path(cert_dir)
    cert_dir.mkdir(parents=True, exist_ok=True)

    keys, certs = _find_candidates(cert_dir)
    if keys or certs:
        # 已有文件时只做校验，绝不覆盖客户端可能已信任的证书
        load_certificates(cert_dir)
        return False

    logger.info("未找到证书文件，正在生成自签名证书")
    key, cert = _build_self_signed()

    key_path = cert_dir / KEY_FILE_NAME
    # 创建时即为 0600，私钥不会有其它用户可读的窗口期
    fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(
            key.private_bytes(
                encoding=Encoding.PEM,
                format=PrivateFormat.PKCS8,
                encryption_algorithm=NoEncryption(),
            )
        )
    with open(cert_dir / CERT_FILE_NAME, "wb") as f:
        f.write(cert.public_bytes(Encoding.PEM))

    logger.info(f"自签名证书已写入 {cert_dir}")
    return True


def ensure_certificates(cert_dir: str | Path) -> CertificateBundle:
    """启动时调用：必要时生成证书，然后加载。"""
    create_certificates(cert_dir)
    return load_certificates(cert_dir)
