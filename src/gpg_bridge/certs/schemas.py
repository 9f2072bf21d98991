"""
TLS 证书的数据模型定义。
"""

from pydantic import BaseModel, ConfigDict, Field


class CertificateBundle(BaseModel):
    """
    本地监听所用的私钥与证书（PEM 文本），加载后不可变。
    """
    model_config = ConfigDict(frozen=True)

    private_key: str = Field(description="PEM 格式私钥")
    certificate: str = Field(description="PEM 格式证书")
    key_path: str = Field(description="私钥文件路径，供 uvicorn 使用")
    cert_path: str = Field(description="证书文件路径，供 uvicorn 使用")
