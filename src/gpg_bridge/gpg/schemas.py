"""
文件功能：
    定义 GPG 调用相关的数据模型（Pydantic）。

公开接口：
    - KeyRecord: 一把公钥的指纹、UID 与 ASCII 装甲导出
    - ProcessResult: 子进程执行结果
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class KeyRecord(BaseModel):
    """密钥列表中的一条记录，仅在单次 getkeys 请求内存在。"""

    fingerprint: str = Field(description="密钥指纹")
    uid: str = Field(description="用户标识（姓名/邮箱）")
    pubkey: str | None = Field(default=None, description="ASCII 装甲格式的公钥")


class ProcessResult(BaseModel):
    """子进程的完整输出与退出码。"""

    stdout: str = Field(default="", description="标准输出")
    stderr: str = Field(default="", description="标准错误")
    exit_code: int = Field(description="进程退出码")

    @property
    def ok(self) -> bool:
        return self.exit_code == 0
