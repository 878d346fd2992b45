"""
数据模型定义

包括：
- Reading：单条读数及其存储格式转换
- ChannelAggregate：重采样后的通道时序（API 响应）
- 采集报告、上报响应
"""

import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .exceptions import MalformedRecord

# 存储格式中的保留字段，其余数值字段都是读数
RESERVED_FIELDS = ("name", "add_time")


def is_number(value: Any) -> bool:
    """是否为有限数值（bool、NaN、Infinity 不算）"""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


# =============================================================================
# 读数
# =============================================================================

class Reading(BaseModel):
    """
    单条读数

    存储格式为扁平 JSON：
        {"name": "nas", "add_time": 1700000000, "CPU": 41.5, "CPU0": 40.0}
    """
    timestamp: int = Field(..., description="Unix 秒")
    source_id: str
    values: Dict[str, float] = Field(default_factory=dict)

    def to_record(self) -> Dict[str, Any]:
        """转换为存储格式"""
        record: Dict[str, Any] = {"name": self.source_id, "add_time": self.timestamp}
        record.update(self.values)
        return record

    @classmethod
    def from_record(cls, record: Any) -> "Reading":
        """
        从存储格式解析

        Raises:
            MalformedRecord: 记录不是对象、缺少 add_time 或 name 类型错误
        """
        if not isinstance(record, dict):
            raise MalformedRecord("record", f"expected an object, got {type(record).__name__}")

        add_time = record.get("add_time")
        if add_time is None:
            raise MalformedRecord("add_time", "missing")
        if not is_number(add_time):
            raise MalformedRecord("add_time", f"expected a number, got {type(add_time).__name__}")

        name = record.get("name", "")
        if not isinstance(name, str):
            raise MalformedRecord("name", f"expected a string, got {type(name).__name__}")

        values = {
            key: float(value)
            for key, value in record.items()
            if key not in RESERVED_FIELDS and is_number(value)
        }
        return cls(timestamp=int(add_time), source_id=name, values=values)


# =============================================================================
# 聚合结果
# =============================================================================

class ChannelAggregate(BaseModel):
    """单个通道的重采样时序"""
    id: str
    name: str
    log_key: str
    value_field: str
    point_start: int = Field(..., description="网格起点（窗口内第一条有效读数的时间）")
    point_interval: int
    series: List[Optional[float]] = Field(default_factory=list)
    max: float
    max_time: int
    min: float
    min_time: int
    order: int = 0
    color: str = "#FF9933"
    unit: str = "Degrees"


# =============================================================================
# 采集
# =============================================================================

class SourceResult(BaseModel):
    """单个数据源的采集结果"""
    source_id: str
    ok: bool
    duration: float = Field(..., description="耗时（秒）")
    error: Optional[str] = None


class CollectionReport(BaseModel):
    """一次完整采集的报告"""
    started_at: datetime
    results: List[SourceResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> List[str]:
        return [r.source_id for r in self.results if r.ok]


class CollectResponse(BaseModel):
    """POST /api/collect 响应"""
    status: str
    started_at: Optional[datetime] = Field(default=None, description="采集开始时间（UTC），跳过时为空")
    results: List[SourceResult] = Field(default_factory=list)


class StatusResponse(BaseModel):
    """简单状态响应"""
    status: str
    detail: Optional[str] = None
