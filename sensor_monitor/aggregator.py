"""
重采样与聚合

把每个通道窗口内不规则、稀疏的原始读数转换为等间隔网格：
- 网格起点为窗口内第一条有效读数的时间
- 短缺口（前 carry_forward_steps 个补点）沿用下一条真实读数的值
- 更长的缺口补 None，前端显示为断线（数据源离线）
- 极值基于全部原始读数计算，不受网格对齐影响
"""

import json
import logging
from typing import Iterable, List, Optional, Tuple

from .config import ChannelConfig
from .exceptions import BackendUnavailable, MalformedRecord
from .models import ChannelAggregate, Reading, is_number
from .storage import ChannelLogStore

logger = logging.getLogger(__name__)


def parse_sample(raw: str, value_field: str) -> Tuple[int, float]:
    """
    解析一条原始日志记录

    Returns:
        (timestamp, value)

    Raises:
        MalformedRecord: JSON 无效、缺少字段或字段类型错误
    """
    try:
        record = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        raise MalformedRecord("record", f"invalid JSON: {e}") from e

    reading = Reading.from_record(record)
    value = record.get(value_field)
    if value is None:
        raise MalformedRecord(value_field, "missing")
    if not is_number(value):
        raise MalformedRecord(value_field, f"expected a number, got {type(value).__name__}")
    return reading.timestamp, float(value)


def resample_channel(
    channel: ChannelConfig,
    entries: Iterable[str],
    log_key: str,
    carry_forward_steps: int = 2,
) -> Optional[ChannelAggregate]:
    """
    将一个通道的原始记录重采样为等间隔时序

    Args:
        channel: 通道配置（sample_interval 已解析）
        entries: 窗口内原始记录，按写入顺序
        log_key: 通道读取的日志 key
        carry_forward_steps: 每段补点中沿用读数值的点数，之后补 None

    Returns:
        聚合结果；窗口内没有有效读数时返回 None
    """
    interval = channel.sample_interval
    series: List[Optional[float]] = []
    point_start: Optional[int] = None
    cursor = 0
    max_value = min_value = 0.0
    max_time = min_time = 0
    skipped = 0

    for raw in entries:
        try:
            ts, value = parse_sample(raw, channel.value_field)
        except MalformedRecord as e:
            skipped += 1
            logger.debug(f"Skipping malformed entry in {log_key} for {channel.id}: {e}")
            continue

        # 极值统计所有原始读数
        if point_start is None or value > max_value:
            max_value, max_time = value, ts
        if point_start is None or value < min_value:
            min_value, min_time = value, ts

        if point_start is None:
            point_start = ts
            cursor = ts
            series.append(value)
            continue

        # 追赶到当前读数的时间
        emitted = 0
        while cursor < ts:
            series.append(value if emitted < carry_forward_steps else None)
            cursor += interval
            emitted += 1

    if skipped:
        logger.debug(f"Channel {channel.id}: skipped {skipped} malformed entries")

    if point_start is None:
        return None

    return ChannelAggregate(
        id=channel.id,
        name=channel.name,
        log_key=log_key,
        value_field=channel.value_field,
        point_start=point_start,
        point_interval=interval,
        series=series,
        max=max_value,
        max_time=max_time,
        min=min_value,
        min_time=min_time,
        order=channel.sort_priority,
        color=channel.color,
        unit=channel.unit,
    )


class AggregationEngine:
    """对所有通道执行一次完整聚合"""

    def __init__(
        self,
        log_store: ChannelLogStore,
        channels: List[ChannelConfig],
        log_key_prefix: str,
        carry_forward_steps: int = 2,
    ):
        self.log_store = log_store
        self.channels = channels
        self.log_key_prefix = log_key_prefix
        self.carry_forward_steps = carry_forward_steps

    def log_key(self, channel: ChannelConfig) -> str:
        return self.log_key_prefix + channel.source

    async def aggregate_channel(self, channel: ChannelConfig) -> Optional[ChannelAggregate]:
        """读取窗口并重采样单个通道"""
        log_key = self.log_key(channel)
        samples = self.log_store.retention_samples(channel.sample_interval)
        entries = await self.log_store.read_window(log_key, samples)
        return resample_channel(channel, entries, log_key, self.carry_forward_steps)

    async def compute(self) -> List[ChannelAggregate]:
        """
        聚合所有通道

        单个通道失败只跳过该通道；所有通道都因后端不可用而失败时向上抛出。

        Returns:
            按 sort_priority 升序排列的非空通道列表
        """
        results: List[ChannelAggregate] = []
        backend_errors: List[BackendUnavailable] = []

        for channel in self.channels:
            try:
                aggregate = await self.aggregate_channel(channel)
            except BackendUnavailable as e:
                backend_errors.append(e)
                logger.error(f"Aggregation of channel {channel.id} failed: {e}")
                continue
            except Exception as e:
                logger.error(f"Aggregation of channel {channel.id} failed: {e}", exc_info=True)
                continue

            if aggregate is None:
                logger.debug(f"Channel {channel.id} has no data, dropped")
                continue
            results.append(aggregate)

        if self.channels and len(backend_errors) == len(self.channels):
            raise backend_errors[0]

        results.sort(key=lambda a: a.order)
        return results


def serialize_snapshot(aggregates: List[ChannelAggregate]) -> str:
    """序列化聚合结果"""
    return json.dumps([a.model_dump() for a in aggregates])
