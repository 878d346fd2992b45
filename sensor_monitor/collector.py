"""
采集编排

一次采集：并发调用所有数据源的采集器，成功的读数追加到对应日志，
失败的数据源只跳过自己。同一时间只允许一次采集在运行，
运行期间的新触发直接忽略（不排队、不阻塞）。
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .cache import SnapshotCache
from .collectors import BaseCollector
from .exceptions import BackendUnavailable, MalformedRecord, SourceUnavailable
from .models import CollectionReport, Reading, SourceResult
from .storage import ChannelLogStore

logger = logging.getLogger(__name__)


def normalize_reading(source_id: str, raw: Dict[str, Any], now: Optional[int] = None) -> Reading:
    """
    补全采集结果并转换为 Reading

    name 缺省为数据源 ID，add_time 缺省为当前时间。

    Raises:
        MalformedRecord: 补全后仍无法解析
    """
    data = dict(raw)
    data.setdefault("name", source_id)
    if "add_time" not in data:
        data["add_time"] = int(time.time()) if now is None else now
    return Reading.from_record(data)


class CollectionOrchestrator:
    """单飞采集编排器"""

    def __init__(
        self,
        collectors: List[BaseCollector],
        log_store: ChannelLogStore,
        log_key: Callable[[str], str],
        trim_interval: Callable[[str], int],
    ):
        """
        Args:
            collectors: 所有启用的数据源采集器
            log_store: 日志存储
            log_key: 数据源 ID -> 日志 key
            trim_interval: 数据源 ID -> 日志裁剪使用的采样间隔
        """
        self.collectors = collectors
        self.log_store = log_store
        self.log_key = log_key
        self.trim_interval = trim_interval
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def get_collector(self, source_id: str) -> Optional[BaseCollector]:
        for collector in self.collectors:
            if collector.source_id == source_id:
                return collector
        return None

    async def collect_source(self, collector: BaseCollector) -> SourceResult:
        """采集单个数据源并写入日志，不抛异常"""
        source_id = collector.source_id
        start = time.monotonic()
        try:
            raw = await collector.collect()
            reading = normalize_reading(source_id, raw)
            await self.log_store.append(self.log_key(source_id), reading, self.trim_interval(source_id))
        except (SourceUnavailable, MalformedRecord, BackendUnavailable) as e:
            duration = time.monotonic() - start
            logger.warning(f"Failed to collect {source_id} ({duration:.3f}s): {e}")
            return SourceResult(source_id=source_id, ok=False, duration=duration, error=str(e))
        except Exception as e:
            duration = time.monotonic() - start
            logger.error(f"Unexpected error collecting {source_id}: {e}", exc_info=True)
            return SourceResult(source_id=source_id, ok=False, duration=duration, error=str(e))

        duration = time.monotonic() - start
        logger.info(f"Collected {source_id} in {duration:.3f}s")
        return SourceResult(source_id=source_id, ok=True, duration=duration)

    async def run_once(self) -> Optional[CollectionReport]:
        """
        执行一次完整采集

        Returns:
            采集报告；已有采集在运行时返回 None
        """
        # 检查与加锁之间没有 await，在事件循环内是原子操作
        if self._lock.locked():
            logger.info("Collection already running, trigger ignored")
            return None

        async with self._lock:
            report = CollectionReport(started_at=datetime.utcnow())
            results = await asyncio.gather(*(self.collect_source(c) for c in self.collectors))
            report.results.extend(results)

        ok_count = len(report.succeeded)
        logger.info(f"Collection finished: {ok_count}/{len(report.results)} sources succeeded")
        return report


async def collect_and_refresh(orchestrator: CollectionOrchestrator, cache: SnapshotCache) -> Optional[CollectionReport]:
    """采集一次后强制重算缓存（采集被跳过时也重算）"""
    report = await orchestrator.run_once()
    await cache.force_recompute()
    return report


async def run_collection_loop(orchestrator: CollectionOrchestrator, cache: SnapshotCache, interval: int):
    """
    运行采集循环

    每隔 interval 秒采集一次并刷新缓存。
    """
    logger.info(f"Starting collection loop (interval={interval}s, sources={len(orchestrator.collectors)})")

    while True:
        try:
            await collect_and_refresh(orchestrator, cache)
        except asyncio.CancelledError:
            logger.info("Collection loop cancelled")
            raise
        except Exception as e:
            logger.error(f"Collection loop error: {e}", exc_info=True)

        await asyncio.sleep(interval)
