"""
传感器 API

提供聚合时序查询、采集触发、单数据源快照和设备上报。
"""

import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from ...cache import truncate_snapshot
from ...collector import collect_and_refresh
from ...exceptions import SourceUnavailable, SubmissionRejected
from ...models import CollectResponse, StatusResponse
from ...services import SensorServices
from ...submission import prepare_submission
from ..dependencies import get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["sensors"])


def json_response(snapshot: str) -> Response:
    return Response(content=snapshot, media_type="application/json")


def reject_constant(name: str):
    """json.loads 遇到 NaN / Infinity / -Infinity 时调用"""
    raise ValueError(f"non-finite number {name} is not allowed")


@router.get("/series")
async def get_series(
    limit: Optional[int] = Query(None, ge=0, description="每个通道只返回最近 limit 个点"),
    services: SensorServices = Depends(get_services)
):
    """
    获取聚合时序（带缓存）

    缓存未命中或过期时重新计算。
    """
    snapshot = await services.cache.get_or_compute()
    if limit is None:
        return json_response(snapshot)
    return truncate_snapshot(snapshot, limit)


@router.get("/series/fresh")
async def get_fresh_series(services: SensorServices = Depends(get_services)):
    """跳过缓存，重新计算聚合时序"""
    snapshot = await services.cache.force_recompute()
    return json_response(snapshot)


@router.api_route("/collect", methods=["GET", "POST"], response_model=CollectResponse)
async def trigger_collection(services: SensorServices = Depends(get_services)):
    """
    触发一次采集并刷新缓存

    已有采集在运行时不会重复采集，返回 status=skipped。
    """
    report = await collect_and_refresh(services.orchestrator, services.cache)
    if report is None:
        return CollectResponse(status="skipped")
    return CollectResponse(status="ok", started_at=report.started_at, results=report.results)


@router.get("/sources/{source_id}/snapshot")
async def get_source_snapshot(source_id: str, services: SensorServices = Depends(get_services)) -> Dict[str, Any]:
    """直接调用一个数据源的采集器，返回原始读数（不写入日志）"""
    collector = services.orchestrator.get_collector(source_id)
    if collector is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Source {source_id} not found"
        )

    try:
        return await collector.collect()
    except SourceUnavailable as e:
        logger.warning(str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to read sensors"
        )


@router.post("/upload", response_model=StatusResponse)
async def upload_reading(request: Request, services: SensorServices = Depends(get_services)):
    """
    设备上报读数

    只保存每个 chip 的最新一条；已知设备温湿度同时为 0 时拒绝。
    """
    body = await request.body()
    try:
        payload = json.loads(body, parse_constant=reject_constant)
    except (UnicodeDecodeError, ValueError) as e:
        raise SubmissionRejected(f"invalid JSON: {e}") from e

    data = prepare_submission(payload, services.config.upload)
    await services.uploads.save(data["chip"], data)
    logger.info(f"Upload accepted from chip {data['chip']}")
    return StatusResponse(status="ok")


@router.get("/health", response_model=StatusResponse)
async def health(services: SensorServices = Depends(get_services)):
    """健康检查（PING Redis）"""
    if await services.backend.ping():
        return StatusResponse(status="ok")
    return StatusResponse(status="degraded", detail="Redis unreachable")
