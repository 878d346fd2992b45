"""
依赖注入模块

提供 FastAPI 依赖项。
"""

from fastapi import Request

from ..services import SensorServices


async def get_services(request: Request) -> SensorServices:
    """获取应用的服务容器"""
    return request.app.state.services
