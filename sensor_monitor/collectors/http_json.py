"""
HTTP 采集器

拉取另一个节点提供的 JSON 读数（如另一台 Sensor Monitor 的
/api/sources/{id}/snapshot）。
"""

from typing import Any, Dict

import httpx

from .base import BaseCollector


class HttpCollector(BaseCollector):
    """GET url，返回 JSON 对象"""

    async def _collect(self) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(self.source.url)
            response.raise_for_status()
            data = response.json()

        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object from {self.source.url}")
        return data
