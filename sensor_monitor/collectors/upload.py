"""
设备上报采集器

读取设备最近一次通过 /api/upload 推送的数据。
"""

from typing import Any, Dict

from ..config import SourceConfig
from ..exceptions import SourceUnavailable
from ..storage import UploadStore
from .base import BaseCollector


class UploadCollector(BaseCollector):
    """读取 UploadStore 中的最新上报"""

    def __init__(self, source: SourceConfig, uploads: UploadStore, default_timeout: float = 10.0):
        super().__init__(source, default_timeout)
        self.uploads = uploads

    @property
    def chip(self) -> str:
        return self.source.chip or self.source.id

    async def _collect(self) -> Dict[str, Any]:
        data = await self.uploads.latest(self.chip)
        if data is None:
            raise SourceUnavailable(self.source_id, f"no uploaded data for chip {self.chip}")
        return data
