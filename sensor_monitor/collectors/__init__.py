"""
数据采集器模块

包含 lm-sensors、远程命令、设备上报、psutil、HTTP 采集器
"""

from ..config import SourceConfig
from ..storage import UploadStore
from .base import BaseCollector
from .http_json import HttpCollector
from .lm_sensors import LmSensorsCollector, parse_sensors_output
from .remote import RemoteCommandCollector, parse_remote_output
from .system import SystemCollector
from .upload import UploadCollector

__all__ = [
    "BaseCollector",
    "HttpCollector",
    "LmSensorsCollector",
    "RemoteCommandCollector",
    "SystemCollector",
    "UploadCollector",
    "build_collector",
    "parse_remote_output",
    "parse_sensors_output",
]


def build_collector(source: SourceConfig, uploads: UploadStore, default_timeout: float = 10.0) -> BaseCollector:
    """按数据源类型创建采集器"""
    if source.kind == "upload":
        return UploadCollector(source, uploads, default_timeout)
    if source.kind == "lm_sensors":
        return LmSensorsCollector(source, default_timeout)
    if source.kind == "remote_command":
        return RemoteCommandCollector(source, default_timeout)
    if source.kind == "system":
        return SystemCollector(source, default_timeout)
    if source.kind == "http":
        return HttpCollector(source, default_timeout)
    raise ValueError(f"unknown source kind: {source.kind}")
