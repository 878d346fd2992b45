"""
设备上报校验

设备（如 ESP8266 + DHT 传感器）通过 POST /api/upload 主动推送读数，
服务端只保留每个 chip 的最新一条，由 upload 采集器在采集时读取。
"""

import math
import time
from typing import Any, Dict, Optional

from .config import UploadConfig
from .exceptions import SubmissionRejected
from .models import is_number

UNDEFINED_CHIP = "undefined"


def is_fault_signature(payload: Dict[str, Any], fault_fields) -> bool:
    """
    是否为传感器故障特征：所有故障字段同时为 0

    字段缺失或不是数值按 0 处理。
    """
    if not fault_fields:
        return False
    for field in fault_fields:
        value = payload.get(field)
        if is_number(value) and value != 0:
            return False
    return True


def prepare_submission(
    payload: Any,
    settings: UploadConfig,
    now: Optional[int] = None,
) -> Dict[str, Any]:
    """
    校验并补全上报数据

    Args:
        payload: 请求体（已解析的 JSON）
        settings: 上报配置
        now: 当前 Unix 时间（测试时注入）

    Returns:
        补全 add_time / chip 后的数据

    Raises:
        SubmissionRejected: 请求体不是对象、数值为 NaN/Infinity、
            add_time 不是数值，或命中故障特征
    """
    if not isinstance(payload, dict):
        raise SubmissionRejected("payload must be a JSON object")

    for key, value in payload.items():
        if isinstance(value, float) and not math.isfinite(value):
            raise SubmissionRejected(f"{key}: expected a finite number")

    data = dict(payload)
    if "add_time" not in data:
        data["add_time"] = int(time.time()) if now is None else now
    elif not is_number(data["add_time"]):
        raise SubmissionRejected("add_time: expected a number")

    chip = data.get("chip")
    if not isinstance(chip, str):
        data["chip"] = chip = UNDEFINED_CHIP

    if chip in settings.push_sources and is_fault_signature(data, settings.fault_fields):
        fields = " and ".join(settings.fault_fields)
        raise SubmissionRejected(f"{fields} cannot all be zero")

    return data
