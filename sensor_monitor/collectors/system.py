"""
本机系统采集器

通过 psutil 采集 CPU 使用率（整体 + 每核）和 CPU 温度。
"""

import asyncio
from typing import Any, Dict

import psutil

from .base import BaseCollector

# psutil.sensors_temperatures() 中常见的 CPU 温度来源
TEMPERATURE_SENSORS = ("coretemp", "k10temp", "cpu_thermal", "cpu-thermal")


def read_system_stats(sample_seconds: float = 0.5) -> Dict[str, float]:
    """
    采集 CPU 使用率和温度（阻塞 sample_seconds 秒）

    Returns:
        CPU 为整体使用率，CPU0..CPUn 为每核使用率，
        temperature 为 CPU 温度（平台支持时）
    """
    per_core = psutil.cpu_percent(interval=sample_seconds, percpu=True)
    data: Dict[str, float] = {}
    for index, pct in enumerate(per_core):
        data[f"CPU{index}"] = float(pct)
    if per_core:
        data["CPU"] = round(sum(per_core) / len(per_core), 2)

    sensors_temperatures = getattr(psutil, "sensors_temperatures", None)
    if sensors_temperatures is not None:
        temps = sensors_temperatures() or {}
        for name in TEMPERATURE_SENSORS:
            entries = temps.get(name)
            if entries:
                data["temperature"] = float(entries[0].current)
                break

    return data


class SystemCollector(BaseCollector):
    """psutil 本机采集"""

    async def _collect(self) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, read_system_stats)
