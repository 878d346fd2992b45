"""
本机 lm-sensors 采集器

执行 sensors 命令并解析输出，例如：
    coretemp-isa-0000
    Adapter: ISA adapter
    Package id 0:  +33.0°C  (high = +80.0°C, crit = +100.0°C)
    Core 0:        +30.0°C  (high = +80.0°C, crit = +100.0°C)
    Core 1:        +32.0°C  (high = +80.0°C, crit = +100.0°C)
    fan1:                   663 RPM  (min =    0 RPM)
"""

import re
import shlex
from typing import Any, Dict

from .base import BaseCollector, run_command

CORE_RE = re.compile(r"Core\s\d+:\s+\+(\d+\.?\d*)")
FIELD_RE = re.compile(r"([^:]+):\s+\+?(\d+\.?\d*)")


def parse_sensors_output(output: str) -> Dict[str, float]:
    """
    解析 sensors 输出

    Returns:
        CPU0..CPUn 为各核心温度，CPU 为核心平均温度，
        其余每行 "标签: 数值" 中大于 0 的数值按标签保存

    Raises:
        ValueError: 输出中没有任何读数
    """
    data: Dict[str, float] = {}

    cores = [float(v) for v in CORE_RE.findall(output)]
    for index, temp in enumerate(cores):
        data[f"CPU{index}"] = temp
    if cores:
        data["CPU"] = round(sum(cores) / len(cores), 2)

    for line in output.splitlines():
        for label, value in FIELD_RE.findall(line):
            number = float(value)
            if number > 0:
                data[label.strip()] = number

    if not data:
        raise ValueError("no readings in sensors output")
    return data


class LmSensorsCollector(BaseCollector):
    """本机 sensors 命令"""

    async def _collect(self) -> Dict[str, Any]:
        command = self.source.command or "sensors"
        output = await run_command(*shlex.split(command))
        return parse_sensors_output(output)
