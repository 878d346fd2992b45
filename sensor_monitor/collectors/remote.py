"""
远程命令采集器

通过 ssh（密钥认证、BatchMode）在远端执行命令，用正则提取一个数值，
例如路由器上的 `cat /proc/dmu/temperature`：
    CPU temperature : 61
"""

import re
from typing import Any, Dict, List

from .base import BaseCollector, run_command


def parse_remote_output(output: str, pattern: str, field: str) -> Dict[str, float]:
    """
    用正则的第一个分组提取数值

    Raises:
        ValueError: 没有匹配
    """
    match = re.search(pattern, output)
    if not match:
        raise ValueError(f"pattern {pattern!r} not found in output")
    return {field: float(match.group(1))}


class RemoteCommandCollector(BaseCollector):
    """ssh 远程命令"""

    def ssh_args(self) -> List[str]:
        source = self.source
        args = [
            "ssh",
            "-p", str(source.port),
            "-o", "BatchMode=yes",
            "-o", f"ConnectTimeout={max(1, int(self.timeout))}",
            "-o", f"StrictHostKeyChecking={'yes' if source.strict_host_key_checking else 'no'}",
        ]
        if source.identity_file:
            args += ["-i", source.identity_file]
        args += [f"{source.user}@{source.host}", source.command]
        return args

    async def _collect(self) -> Dict[str, Any]:
        output = await run_command(*self.ssh_args())
        return parse_remote_output(output, self.source.pattern, self.source.field)
