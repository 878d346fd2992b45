"""
采集器基类

每个采集器产出一条原始读数（dict），失败时抛出 SourceUnavailable。
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict

from ..config import SourceConfig
from ..exceptions import SourceUnavailable


class BaseCollector(ABC):
    """采集器基类"""

    def __init__(self, source: SourceConfig, default_timeout: float = 10.0):
        self.source = source
        self.timeout = source.timeout or default_timeout

    @property
    def source_id(self) -> str:
        return self.source.id

    async def collect(self) -> Dict[str, Any]:
        """
        采集一条读数

        Returns:
            原始读数字典

        Raises:
            SourceUnavailable: 采集失败或超时
        """
        try:
            return await asyncio.wait_for(self._collect(), timeout=self.timeout)
        except SourceUnavailable:
            raise
        except asyncio.TimeoutError as e:
            raise SourceUnavailable(self.source_id, f"timed out after {self.timeout}s") from e
        except Exception as e:
            raise SourceUnavailable(self.source_id, str(e) or type(e).__name__) from e

    @abstractmethod
    async def _collect(self) -> Dict[str, Any]:
        """子类实现具体采集逻辑"""


async def run_command(*args: str) -> str:
    """
    执行外部命令并返回 stdout

    超时取消时会杀掉子进程。

    Raises:
        RuntimeError: 命令返回非 0
    """
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE
    )
    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
        raise

    if proc.returncode != 0:
        message = stderr.decode(errors="replace").strip()
        raise RuntimeError(f"{args[0]} exited with code {proc.returncode}: {message}")

    return stdout.decode(errors="replace")
