"""
异常定义

按故障类别区分：数据源不可用、存储记录损坏、后端不可用、上报校验失败。
"""


class SensorMonitorError(Exception):
    """所有业务异常的基类"""


class SourceUnavailable(SensorMonitorError):
    """数据源采集失败或超时（只跳过该数据源）"""

    def __init__(self, source_id: str, reason: str):
        self.source_id = source_id
        self.reason = reason
        super().__init__(f"Source {source_id} unavailable: {reason}")


class MalformedRecord(SensorMonitorError, ValueError):
    """单条记录无法解析，field 指出出错的字段"""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class BackendUnavailable(SensorMonitorError):
    """Redis 不可达或请求超时"""


class SubmissionRejected(SensorMonitorError):
    """上报数据未通过校验，不会被保存"""
