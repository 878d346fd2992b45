"""
测试数据构造
"""

import json

BASE_TS = 1_700_000_000


def make_entry(ts: int, **values) -> str:
    """构造一条存储格式的日志记录"""
    record = {"name": "test", "add_time": ts}
    record.update(values)
    return json.dumps(record)
