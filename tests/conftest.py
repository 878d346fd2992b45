"""
测试公共夹具
"""

import pytest

from sensor_monitor.backend import RedisBackend
from sensor_monitor.config import AppConfig
from sensor_monitor.services import SensorServices
from tests.mocks.storage import FakeRedis


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def config():
    return AppConfig(
        sampling={"sample_interval": 600, "retention_days": 1, "carry_forward_steps": 2},
        cache={"key": "sensor_json_cache_key", "ttl": 800},
        sources=[
            {"id": "nas", "kind": "lm_sensors"},
            {"id": "two", "kind": "upload"},
        ],
        channels=[
            {"id": "nas", "source": "nas", "value_field": "CPU", "sort_priority": 1000},
            {
                "id": "humidity_two",
                "display_name": "bedroom_humidity",
                "source": "two",
                "value_field": "humidity",
                "sort_priority": 7000,
                "color": "#0099ff",
                "unit": "Percent",
            },
            {
                "id": "temperature_two",
                "display_name": "bedroom_temperature",
                "source": "two",
                "value_field": "temperature",
                "sort_priority": 6000,
            },
        ],
    )


@pytest.fixture
def backend(config, fake_redis):
    return RedisBackend(config.redis, client=fake_redis)


@pytest.fixture
def services(config, backend):
    return SensorServices(config, backend)
