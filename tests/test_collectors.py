"""
测试各类采集器

外部命令通过 monkeypatch 替换，不依赖本机的 sensors / ssh。
"""

import asyncio

import pytest

from sensor_monitor.collectors import (
    BaseCollector,
    HttpCollector,
    LmSensorsCollector,
    RemoteCommandCollector,
    SystemCollector,
    UploadCollector,
    build_collector,
    lm_sensors,
    parse_remote_output,
    parse_sensors_output,
    remote,
)
from sensor_monitor.config import SourceConfig
from sensor_monitor.exceptions import SourceUnavailable

SENSORS_OUTPUT = """\
coretemp-isa-0000
Adapter: ISA adapter
Package id 0:  +33.0°C  (high = +80.0°C, crit = +100.0°C)
Core 0:        +30.0°C  (high = +80.0°C, crit = +100.0°C)
Core 1:        +32.0°C  (high = +80.0°C, crit = +100.0°C)
Core 2:        +29.0°C  (high = +80.0°C, crit = +100.0°C)
Core 3:        +32.0°C  (high = +80.0°C, crit = +100.0°C)

nct6776-isa-0290
Adapter: ISA adapter
in1:                    1.04 V  (min =  +0.00 V, max =  +0.00 V)  ALARM
fan1:                   663 RPM  (min =    0 RPM)
fan2:                     0 RPM  (min =    0 RPM)
"""


class SlowCollector(BaseCollector):

    async def _collect(self):
        await asyncio.sleep(5)
        return {}


class BrokenCollector(BaseCollector):

    async def _collect(self):
        raise OSError("No such file or directory: 'sensors'")


class TestParseSensorsOutput:
    """测试 sensors 输出解析"""

    def test_cores_and_average(self):
        data = parse_sensors_output(SENSORS_OUTPUT)
        assert data["CPU0"] == 30.0
        assert data["CPU3"] == 32.0
        assert data["CPU"] == 30.75

    def test_labelled_values(self):
        data = parse_sensors_output(SENSORS_OUTPUT)
        assert data["Package id 0"] == 33.0
        assert data["Core 1"] == 32.0
        assert data["in1"] == 1.04
        assert data["fan1"] == 663.0

    def test_zero_values_skipped(self):
        assert "fan2" not in parse_sensors_output(SENSORS_OUTPUT)

    def test_no_cores(self):
        data = parse_sensors_output("temp1:        +45.0°C\n")
        assert data == {"temp1": 45.0}

    def test_empty_output(self):
        with pytest.raises(ValueError):
            parse_sensors_output("coretemp-isa-0000\n")


class TestParseRemoteOutput:
    """测试远程命令输出解析"""

    PATTERN = SourceConfig(id="route", kind="remote_command", host="h", command="c").pattern

    def test_router_temperature(self):
        assert parse_remote_output("CPU temperature : 61\n", self.PATTERN, "CPU") == {"CPU": 61.0}

    def test_decimal_value(self):
        assert parse_remote_output("CPU temperature : 61.5", self.PATTERN, "CPU") == {"CPU": 61.5}

    def test_custom_pattern(self):
        assert parse_remote_output("temp=48.3'C", r"temp=(\d+\.?\d*)", "temperature") == {"temperature": 48.3}

    def test_no_match(self):
        with pytest.raises(ValueError):
            parse_remote_output("permission denied", self.PATTERN, "CPU")


class TestLmSensorsCollector:

    @pytest.mark.asyncio
    async def test_collect(self, monkeypatch):
        calls = []

        async def fake_run(*args):
            calls.append(args)
            return SENSORS_OUTPUT

        monkeypatch.setattr(lm_sensors, "run_command", fake_run)
        collector = LmSensorsCollector(SourceConfig(id="nas", kind="lm_sensors"))

        data = await collector.collect()

        assert calls == [("sensors",)]
        assert data["CPU"] == 30.75

    @pytest.mark.asyncio
    async def test_custom_command(self, monkeypatch):
        calls = []

        async def fake_run(*args):
            calls.append(args)
            return SENSORS_OUTPUT

        monkeypatch.setattr(lm_sensors, "run_command", fake_run)
        collector = LmSensorsCollector(SourceConfig(id="nas", kind="lm_sensors", command="sensors -A"))
        await collector.collect()
        assert calls == [("sensors", "-A")]

    @pytest.mark.asyncio
    async def test_unparseable_output(self, monkeypatch):
        async def fake_run(*args):
            return ""

        monkeypatch.setattr(lm_sensors, "run_command", fake_run)
        collector = LmSensorsCollector(SourceConfig(id="nas", kind="lm_sensors"))
        with pytest.raises(SourceUnavailable) as exc_info:
            await collector.collect()
        assert exc_info.value.source_id == "nas"


class TestRemoteCommandCollector:

    @pytest.fixture
    def source(self):
        return SourceConfig(
            id="route",
            kind="remote_command",
            host="192.168.50.1",
            user="admin",
            port=2222,
            command="cat /proc/dmu/temperature",
            identity_file="/root/.ssh/id_ed25519",
            timeout=5,
        )

    def test_ssh_args(self, source):
        args = RemoteCommandCollector(source).ssh_args()
        assert args[0] == "ssh"
        assert args[args.index("-p") + 1] == "2222"
        assert "BatchMode=yes" in args
        assert "ConnectTimeout=5" in args
        assert "StrictHostKeyChecking=no" in args
        assert args[args.index("-i") + 1] == "/root/.ssh/id_ed25519"
        assert args[-2:] == ["admin@192.168.50.1", "cat /proc/dmu/temperature"]

    def test_strict_host_key_checking(self, source):
        source.strict_host_key_checking = True
        source.identity_file = None
        args = RemoteCommandCollector(source).ssh_args()
        assert "StrictHostKeyChecking=yes" in args
        assert "-i" not in args

    @pytest.mark.asyncio
    async def test_collect(self, source, monkeypatch):
        async def fake_run(*args):
            return "CPU temperature : 61\n"

        monkeypatch.setattr(remote, "run_command", fake_run)
        assert await RemoteCommandCollector(source).collect() == {"CPU": 61.0}

    @pytest.mark.asyncio
    async def test_command_failure(self, source, monkeypatch):
        async def fake_run(*args):
            raise RuntimeError("ssh exited with code 255: Connection refused")

        monkeypatch.setattr(remote, "run_command", fake_run)
        with pytest.raises(SourceUnavailable) as exc_info:
            await RemoteCommandCollector(source).collect()
        assert "Connection refused" in str(exc_info.value)


class TestUploadCollector:

    @pytest.mark.asyncio
    async def test_latest_upload(self, services):
        await services.uploads.save("two", {"chip": "two", "temperature": 21.0, "add_time": 1})
        collector = UploadCollector(SourceConfig(id="two", kind="upload"), services.uploads)
        assert await collector.collect() == {"chip": "two", "temperature": 21.0, "add_time": 1}

    @pytest.mark.asyncio
    async def test_chip_override(self, services):
        await services.uploads.save("esp-01", {"temperature": 19.0})
        collector = UploadCollector(SourceConfig(id="garage", kind="upload", chip="esp-01"), services.uploads)
        assert (await collector.collect())["temperature"] == 19.0

    @pytest.mark.asyncio
    async def test_no_upload(self, services):
        collector = UploadCollector(SourceConfig(id="four", kind="upload"), services.uploads)
        with pytest.raises(SourceUnavailable):
            await collector.collect()


class TestBaseCollector:
    """测试超时与异常包装"""

    @pytest.mark.asyncio
    async def test_timeout(self):
        collector = SlowCollector(SourceConfig(id="slow", kind="system", timeout=0.05))
        with pytest.raises(SourceUnavailable) as exc_info:
            await collector.collect()
        assert "timed out" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_error_wrapped(self):
        collector = BrokenCollector(SourceConfig(id="nas", kind="system"))
        with pytest.raises(SourceUnavailable) as exc_info:
            await collector.collect()
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_default_timeout(self):
        assert SlowCollector(SourceConfig(id="a", kind="system"), default_timeout=3).timeout == 3
        assert SlowCollector(SourceConfig(id="a", kind="system", timeout=1.5), default_timeout=3).timeout == 1.5


class TestBuildCollector:

    @pytest.mark.parametrize("source,expected", [
        (SourceConfig(id="nas", kind="lm_sensors"), LmSensorsCollector),
        (SourceConfig(id="route", kind="remote_command", host="h", command="c"), RemoteCommandCollector),
        (SourceConfig(id="two", kind="upload"), UploadCollector),
        (SourceConfig(id="local", kind="system"), SystemCollector),
        (SourceConfig(id="pi", kind="http", url="http://pi.local/api/sources/pi/snapshot"), HttpCollector),
    ])
    def test_kinds(self, services, source, expected):
        collector = build_collector(source, services.uploads, 7.0)
        assert isinstance(collector, expected)
        assert collector.timeout == 7.0

    def test_services_build_enabled_sources(self, services):
        assert [c.source_id for c in services.orchestrator.collectors] == ["nas", "two"]
