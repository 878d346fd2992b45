"""
配置加载模块

从 config.yaml 加载配置，支持 Pydantic 验证和环境变量覆盖。

环境变量格式：SENSOR_MONITOR_<SECTION>__<FIELD>，例如
SENSOR_MONITOR_REDIS__HOST=10.0.0.2 会覆盖 config.yaml 中的 redis.host。
"""

import os
from pathlib import Path
from typing import List, Literal, Optional, Tuple, Type

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


class RedisConfig(BaseModel):
    """Redis 连接配置"""
    host: str = "127.0.0.1"
    port: int = 6379
    db: int = 10
    password: Optional[str] = None
    socket_timeout: float = 5.0
    socket_connect_timeout: float = 5.0


class SamplingConfig(BaseModel):
    """采样与保留策略"""
    sample_interval: int = Field(default=600, gt=0, description="网格间隔（秒）")
    retention_days: int = Field(default=31, gt=0, description="聚合窗口天数")
    carry_forward_steps: int = Field(default=2, ge=0, description="缺口前几个点沿用下一条读数")
    log_key_prefix: str = "go_sensor_data_key_"


class CacheConfig(BaseModel):
    """聚合结果缓存配置"""
    key: str = "sensor_json_cache_key"
    ttl: int = Field(default=800, gt=0)


class UploadConfig(BaseModel):
    """设备主动上报配置"""
    key_prefix: str = "sensor_upload_key_"
    push_sources: List[str] = Field(default_factory=lambda: ["one", "two", "three", "four"])
    # 这些字段同时为 0 视为传感器故障
    fault_fields: List[str] = Field(default_factory=lambda: ["humidity", "temperature"])


class CollectorConfig(BaseModel):
    """采集配置"""
    interval: int = Field(default=0, ge=0, description="后台采集间隔（秒），0 表示只由 /api/collect 触发")
    timeout: float = 10.0


class APIConfig(BaseModel):
    """API 服务配置"""
    host: str = "0.0.0.0"
    port: int = 88
    cors_origins: List[str] = ["http://localhost:88", "http://127.0.0.1:88"]


class LoggingConfig(BaseModel):
    """日志配置"""
    level: str = "INFO"
    file: Optional[str] = None
    max_size_mb: int = 50
    backup_count: int = 5


class SourceConfig(BaseModel):
    """数据源配置"""
    id: str
    kind: Literal["lm_sensors", "remote_command", "upload", "system", "http"]
    enabled: bool = True
    timeout: Optional[float] = None

    # lm_sensors / remote_command
    command: Optional[str] = None

    # remote_command
    host: Optional[str] = None
    user: str = "root"
    port: int = 22
    identity_file: Optional[str] = None
    strict_host_key_checking: bool = False
    pattern: str = r"CPU\stemperature\s:\s(\d+\.?\d*)"
    field: str = "CPU"

    # upload
    chip: Optional[str] = None

    # http
    url: Optional[str] = None

    @model_validator(mode="after")
    def _check_kind_options(self):
        if self.kind == "remote_command" and not (self.host and self.command):
            raise ValueError(f"source {self.id}: remote_command requires host and command")
        if self.kind == "http" and not self.url:
            raise ValueError(f"source {self.id}: http requires url")
        return self


class ChannelConfig(BaseModel):
    """通道配置（一条图表曲线）"""
    id: str
    display_name: Optional[str] = None
    source: str = Field(..., description="读取哪个数据源的日志")
    value_field: str = Field(..., description="读数中跟踪的字段，如 CPU / temperature")
    sample_interval: Optional[int] = Field(default=None, gt=0, description="为空时使用 sampling.sample_interval")
    sort_priority: int = 0
    color: str = "#FF9933"
    unit: str = "Degrees"

    @property
    def name(self) -> str:
        return self.display_name or self.id


class AppConfig(BaseSettings):
    """应用配置（完整配置）"""

    model_config = SettingsConfigDict(
        env_prefix="SENSOR_MONITOR_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    redis: RedisConfig = Field(default_factory=RedisConfig)
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    collector: CollectorConfig = Field(default_factory=CollectorConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    sources: List[SourceConfig] = Field(default_factory=list)
    channels: List[ChannelConfig] = Field(default_factory=list)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # 环境变量优先于 config.yaml 中的值
        return env_settings, init_settings, file_secret_settings

    @model_validator(mode="after")
    def _resolve_channels(self):
        source_ids = {s.id for s in self.sources}
        if len(source_ids) != len(self.sources):
            raise ValueError("duplicate source id")
        channel_ids = set()
        for channel in self.channels:
            if channel.id in channel_ids:
                raise ValueError(f"duplicate channel id: {channel.id}")
            channel_ids.add(channel.id)
            if channel.sample_interval is None:
                channel.sample_interval = self.sampling.sample_interval
        return self

    def log_key(self, source_id: str) -> str:
        """数据源对应的 Redis 日志 key"""
        return self.sampling.log_key_prefix + source_id

    def get_source(self, source_id: str) -> Optional[SourceConfig]:
        for source in self.sources:
            if source.id == source_id:
                return source
        return None

    def trim_interval(self, source_id: str) -> int:
        """
        数据源日志裁剪时使用的采样间隔

        取读取该日志的通道中最小的间隔，保证每个通道都有完整的窗口。
        """
        intervals = [c.sample_interval for c in self.channels if c.source == source_id]
        return min(intervals) if intervals else self.sampling.sample_interval


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """
    加载配置文件

    优先级：
    1. 参数指定的路径
    2. 环境变量 SENSOR_MONITOR_CONFIG
    3. 默认路径 config.yaml
    """
    if config_path is None:
        config_path = os.environ.get("SENSOR_MONITOR_CONFIG", "config.yaml")

    config_file = Path(config_path)

    if config_file.exists():
        with open(config_file, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
            if raw_config:
                logging_section = raw_config.get("logging") or {}
                log_file = logging_section.get("file")
                # 日志路径相对于配置文件所在目录
                if log_file and not Path(log_file).is_absolute():
                    logging_section["file"] = str((config_file.resolve().parent / log_file).resolve())
                    raw_config["logging"] = logging_section
                return AppConfig(**raw_config)

    # 配置文件不存在时使用默认配置
    return AppConfig()


# 全局配置实例（延迟加载，仅供程序入口使用）
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """获取全局配置实例（单例模式）"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config():
    """重置配置（主要用于测试）"""
    global _config
    _config = None
