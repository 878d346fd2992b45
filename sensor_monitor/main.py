"""
主程序入口

启动两个并发任务：
1. REST API 服务
2. 定时采集循环（collector.interval > 0 时）
"""

import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import uvicorn

from . import __version__
from .config import AppConfig, get_config
from .collector import run_collection_loop
from .exceptions import BackendUnavailable
from .services import SensorServices


def setup_logging(config: AppConfig):
    """配置日志"""
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    level = getattr(logging, config.logging.level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=log_format,
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    # 如果配置了文件日志
    if config.logging.file:
        log_path = Path(config.logging.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            str(log_path),
            maxBytes=config.logging.max_size_mb * 1024 * 1024,
            backupCount=config.logging.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(log_format))
        logging.getLogger().addHandler(file_handler)

    # 降低第三方库日志级别
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


async def run_api_server(services: SensorServices):
    """运行 API 服务器"""
    from .api.app import create_app

    config = services.config
    app = create_app(services=services)

    server_config = uvicorn.Config(
        app=app,
        host=config.api.host,
        port=config.api.port,
        log_level="info",
        access_log=False
    )
    server = uvicorn.Server(server_config)
    await server.serve()


async def main():
    """主函数：启动所有任务"""
    logger = logging.getLogger(__name__)

    config = get_config()
    setup_logging(config)
    logger.info("=" * 60)
    logger.info(f"Sensor Monitor v{__version__}")
    logger.info("=" * 60)
    logger.info(f"Config loaded: API={config.api.host}:{config.api.port}")
    logger.info(f"Redis: {config.redis.host}:{config.redis.port}/{config.redis.db}")

    services = SensorServices(config)
    try:
        await services.start()
    except BackendUnavailable as e:
        logger.error(f"Redis not reachable at startup, will retry on demand: {e}")

    loop_task = None
    if config.collector.interval > 0:
        loop_task = asyncio.create_task(
            run_collection_loop(services.orchestrator, services.cache, config.collector.interval)
        )
    else:
        logger.info("Background collection disabled, waiting for /api/collect triggers")

    try:
        await run_api_server(services)
    except asyncio.CancelledError:
        logger.info("Tasks cancelled, shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        raise
    finally:
        if loop_task is not None:
            loop_task.cancel()
            await asyncio.gather(loop_task, return_exceptions=True)
        await services.stop()


def cli():
    """命令行入口"""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutdown requested, exiting...")
        sys.exit(0)


if __name__ == "__main__":
    cli()
