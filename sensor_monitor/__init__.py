"""
Sensor Monitor - 传感器数据采集与时序聚合服务

负责：
- 轮询各数据源（本机 lm-sensors、远程 SSH 命令、设备上报等）
- 按通道写入 Redis 追加日志并裁剪保留窗口
- 将稀疏的原始读数重采样为等间隔、带缺口填充和极值标注的时序
- 缓存聚合结果并提供 REST API 给前端图表
"""

__version__ = "1.0.0"
