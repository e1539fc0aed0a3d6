"""
日志工厂模块

提供标准化的日志器创建和管理功能，消除重复的日志初始化代码。

核心功能:
- 统一日志器命名规范
- 组件日志器创建
- 日志混入类
- 全局日志配置管理
"""

import logging
from typing import Optional

from config import app_config


def configure_logging():
    """
    配置全局日志系统

    应该在应用启动时调用一次（在main.py的lifespan函数中）
    """
    # 配置根日志器
    logging.basicConfig(
        level=app_config.LOG_LEVEL,
        format='%(levelname)s:\t  %(asctime)s - %(name)s - Line %(lineno)d - %(message)s'
    )

    # 第三方库日志不传播到项目根logger
    logging.getLogger('sqlalchemy').propagate = False
    logging.getLogger('httpx').propagate = False
    logging.getLogger('sentence_transformers').setLevel(logging.WARNING)


def get_component_logger(component_name: str, identifier: Optional[str] = None) -> logging.Logger:
    """
    获取组件标准化日志器

    参数:
        component_name: 组件名称（通常为 __name__）
        identifier: 可选的组件标识（如 "VectorIndex"），仅用于阅读定位

    返回:
        logging.Logger: 配置好的日志器
    """
    return logging.getLogger(component_name)


class LoggerMixin:
    """
    日志混入类

    为需要日志功能的类提供标准化的日志器。
    """

    _logger: Optional[logging.Logger] = None

    @property
    def logger(self) -> logging.Logger:
        """日志器属性"""
        if self._logger is None:
            self._logger = get_component_logger(self.__class__.__module__)
        return self._logger
