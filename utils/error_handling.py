"""
错误处理工具模块

提供降级策略装饰器，用于把组件级失败转换为可预期的降级返回值。

核心功能:
- 降级策略装饰器
- 指定异常类型透传
- 降级日志记录
"""

import inspect
import logging
from functools import wraps
from typing import Any, Callable


def with_fallback(
        fallback_handler: Callable[..., Any],
        passthrough: tuple[type[BaseException], ...] = ()
    ) -> Callable:
    """
    降级策略装饰器

    当函数执行失败时，调用指定的降级处理函数并返回其结果。
    降级处理函数接收异常对象以及原函数的全部参数。

    参数:
        fallback_handler: 降级处理函数，签名为 (exc, *args, **kwargs)
        passthrough: 不进行降级、直接向上抛出的异常类型

    返回:
        装饰器函数
    """
    def decorator(func: Callable) -> Callable:
        logger = logging.getLogger(func.__module__)

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except passthrough:
                raise
            except Exception as e:
                logger.warning(f"Fallback triggered for {func.__name__}: {e}")
                return fallback_handler(e, *args, **kwargs)

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except passthrough:
                raise
            except Exception as e:
                logger.warning(f"Fallback triggered for {func.__name__}: {e}")
                return fallback_handler(e, *args, **kwargs)

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
