"""
日志系统模块
统一的日志配置和管理
"""

import functools
import logging
import sys
import time
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_FORMAT = '[%(asctime)s] %(name)s - %(levelname)s - %(message)s'
DEFAULT_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _resolve_level(level) -> int:
    """日志级别：支持logging常量或config.LOG_LEVEL这样的名称"""
    if isinstance(level, str):
        value = logging.getLevelName(level.upper())
        if not isinstance(value, int):
            raise ValueError(f"未知的日志级别: {level}")
        return value
    return level


def setup_logger(
    name: str,
    log_file: str = None,
    level=logging.INFO,
    console: bool = True,
    max_bytes: int = 10*1024*1024,  # 10MB
    backup_count: int = 5,
    fmt: str = DEFAULT_FORMAT,
    datefmt: str = DEFAULT_DATE_FORMAT
) -> logging.Logger:
    """配置日志记录器

    同名记录器已配置过时不再添加handler，只把新的级别应用到已有handler上，
    这样演示程序和测试可以反复调用。

    Args:
        name: 日志记录器名称（probmap各模块的记录器都挂在 'probmap' 下）
        log_file: 日志文件路径（None则只输出到控制台）
        level: 日志级别，logging常量或 'DEBUG'/'INFO' 等名称
        console: 是否输出到控制台
        max_bytes: 单个日志文件最大字节数
        backup_count: 保留的备份文件数量
        fmt: 日志格式
        datefmt: 时间格式

    Returns:
        配置好的Logger对象

    Example:
        >>> map_logger = setup_logger('probmap', 'data/logs/map.log', level='DEBUG')
        >>> map_logger.debug('高斯平滑: 核长度=7')
    """
    level = _resolve_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)
    handlers = []

    # 文件日志（带轮转）
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        ))

    if console:
        handlers.append(logging.StreamHandler(sys.stdout))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def setup_project_logging(base_dir: str = None, level=logging.INFO,
                          console: bool = True, fmt: str = DEFAULT_FORMAT,
                          datefmt: str = DEFAULT_DATE_FORMAT) -> logging.Logger:
    """配置整个probmap包的日志

    各模块使用 logging.getLogger(__name__)，都会传播到 'probmap' 记录器。

    Args:
        base_dir: 日志目录（None则不写文件）
        level: 日志级别（常量或名称）
        console: 是否输出到控制台
        fmt, datefmt: 日志格式和时间格式

    Returns:
        'probmap' 记录器
    """
    log_file = None
    if base_dir:
        timestamp = datetime.now().strftime('%Y%m%d')
        log_file = Path(base_dir) / f'probmap_{timestamp}.log'

    return setup_logger('probmap', log_file, level, console, fmt=fmt, datefmt=datefmt)


# 装饰器：自动记录函数执行时间
def log_performance(logger: logging.Logger):
    """装饰器：记录函数性能

    Example:
        >>> logger = setup_logger('test')
        >>> @log_performance(logger)
        >>> def my_func():
        >>>     time.sleep(0.1)
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start = time.time()
            result = func(*args, **kwargs)
            duration = time.time() - start

            logger.debug(f"{func.__name__} 执行时间: {duration*1000:.2f}ms")
            return result
        return wrapper
    return decorator
