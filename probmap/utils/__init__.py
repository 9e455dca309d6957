"""
工具模块
"""

from .logger import setup_logger, setup_project_logging, log_performance

__all__ = ['setup_logger', 'setup_project_logging', 'log_performance']
