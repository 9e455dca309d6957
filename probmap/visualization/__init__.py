"""
可视化模块
"""

from .map_visualizer import MapVisualizer

__all__ = ['MapVisualizer']
