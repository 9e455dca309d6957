"""
probmap - 概率占据栅格地图引擎
把世界坐标下的传感器射线融合成log-odds置信地图，并导出为map_server格式
"""

__version__ = '1.0.0'
