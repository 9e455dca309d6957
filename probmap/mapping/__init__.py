"""
建图模块
包含概率占据栅格地图、扫描融合和地图文件读写
"""

from .errors import MapError, BoundsError, InvalidArgumentError, MapExportError
from .probability_map import (
    ProbabilityMap, MapConfig, LineCell, find_intersections, format_map,
    log_odds_to_probability, probability_to_log_odds
)
from .scan_integrator import ScanIntegrator, ScanUpdateConfig
from .map_io import save_occupancy_grid, load_occupancy_grid, save_map, load_map

__all__ = [
    'MapError', 'BoundsError', 'InvalidArgumentError', 'MapExportError',
    'ProbabilityMap', 'MapConfig', 'LineCell', 'find_intersections', 'format_map',
    'log_odds_to_probability', 'probability_to_log_odds',
    'ScanIntegrator', 'ScanUpdateConfig',
    'save_occupancy_grid', 'load_occupancy_grid', 'save_map', 'load_map',
]
