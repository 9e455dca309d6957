"""
扫描融合模块
把已经转换到世界坐标的雷达射线写入概率地图：
射线途经的栅格标记为空闲，终点栅格标记为占用
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .errors import InvalidArgumentError
from .probability_map import ProbabilityMap

logger = logging.getLogger(__name__)


@dataclass
class ScanUpdateConfig:
    """射线更新参数"""
    prob_hit: float = 0.7  # 终点命中障碍物时的观测概率
    prob_miss: float = 0.4  # 射线穿过栅格时的观测概率
    max_range: Optional[float] = None  # 最大有效距离（米），超出部分截断并视为未命中


class ScanIntegrator:
    """扫描融合器

    Attributes:
        map: ProbabilityMap对象
        config: ScanUpdateConfig配置

    Example:
        >>> integrator = ScanIntegrator(map_obj)
        >>> integrator.integrate_scan((0.0, 0.0), endpoints)
        >>> integrator.get_statistics()
    """

    def __init__(self, map_obj: ProbabilityMap, config: ScanUpdateConfig = None):
        """初始化扫描融合器

        Args:
            map_obj: ProbabilityMap对象
            config: 射线更新参数，None则使用默认配置
        """
        self.map = map_obj
        self.config = config if config else ScanUpdateConfig()

        for name in ('prob_hit', 'prob_miss'):
            value = getattr(self.config, name)
            if not 0.0 < value < 1.0:
                raise InvalidArgumentError(f"{name} 必须在(0, 1)内: {value}")
        if self.config.max_range is not None and not self.config.max_range > 0:
            raise InvalidArgumentError(f"max_range 必须为正数: {self.config.max_range}")

        # 统计信息
        self.scan_count = 0
        self.ray_count = 0
        self.cell_updates = 0

    def integrate_ray(self, start, end, hit: bool = True) -> int:
        """融合一条射线

        Args:
            start: 传感器位置（世界坐标）
            end: 射线终点（世界坐标）
            hit: 终点是否为障碍物回波

        Returns:
            本次更新的栅格数
        """
        sx, sy = float(start[0]), float(start[1])
        ex, ey = float(end[0]), float(end[1])

        max_range = self.config.max_range
        distance = math.hypot(ex - sx, ey - sy)
        if max_range is not None and distance > max_range:
            scale = max_range / distance
            ex, ey = sx + (ex - sx) * scale, sy + (ey - sy) * scale
            hit = False

        self.ray_count += 1
        cells = self.map.line((sx, sy), (ex, ey))
        if not cells:
            return 0

        # 只有最后一个栅格真正包含终点时才是命中栅格
        end_x, end_y = self.map.from_world((ex, ey))
        last = cells[-1]
        ends_inside = (last.row == math.floor(end_y) and last.col == math.floor(end_x))

        for cell in cells[:-1]:
            self.map.update(cell.row, cell.col, self.config.prob_miss)

        if hit and ends_inside:
            self.map.update(last.row, last.col, self.config.prob_hit)
        else:
            self.map.update(last.row, last.col, self.config.prob_miss)

        self.cell_updates += len(cells)
        return len(cells)

    def integrate_scan(self, sensor_origin: Tuple[float, float],
                       endpoints: np.ndarray, hits: Optional[np.ndarray] = None) -> int:
        """融合一帧扫描

        Args:
            sensor_origin: 传感器位置（世界坐标）
            endpoints: 射线终点 (N, 2)，世界坐标
            hits: 每条射线是否命中障碍物 (N,)，None表示全部命中

        Returns:
            本帧更新的栅格总数
        """
        endpoints = np.asarray(endpoints, dtype=np.float64).reshape(-1, 2)
        if hits is None:
            hits = np.ones(len(endpoints), dtype=bool)
        else:
            hits = np.asarray(hits, dtype=bool).reshape(-1)
            if hits.size != len(endpoints):
                raise InvalidArgumentError(
                    f"hits长度 {hits.size} 与终点数量 {len(endpoints)} 不匹配")

        updated = 0
        for endpoint, hit in zip(endpoints, hits):
            updated += self.integrate_ray(sensor_origin, endpoint, bool(hit))

        self.scan_count += 1
        logger.debug(f"扫描融合: {len(endpoints)} 条射线, {updated} 次栅格更新")
        return updated

    def get_statistics(self) -> dict:
        """融合统计"""
        return {
            'scan_count': self.scan_count,
            'ray_count': self.ray_count,
            'cell_updates': self.cell_updates,
        }
