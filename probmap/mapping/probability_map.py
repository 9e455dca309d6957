"""
概率占据栅格地图模块
以log-odds形式存储每个栅格的占据置信度，提供坐标变换、证据累积、
双线性插值、射线栅格化、高斯平滑和阈值点提取
"""

import logging
import math
import operator
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
from scipy.ndimage import convolve1d

from .errors import BoundsError, InvalidArgumentError
from ..utils.logger import log_performance

logger = logging.getLogger(__name__)

Point = Tuple[float, float]

# 方向分量小于该值时视为平行于坐标轴
_EPSILON = 1e-12
# 判断射线恰好穿过栅格角点的参数容差
_CORNER_TOLERANCE = 1e-9


@dataclass
class MapConfig:
    """地图构造参数"""
    rows: int = 500  # 栅格行数（Y方向）
    cols: int = 500  # 栅格列数（X方向）
    cell_size: float = 0.1  # 米/栅格
    origin_x: float = -25.0  # 栅格(0, 0)的世界坐标
    origin_y: float = -25.0


@dataclass
class LineCell:
    """射线栅格化结果中的一个栅格

    Attributes:
        row, col: 栅格索引
        entry_point: 射线进入该栅格的世界坐标
        exit_point: 射线离开该栅格的世界坐标
    """
    row: int
    col: int
    entry_point: Point
    exit_point: Point


def log_odds_to_probability(log_odds):
    """log-odds转概率，支持标量和numpy数组"""
    odds = np.exp(log_odds)
    return odds / (1.0 + odds)


def probability_to_log_odds(probability):
    """概率转log-odds，支持标量和numpy数组"""
    odds = probability / (1.0 - probability)
    return np.log(odds)


def gaussian_kernel(sigma: float) -> np.ndarray:
    """一维高斯核，长度 2*floor(3*sigma)+1，权重和为1

    Args:
        sigma: 标准差（栅格单位）
    """
    half = int(math.floor(3.0 * sigma))
    x = np.arange(-half, half + 1, dtype=np.float64)
    kernel = np.exp(-(x * x) / (2.0 * sigma * sigma))
    return kernel / kernel.sum()


def _as_point(point) -> Point:
    x, y = point
    return float(x), float(y)


def _slab_interval(start: Point, direction: Point,
                   lower_left: Point, upper_right: Point) -> Tuple[float, float]:
    """slab法求射线参数区间 [t_min, t_max]，不相交时 t_min > t_max"""
    t_min, t_max = -math.inf, math.inf
    for axis in (0, 1):
        d = direction[axis]
        if abs(d) < _EPSILON:
            # 平行于该轴：起点必须落在板内
            if start[axis] < lower_left[axis] or start[axis] > upper_right[axis]:
                return math.inf, -math.inf
            continue
        inverse = 1.0 / d
        t1 = (lower_left[axis] - start[axis]) * inverse
        t2 = (upper_right[axis] - start[axis]) * inverse
        t_min = max(t_min, min(t1, t2))
        t_max = min(t_max, max(t1, t2))
    return t_min, t_max


def find_intersections(start_point, end_point,
                       lower_left, upper_right) -> Optional[Tuple[Point, Point]]:
    """求射线与轴对齐包围盒（AABB）的进入点和离开点

    参数t沿单位方向计量，不裁剪到线段范围内。

    Args:
        start_point, end_point: 射线起点和终点（世界坐标）
        lower_left, upper_right: 包围盒左下角和右上角

    Returns:
        (进入点, 离开点)；射线所在直线不经过包围盒时返回None
    """
    start = _as_point(start_point)
    end = _as_point(end_point)
    dx, dy = end[0] - start[0], end[1] - start[1]
    length = math.hypot(dx, dy)
    if length == 0.0:
        return start, start

    direction = (dx / length, dy / length)
    t_min, t_max = _slab_interval(start, direction,
                                  _as_point(lower_left), _as_point(upper_right))
    if t_min > t_max:
        return None

    entry = (start[0] + t_min * direction[0], start[1] + t_min * direction[1])
    exit_ = (start[0] + t_max * direction[0], start[1] + t_max * direction[1])
    return entry, exit_


class ProbabilityMap:
    """概率占据栅格地图

    每个栅格存储log-odds值：
    - 0: 未知（概率0.5）
    - >0: 倾向占用
    - <0: 倾向空闲

    栅格坐标 (x, y) 对应 (col, row)，世界坐标 = origin + cell_size * 栅格坐标。
    所有存储值限制在 [-MAX_LOG_ODDS, +MAX_LOG_ODDS] 内。

    地图没有内部锁，调用方需要保证单写者。

    Example:
        >>> map_obj = ProbabilityMap(100, 100, 0.1, origin=(-5.0, -5.0))
        >>> for cell in map_obj.line((0.0, 0.0), (2.0, 1.0)):
        ...     map_obj.update(cell.row, cell.col, 0.4)
        >>> map_obj.save_occupancy_grid('data/maps/room')
    """

    MAX_LOG_ODDS = 50.0

    def __init__(self, rows: int, cols: int, cell_size: float,
                 origin=(0.0, 0.0)):
        """初始化地图（全部栅格为未知）

        Args:
            rows: 行数
            cols: 列数
            cell_size: 栅格边长（米）
            origin: 栅格(0, 0)的世界坐标 (x, y)
        """
        if int(rows) <= 0 or int(cols) <= 0:
            raise InvalidArgumentError(f"地图尺寸必须为正: rows={rows}, cols={cols}")
        if not (cell_size > 0 and math.isfinite(cell_size)):
            raise InvalidArgumentError(f"栅格尺寸必须为正数: {cell_size}")

        self._rows = int(rows)
        self._cols = int(cols)
        self._cell_size = float(cell_size)
        self._origin = np.array(_as_point(origin), dtype=np.float64)

        # 行优先的连续缓冲区
        self._data = np.zeros((self._rows, self._cols), dtype=np.float64)

        logger.debug(f"创建地图 {self._rows}x{self._cols} @ {self._cell_size}m/格, "
                     f"原点=({self._origin[0]}, {self._origin[1]})")

    @classmethod
    def from_config(cls, config: MapConfig) -> 'ProbabilityMap':
        """根据MapConfig创建地图"""
        return cls(config.rows, config.cols, config.cell_size,
                   (config.origin_x, config.origin_y))

    # ------------- 属性 -------------
    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def cell_size(self) -> float:
        return self._cell_size

    @property
    def origin(self) -> Point:
        return float(self._origin[0]), float(self._origin[1])

    @property
    def shape(self) -> Tuple[int, int]:
        return self._rows, self._cols

    # ------------- 坐标变换 -------------
    def to_world(self, map_coordinates) -> np.ndarray:
        """栅格坐标转世界坐标

        Args:
            map_coordinates: 连续栅格坐标 (x, y)，也可以是 (N, 2) 数组

        Returns:
            世界坐标数组，形状与输入相同
        """
        return self._cell_size * np.asarray(map_coordinates, dtype=np.float64) + self._origin

    def from_world(self, world_coordinates) -> np.ndarray:
        """世界坐标转连续栅格坐标（不取整，取整用floor）"""
        return (np.asarray(world_coordinates, dtype=np.float64) - self._origin) / self._cell_size

    def _to_world_xy(self, x: float, y: float) -> Point:
        return (self._cell_size * x + self._origin[0],
                self._cell_size * y + self._origin[1])

    def _from_world_xy(self, x: float, y: float) -> Point:
        return ((x - self._origin[0]) / self._cell_size,
                (y - self._origin[1]) / self._cell_size)

    # ------------- 查询 -------------
    def inside(self, row, col) -> bool:
        """检查栅格索引是否在地图范围内"""
        return 0 <= row < self._rows and 0 <= col < self._cols

    def _check_bounds(self, row, col) -> Tuple[int, int]:
        """检查并返回整数索引；非整数索引（如2.5）不是合法栅格"""
        try:
            row, col = operator.index(row), operator.index(col)
        except TypeError:
            raise InvalidArgumentError(f"栅格索引必须为整数: ({row!r}, {col!r})") from None
        if not self.inside(row, col):
            raise BoundsError(row, col)
        return row, col

    def at(self, row: int, col: int) -> float:
        """获取栅格的占据概率

        Raises:
            BoundsError: 索引越界
            InvalidArgumentError: 索引不是整数
        """
        row, col = self._check_bounds(row, col)
        return float(log_odds_to_probability(self._data[row, col]))

    def interpolate(self, map_coordinates) -> float:
        """在连续栅格坐标处双线性插值占据概率

        在概率空间（而非log-odds空间）线性混合四个相邻栅格。
        靠近最后一行/列时使用最后两个索引，权重限制在[0, 1]，不外推。

        Args:
            map_coordinates: 连续栅格坐标 (x, y)

        Raises:
            BoundsError: 坐标不在 [0, cols) x [0, rows) 内
        """
        x, y = _as_point(map_coordinates)
        if not (0.0 <= x < self._cols and 0.0 <= y < self._rows):
            raise BoundsError(y, x)

        x1, x2, wx = self._interpolation_neighbors(x, self._cols)
        y1, y2, wy = self._interpolation_neighbors(y, self._rows)

        r1 = (1.0 - wx) * self.at(y1, x1) + wx * self.at(y1, x2)
        r2 = (1.0 - wx) * self.at(y2, x1) + wx * self.at(y2, x2)
        return (1.0 - wy) * r1 + wy * r2

    @staticmethod
    def _interpolation_neighbors(coordinate: float, size: int) -> Tuple[int, int, float]:
        """返回 (低索引, 高索引, 高索引权重)"""
        if size == 1:
            return 0, 0, 0.0
        low = int(math.floor(coordinate))
        if low >= size - 1:
            low = size - 2
        weight = min(max(coordinate - low, 0.0), 1.0)
        return low, low + 1, weight

    def points(self, threshold: float) -> List[Point]:
        """提取占据概率严格大于阈值的栅格（障碍物点云）

        Args:
            threshold: 概率阈值 [0, 1]

        Returns:
            栅格坐标列表 [(col, row), ...]，按行优先顺序
        """
        if not 0.0 <= threshold <= 1.0:
            raise InvalidArgumentError(f"概率阈值必须在[0, 1]内: {threshold}")

        with np.errstate(divide='ignore'):
            log_odds_threshold = probability_to_log_odds(np.float64(threshold))

        rows, cols = np.nonzero(self._data > log_odds_threshold)
        return [(float(c), float(r)) for r, c in zip(rows, cols)]

    def probabilities(self) -> np.ndarray:
        """获取 (rows x cols) 的概率矩阵（副本）"""
        return log_odds_to_probability(self._data)

    def log_odds(self) -> np.ndarray:
        """获取 (rows x cols) 的log-odds矩阵（副本）"""
        return self._data.copy()

    def occupancy_grid(self) -> np.ndarray:
        """转换为8位占据栅格

        每个字节为 round(255 * (1 - p))，0.5向上取整：
        255=空闲，0=占用，未知栅格为128。

        Returns:
            (rows x cols) 的uint8矩阵
        """
        probability = log_odds_to_probability(self._data)
        return np.floor(255.0 * (1.0 - probability) + 0.5).astype(np.uint8)

    def get_extent(self) -> Tuple[float, float, float, float]:
        """地图覆盖的世界范围 (xmin, xmax, ymin, ymax)，用于matplotlib imshow"""
        xmin, ymin = self.origin
        return (xmin, xmin + self._cols * self._cell_size,
                ymin, ymin + self._rows * self._cell_size)

    def get_statistics(self, free_threshold: float = 0.2,
                       occupied_threshold: float = 0.8) -> dict:
        """获取地图统计信息

        Args:
            free_threshold: 低于该概率视为空闲
            occupied_threshold: 高于该概率视为占用

        Returns:
            统计信息字典
        """
        prob_map = self.probabilities()
        occupied_cells = int(np.sum(prob_map > occupied_threshold))
        free_cells = int(np.sum(prob_map < free_threshold))
        total_cells = self._rows * self._cols

        return {
            'total_cells': total_cells,
            'occupied_cells': occupied_cells,
            'free_cells': free_cells,
            'unknown_cells': total_cells - occupied_cells - free_cells,
            'explored_ratio': (free_cells + occupied_cells) / total_cells,
        }

    def equals(self, other: 'ProbabilityMap', tol: float = 1e-9) -> bool:
        """在容差内比较原点、栅格尺寸和log-odds数据"""
        if not isinstance(other, ProbabilityMap):
            return False
        if self._data.shape != other._data.shape:
            return False
        return (bool(np.all(np.abs(self._origin - other._origin) <= tol))
                and abs(self._cell_size - other._cell_size) <= tol
                and bool(np.all(np.abs(self._data - other._data) <= tol)))

    # ------------- 更新 -------------
    def update(self, row: int, col: int, probability: float):
        """用一次观测的占据概率更新栅格（log-odds累加后截断）

        Args:
            row, col: 栅格索引
            probability: 观测概率，必须在开区间(0, 1)内

        Raises:
            BoundsError: 索引越界
            InvalidArgumentError: 索引不是整数，或概率为0、1或非有限值
        """
        row, col = self._check_bounds(row, col)
        # NaN同样不满足该条件
        if not 0.0 < probability < 1.0:
            raise InvalidArgumentError(
                f"栅格 ({row}, {col}) 的更新概率必须在(0, 1)内: {probability}")

        value = self._data[row, col] + probability_to_log_odds(probability)
        self._data[row, col] = min(max(value, -self.MAX_LOG_ODDS), self.MAX_LOG_ODDS)

    def clear(self):
        """全部栅格重置为未知（log-odds 0）"""
        self._data.fill(0.0)

    def load(self, buffer):
        """用行优先的log-odds缓冲区整体替换地图数据（不截断）

        Args:
            buffer: 长度为 rows*cols 的序列或数组

        Raises:
            InvalidArgumentError: 长度不匹配
        """
        values = np.asarray(buffer, dtype=np.float64).reshape(-1)
        expected = self._rows * self._cols
        if values.size != expected:
            raise InvalidArgumentError(
                f"缓冲区长度 {values.size} 与地图尺寸 {self._rows}x{self._cols}={expected} 不匹配")
        self._data = values.reshape(self._rows, self._cols).copy()

    @log_performance(logger)
    def smooth(self, sigma: float):
        """对log-odds场做可分离高斯平滑

        先沿行、再沿列卷积；边界采用复制边缘值（nearest）的方式，两次一致。

        Args:
            sigma: 世界坐标下的标准差（米）
        """
        if not (sigma > 0 and math.isfinite(sigma)):
            raise InvalidArgumentError(f"平滑sigma必须为正数: {sigma}")

        map_sigma = sigma / self._cell_size
        kernel = gaussian_kernel(map_sigma)
        logger.debug(f"高斯平滑: sigma={map_sigma:.3f}格, 核长度={kernel.size}")

        data = convolve1d(self._data, kernel, axis=1, mode='nearest')
        data = convolve1d(data, kernel, axis=0, mode='nearest')
        self._data = np.clip(data, -self.MAX_LOG_ODDS, self.MAX_LOG_ODDS)

    # ------------- 射线栅格化 -------------
    def line(self, start_point, end_point) -> List[LineCell]:
        """将世界坐标线段栅格化为途经的栅格序列

        沿主方向以单位步长连续步进（不是整数Bresenham）。
        一步内行列同时变化时，补上中间穿过的栅格，保证结果无缝、无重复。
        地图外的栅格不输出，但仍然消耗步长。

        Args:
            start_point: 起点世界坐标 (x, y)
            end_point: 终点世界坐标 (x, y)

        Returns:
            LineCell列表，按从起点到终点的顺序
        """
        start_world = _as_point(start_point)
        end_world = _as_point(end_point)
        sx, sy = self._from_world_xy(*start_world)
        ex, ey = self._from_world_xy(*end_world)

        cells: List[LineCell] = []

        dx = abs(ex - sx)
        dy = abs(ey - sy)
        if dx == 0.0 and dy == 0.0:
            row, col = int(math.floor(sy)), int(math.floor(sx))
            if self.inside(row, col):
                cells.append(LineCell(row, col, start_world, start_world))
            return cells

        ray = (end_world[0] - start_world[0], end_world[1] - start_world[1])
        length = math.hypot(*ray)
        direction = (ray[0] / length, ray[1] / length)

        # 主方向步进增量
        step_x = 1.0 if sx < ex else -1.0
        step_y = 1.0 if sy < ey else -1.0
        if dx > dy:
            delta = (step_x, step_y * (dy / dx))
            remaining = dx
        else:
            delta = (step_x * (dx / dy), step_y)
            remaining = dy

        def emit(row, col):
            if self.inside(row, col):
                cells.append(self._line_cell(row, col, start_world, direction, length))

        traveled = 0.0
        point = (sx, sy)
        previous_point = None
        previous_cell = None
        while True:
            cell = (int(math.floor(point[1])), int(math.floor(point[0])))

            if previous_cell is None:
                emit(*cell)
            elif cell != previous_cell:
                if cell[0] != previous_cell[0] and cell[1] != previous_cell[1]:
                    crossed = self._crossed_cell(previous_cell, cell, previous_point, point)
                    if crossed is not None:
                        emit(*crossed)
                emit(*cell)

            if remaining <= 0:
                break

            increment = remaining if remaining < 1.0 else 1.0
            traveled += increment
            remaining -= increment

            previous_point, previous_cell = point, cell
            if remaining <= 0:
                # 最后一步精确落在终点
                point = (ex, ey)
            else:
                point = (sx + traveled * delta[0], sy + traveled * delta[1])

        logger.debug(f"射线栅格化: {len(cells)} 个栅格")
        return cells

    @staticmethod
    def _crossed_cell(previous_cell, cell, p0: Point, p1: Point) -> Optional[Tuple[int, int]]:
        """一步内行列同时变化时，返回中间经过的栅格；恰好穿过角点时返回None"""
        (r0, c0), (r1, c1) = previous_cell, cell
        tx = (max(c0, c1) - p0[0]) / (p1[0] - p0[0])
        ty = (max(r0, r1) - p0[1]) / (p1[1] - p0[1])
        if abs(tx - ty) < _CORNER_TOLERANCE:
            return None
        # 先碰到竖直边界则先换列
        return (r0, c1) if tx < ty else (r1, c0)

    def _line_cell(self, row: int, col: int, start: Point,
                   direction: Point, length: float) -> LineCell:
        lower_left = self._to_world_xy(col, row)
        upper_right = self._to_world_xy(col + 1, row + 1)
        t_min, t_max = _slab_interval(start, direction, lower_left, upper_right)

        # 裁剪到线段 [0, length]
        t_min = min(max(t_min, 0.0), length)
        t_max = min(max(t_max, t_min), length)

        entry = (start[0] + t_min * direction[0], start[1] + t_min * direction[1])
        exit_ = (start[0] + t_max * direction[0], start[1] + t_max * direction[1])
        return LineCell(row, col, entry, exit_)

    # ------------- 导出 -------------
    def save_occupancy_grid(self, filename: str, **kwargs):
        """导出 <filename>.pgm 和 <filename>.yaml（见map_io.save_occupancy_grid）"""
        from .map_io import save_occupancy_grid
        return save_occupancy_grid(self, filename, **kwargs)

    def __str__(self) -> str:
        return format_map(self)

    def __repr__(self) -> str:
        return (f"ProbabilityMap(rows={self._rows}, cols={self._cols}, "
                f"cell_size={self._cell_size}, origin={self.origin})")


def format_map(map_obj: ProbabilityMap, name: str = '') -> str:
    """地图的可读文本：栅格尺寸、原点和完整概率矩阵

    Args:
        map_obj: ProbabilityMap对象
        name: 可选标题行
    """
    lines = []
    if name:
        lines.append(name)
    x, y = map_obj.origin
    lines.append(f"  cell size: {map_obj.cell_size}")
    lines.append(f"  origin: ( {x} , {y} )")

    for i, row in enumerate(map_obj.probabilities()):
        prefix = "  data:" if i == 0 else "       "
        lines.append(prefix + "".join(f" {p:g}" for p in row))

    return "\n".join(lines) + "\n"
