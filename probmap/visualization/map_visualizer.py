"""
地图可视化模块
显示概率栅格地图、射线栅格化结果和障碍物点
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)


class MapVisualizer:
    """概率地图可视化器

    在世界坐标下显示地图（gray_r：白=空闲，黑=占用，灰=未知），
    并可叠加射线经过的栅格、障碍物点和传感器位置。

    Attributes:
        map_obj: ProbabilityMap对象
        fig: matplotlib图形对象
        ax_map: 地图子图

    Example:
        >>> visualizer = MapVisualizer(map_obj)
        >>> visualizer.update(cells=map_obj.line((0, 0), (3, 2)))
        >>> visualizer.save('data/maps/room.png')
    """

    def __init__(self, map_obj, figsize: Tuple[float, float] = (10, 8),
                 show_colorbar: bool = True):
        """初始化可视化器

        Args:
            map_obj: ProbabilityMap对象
            figsize: 图形大小（宽, 高）单位英寸
            show_colorbar: 是否显示颜色条
        """
        self.map_obj = map_obj

        self.fig, self.ax_map = plt.subplots(figsize=figsize)

        self.img_map = self.ax_map.imshow(
            self.map_obj.probabilities(),
            cmap='gray_r',
            vmin=0.0,
            vmax=1.0,
            origin='lower',
            interpolation='nearest',
            extent=self.map_obj.get_extent()
        )

        if show_colorbar:
            cbar = self.fig.colorbar(self.img_map, ax=self.ax_map, fraction=0.046, pad=0.04)
            cbar.set_label('Occupancy Probability', rotation=270, labelpad=15)

        self.ax_map.set_xlabel('X (meters)', fontsize=10)
        self.ax_map.set_ylabel('Y (meters)', fontsize=10)
        self.ax_map.set_title('Occupancy Grid Map', fontsize=12, fontweight='bold')

        # 叠加图层
        self.cell_patches = None
        self.ray_lines = []
        self.points_scatter = None
        self.sensor_marker = None

    def update(self,
               cells: Optional[List] = None,
               points: Optional[List[Tuple[float, float]]] = None,
               sensor: Optional[Tuple[float, float]] = None):
        """刷新地图并更新叠加图层

        Args:
            cells: LineCell列表（射线栅格化结果）
            points: 栅格坐标点 [(col, row), ...]，一般来自 map_obj.points()
            sensor: 传感器世界坐标 (x, y)
        """
        self.img_map.set_data(self.map_obj.probabilities())

        if cells is not None:
            self._update_cells(cells)

        if points is not None:
            self._update_points(points)

        if sensor is not None:
            self._update_sensor(sensor)

        self.fig.canvas.draw_idle()

    def _update_cells(self, cells: List):
        """绘制射线经过的栅格中心和每段进入/离开线段"""
        for line in self.ray_lines:
            line.remove()
        self.ray_lines = []
        if self.cell_patches is not None:
            self.cell_patches.remove()
            self.cell_patches = None

        if not cells:
            return

        centers = self.map_obj.to_world(
            np.array([[c.col + 0.5, c.row + 0.5] for c in cells]))
        self.cell_patches = self.ax_map.scatter(
            centers[:, 0], centers[:, 1],
            c='orange',
            s=30,
            marker='s',
            alpha=0.5,
            zorder=5,
            label='Ray Cells'
        )

        for cell in cells:
            line, = self.ax_map.plot(
                [cell.entry_point[0], cell.exit_point[0]],
                [cell.entry_point[1], cell.exit_point[1]],
                'b-',
                linewidth=1.5,
                zorder=6
            )
            self.ray_lines.append(line)

    def _update_points(self, points: List[Tuple[float, float]]):
        """绘制障碍物点（栅格坐标转为栅格中心的世界坐标）"""
        if self.points_scatter is not None:
            self.points_scatter.remove()
            self.points_scatter = None

        if not points:
            return

        world = self.map_obj.to_world(np.asarray(points, dtype=np.float64) + 0.5)
        self.points_scatter = self.ax_map.scatter(
            world[:, 0], world[:, 1],
            c='red',
            s=10,
            marker='.',
            alpha=0.8,
            zorder=7,
            label='Obstacle Points'
        )

    def _update_sensor(self, sensor: Tuple[float, float]):
        """绘制传感器位置"""
        if self.sensor_marker is not None:
            self.sensor_marker.remove()

        self.sensor_marker = self.ax_map.scatter(
            [sensor[0]], [sensor[1]],
            c='blue',
            s=120,
            marker='o',
            edgecolors='black',
            linewidths=1.5,
            zorder=10,
            label='Sensor'
        )

    def save(self, filename: str, dpi: int = 150) -> str:
        """保存当前图像"""
        path = Path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.fig.savefig(path, dpi=dpi, bbox_inches='tight')
        logger.info(f"[可视化] 图像已保存: {path}")
        return str(path)

    def show(self):
        """显示窗口（阻塞）"""
        plt.show()

    def close(self):
        """关闭图形"""
        plt.close(self.fig)
