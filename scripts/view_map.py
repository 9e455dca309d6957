"""
查看导出的地图
读取 .yaml + .pgm，显示或保存为图像
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import argparse

import config
from probmap.mapping.map_io import load_occupancy_grid
from probmap.visualization.map_visualizer import MapVisualizer


def main():
    parser = argparse.ArgumentParser(description='查看导出的占据栅格地图')
    parser.add_argument('yaml_file', help='地图元数据 .yaml')
    parser.add_argument('--threshold', type=float, default=config.POINTS_THRESHOLD,
                        help='障碍物点阈值')
    parser.add_argument('--save', type=str, default=None, help='保存为图像而不是显示')
    args = parser.parse_args()

    map_obj = load_occupancy_grid(args.yaml_file)
    print(f"[查看] {map_obj!r}")

    stats = map_obj.get_statistics()
    print(f"[查看] 占用 {stats['occupied_cells']} / 空闲 {stats['free_cells']} / "
          f"未知 {stats['unknown_cells']}")

    visualizer = MapVisualizer(map_obj, figsize=config.VISUALIZE_WINDOW_SIZE)
    visualizer.update(points=map_obj.points(args.threshold))

    if args.save:
        visualizer.save(args.save)
        visualizer.close()
    else:
        visualizer.show()


if __name__ == '__main__':
    main()
