"""
probmap 主程序入口
模拟一个矩形房间的雷达扫描，融合进概率地图并导出 .pgm/.yaml
"""

import argparse
import sys
from pathlib import Path

import numpy as np

import config
from probmap.mapping import (
    ProbabilityMap, MapConfig, ScanIntegrator, ScanUpdateConfig,
    MapError, find_intersections
)
from probmap.utils.logger import setup_project_logging


# 演示房间：外墙和房间内的箱子（左下角, 右上角），世界坐标（米）
ROOM = ((-3.5, -3.0), (3.5, 3.0))
BOXES = [
    ((0.8, 0.5), (1.6, 1.3)),
    ((-2.2, -1.8), (-1.4, -0.6)),
]
SENSOR_POSES = [(0.0, 0.0), (-1.5, 1.5), (2.0, -1.5)]


def simulate_scan(sensor, n_beams: int, max_range: float):
    """在演示房间里模拟一帧扫描

    Args:
        sensor: 传感器位置 (x, y)
        n_beams: 射线数量
        max_range: 最大距离（米）

    Returns:
        (endpoints, hits): 终点 (N, 2) 和是否命中 (N,)
    """
    sensor = np.asarray(sensor, dtype=np.float64)
    endpoints = []
    hits = []

    for angle in np.linspace(0.0, 2 * np.pi, n_beams, endpoint=False):
        direction = np.array([np.cos(angle), np.sin(angle)])
        far = sensor + max_range * direction

        # 房间内部：离开点即墙面
        best = max_range
        crossing = find_intersections(sensor, far, *ROOM)
        if crossing is not None:
            best = min(best, float(np.dot(np.asarray(crossing[1]) - sensor, direction)))

        for box in BOXES:
            crossing = find_intersections(sensor, far, *box)
            if crossing is None:
                continue
            t_entry = float(np.dot(np.asarray(crossing[0]) - sensor, direction))
            t_exit = float(np.dot(np.asarray(crossing[1]) - sensor, direction))
            if t_exit > 0 and t_entry < best:
                best = max(t_entry, 0.0)

        endpoints.append(sensor + best * direction)
        hits.append(best < max_range)

    return np.array(endpoints), np.array(hits)


def build_demo_map(map_config: MapConfig, scan_config: ScanUpdateConfig,
                   n_beams: int) -> ProbabilityMap:
    """创建地图并融合所有演示位姿的扫描"""
    map_obj = ProbabilityMap.from_config(map_config)
    integrator = ScanIntegrator(map_obj, scan_config)
    max_range = scan_config.max_range if scan_config.max_range else 10.0

    for pose in SENSOR_POSES:
        endpoints, hits = simulate_scan(pose, n_beams, max_range)
        integrator.integrate_scan(pose, endpoints, hits)

    stats = integrator.get_statistics()
    print(f"[扫描] {stats['scan_count']} 帧, {stats['ray_count']} 条射线, "
          f"{stats['cell_updates']} 次栅格更新")
    return map_obj


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='probmap 概率栅格建图演示')
    parser.add_argument('--rows', type=int, default=config.MAP_ROWS, help='栅格行数')
    parser.add_argument('--cols', type=int, default=config.MAP_COLS, help='栅格列数')
    parser.add_argument('--cell-size', type=float, default=config.MAP_CELL_SIZE, help='米/栅格')
    parser.add_argument('--origin', type=float, nargs=2,
                        default=(config.MAP_ORIGIN_X, config.MAP_ORIGIN_Y),
                        metavar=('X', 'Y'), help='栅格(0,0)的世界坐标')
    parser.add_argument('--beams', type=int, default=config.SCAN_BEAMS, help='每帧射线数量')
    parser.add_argument('--smooth', type=float, default=None,
                        help='高斯平滑sigma（米），不指定则按config.SMOOTH_ENABLE')
    parser.add_argument('--output', type=str,
                        default=str(Path(config.EXPORT_DIR) / config.EXPORT_NAME),
                        help='导出路径（不带扩展名）')
    parser.add_argument('--plot', action='store_true', help='保存地图图像（.png）')
    parser.add_argument('--no-file-log', action='store_true', help='不写日志文件')
    return parser.parse_args(argv)


def main(argv=None):
    """主函数"""
    args = parse_args(argv)

    log_dir = None if (args.no_file_log or not config.ENABLE_FILE_LOG) else config.LOG_DIR
    setup_project_logging(log_dir, config.LOG_LEVEL,
                          console=config.ENABLE_CONSOLE_LOG,
                          fmt=config.LOG_FORMAT, datefmt=config.LOG_DATE_FORMAT)

    print("=" * 70)
    print(" probmap - 概率占据栅格建图演示")
    print("=" * 70)
    print(f"  地图: {args.rows}x{args.cols} @ {args.cell_size}m/格")
    print(f"  原点: ({args.origin[0]}, {args.origin[1]})")
    print(f"  输出: {args.output}.pgm / .yaml")
    print()

    map_config = MapConfig(rows=args.rows, cols=args.cols, cell_size=args.cell_size,
                           origin_x=args.origin[0], origin_y=args.origin[1])
    scan_config = ScanUpdateConfig(prob_hit=config.SCAN_PROB_HIT,
                                   prob_miss=config.SCAN_PROB_MISS,
                                   max_range=config.SCAN_MAX_RANGE)

    try:
        map_obj = build_demo_map(map_config, scan_config, args.beams)

        sigma = args.smooth
        if sigma is None and config.SMOOTH_ENABLE:
            sigma = config.SMOOTH_SIGMA
        if sigma:
            map_obj.smooth(sigma)
            print(f"[地图] 已平滑 sigma={sigma}m")

        Path(args.output).parent.mkdir(parents=True, exist_ok=True)
        map_obj.save_occupancy_grid(args.output,
                                    occupied_thresh=config.EXPORT_OCCUPIED_THRESH,
                                    free_thresh=config.EXPORT_FREE_THRESH)
    except MapError as e:
        print(f"[错误] {e}")
        return 1

    stats = map_obj.get_statistics(config.EXPORT_FREE_THRESH, config.EXPORT_OCCUPIED_THRESH)
    obstacles = map_obj.points(config.POINTS_THRESHOLD)
    print(f"[地图] 占用 {stats['occupied_cells']} / 空闲 {stats['free_cells']} / "
          f"未知 {stats['unknown_cells']}, 探索率 {stats['explored_ratio']:.1%}")
    print(f"[地图] 障碍物点: {len(obstacles)}")

    if args.plot:
        from probmap.visualization.map_visualizer import MapVisualizer
        visualizer = MapVisualizer(map_obj, figsize=config.VISUALIZE_WINDOW_SIZE)
        visualizer.update(points=obstacles, sensor=SENSOR_POSES[0])
        visualizer.save(args.output + '.png')
        visualizer.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
