"""
地图文件读写模块
- 导出 .pgm 栅格图 + .yaml 元数据（map_server格式）
- 读回导出的地图
- .npz 无损快照
"""

import logging
from pathlib import Path

import numpy as np
import yaml
from PIL import Image

from .errors import InvalidArgumentError, MapExportError
from .probability_map import ProbabilityMap, probability_to_log_odds
from ..utils.logger import log_performance

logger = logging.getLogger(__name__)

OCCUPIED_THRESH = 0.80
FREE_THRESH = 0.20


# 逐行格式化而不是yaml.safe_dump：阈值需要保留两位小数（0.80），safe_dump会输出0.8
def _yaml_text(image_name: str, resolution: float, origin,
               occupied_thresh: float, free_thresh: float) -> str:
    return (
        f"image: {image_name}\n"
        f"resolution: {resolution}\n"
        f"origin: [{origin[0]}, {origin[1]}, 0.0]\n"
        f"negate: 0\n"
        f"occupied_thresh: {occupied_thresh:.2f}\n"
        f"free_thresh: {free_thresh:.2f}\n"
    )


@log_performance(logger)
def save_occupancy_grid(map_obj: ProbabilityMap, filename: str,
                        occupied_thresh: float = OCCUPIED_THRESH,
                        free_thresh: float = FREE_THRESH):
    """导出占据栅格地图

    依次写出 <filename>.pgm 和 <filename>.yaml，不是事务性的：
    .yaml写入失败时.pgm已经存在，异常的written字段会列出它。

    Args:
        map_obj: ProbabilityMap对象
        filename: 不带扩展名的输出路径
        occupied_thresh: 写入yaml的占用阈值
        free_thresh: 写入yaml的空闲阈值

    Returns:
        (pgm路径, yaml路径)

    Raises:
        MapExportError: 无法打开或写入目标文件
    """
    base = Path(filename)
    pgm_path = base.parent / (base.name + '.pgm')
    yaml_path = base.parent / (base.name + '.yaml')

    occupancy = map_obj.occupancy_grid()
    written = []

    try:
        # uint8二维数组即L模式，PPM编码器写出二进制P5
        img = Image.fromarray(np.ascontiguousarray(occupancy))
        img.save(pgm_path, format='PPM')
    except OSError as e:
        logger.error(f"[地图] 栅格图写入失败: {pgm_path} - {e}")
        raise MapExportError(f"无法写入栅格图 {pgm_path}: {e}", str(pgm_path), written) from e
    written.append(str(pgm_path))

    try:
        with open(yaml_path, 'w', encoding='utf-8') as f:
            f.write(_yaml_text(pgm_path.name, map_obj.cell_size, map_obj.origin,
                               occupied_thresh, free_thresh))
    except OSError as e:
        logger.error(f"[地图] 元数据写入失败: {yaml_path} - {e}（栅格图已写出）")
        raise MapExportError(f"无法写入元数据 {yaml_path}: {e}", str(yaml_path), written) from e

    logger.info(f"[地图] 已导出: {pgm_path}, {yaml_path}")
    return str(pgm_path), str(yaml_path)


def load_occupancy_grid(yaml_file: str) -> ProbabilityMap:
    """读回save_occupancy_grid导出的地图

    8位量化是有损的：概率按 1 - byte/255 恢复，log-odds截断到±MAX_LOG_ODDS。

    Args:
        yaml_file: .yaml元数据路径

    Returns:
        新的ProbabilityMap
    """
    yaml_path = Path(yaml_file)
    try:
        with open(yaml_path, 'r', encoding='utf-8') as f:
            meta = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise MapExportError(f"无法读取元数据 {yaml_path}: {e}", str(yaml_path)) from e

    if not isinstance(meta, dict) or not {'image', 'resolution', 'origin'} <= meta.keys():
        raise InvalidArgumentError(f"元数据缺少image/resolution/origin字段: {yaml_path}")

    image_path = Path(meta['image'])
    if not image_path.is_absolute():
        image_path = yaml_path.parent / image_path

    try:
        with Image.open(image_path) as img:
            pixels = np.array(img.convert('L'), dtype=np.float64)
    except OSError as e:
        raise MapExportError(f"无法读取栅格图 {image_path}: {e}", str(image_path)) from e

    if int(meta.get('negate', 0)):
        pixels = 255.0 - pixels

    rows, cols = pixels.shape
    origin = meta['origin']
    map_obj = ProbabilityMap(rows, cols, float(meta['resolution']),
                             (float(origin[0]), float(origin[1])))

    probability = 1.0 - pixels / 255.0
    with np.errstate(divide='ignore'):
        log_odds = probability_to_log_odds(probability)
    map_obj.load(np.clip(log_odds, -ProbabilityMap.MAX_LOG_ODDS, ProbabilityMap.MAX_LOG_ODDS))

    logger.info(f"[地图] 已加载: {yaml_path} ({rows}x{cols})")
    return map_obj


def save_map(map_obj: ProbabilityMap, filename: str):
    """保存无损地图快照（.npz：log-odds、栅格尺寸、原点）

    Returns:
        实际写出的文件路径
    """
    path = Path(filename).with_suffix('.npz')
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        np.savez(path,
                 log_odds=map_obj.log_odds(),
                 cell_size=map_obj.cell_size,
                 origin=np.array(map_obj.origin))
    except OSError as e:
        raise MapExportError(f"无法保存地图 {path}: {e}", str(path)) from e

    logger.info(f"[地图] 已保存: {path}")
    return str(path)


def load_map(filename: str) -> ProbabilityMap:
    """加载save_map保存的快照"""
    path = Path(filename)
    try:
        with np.load(path) as data:
            log_odds = data['log_odds']
            cell_size = float(data['cell_size'])
            origin = tuple(float(v) for v in data['origin'])
    except (OSError, KeyError) as e:
        raise MapExportError(f"无法加载地图 {path}: {e}", str(path)) from e

    rows, cols = log_odds.shape
    map_obj = ProbabilityMap(rows, cols, cell_size, origin)
    map_obj.load(log_odds)

    logger.info(f"[地图] 已加载: {path}")
    return map_obj
