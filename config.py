# config.py - probmap 统一配置文件
# 修改此文件后，重启程序即可生效

# ============================================================================
# 地图配置
# ============================================================================
MAP_ROWS = 200                     # 栅格行数（Y方向）
MAP_COLS = 200                     # 栅格列数（X方向）
MAP_CELL_SIZE = 0.05               # 米/栅格（分辨率）
MAP_ORIGIN_X = -5.0                # 栅格(0,0)的世界坐标X（米）
MAP_ORIGIN_Y = -5.0                # 栅格(0,0)的世界坐标Y（米）

# ============================================================================
# 扫描融合配置
# ============================================================================
SCAN_PROB_HIT = 0.7                # 射线终点命中时的观测概率
SCAN_PROB_MISS = 0.4               # 射线穿过栅格时的观测概率
SCAN_MAX_RANGE = 8.0               # 最大有效距离（米），None表示不限制
SCAN_BEAMS = 360                   # 演示扫描的射线数量

# ============================================================================
# 平滑配置
# ============================================================================
SMOOTH_ENABLE = False              # 导出前是否平滑
SMOOTH_SIGMA = 0.05                # 高斯平滑sigma（米）

# ============================================================================
# 导出配置
# ============================================================================
EXPORT_DIR = 'data/maps'
EXPORT_NAME = 'map'
EXPORT_OCCUPIED_THRESH = 0.80      # 写入yaml的占用阈值
EXPORT_FREE_THRESH = 0.20          # 写入yaml的空闲阈值
POINTS_THRESHOLD = 0.8             # 障碍物点提取阈值

# ============================================================================
# 可视化配置
# ============================================================================
VISUALIZE_WINDOW_SIZE = (10, 8)    # 窗口大小（英寸，matplotlib figsize）

# ============================================================================
# 日志配置
# ============================================================================
LOG_DIR = 'data/logs'
LOG_LEVEL = 'INFO'                 # DEBUG | INFO | WARNING | ERROR
ENABLE_FILE_LOG = True
ENABLE_CONSOLE_LOG = True
LOG_FORMAT = '[%(asctime)s] %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%H:%M:%S'

# ============================================================================
# 辅助函数
# ============================================================================

def get_config_summary():
    """获取配置摘要（用于调试）"""
    return f"""
╔════════════════════════════════════════════════════════════════╗
║                    probmap 配置摘要                            ║
╠════════════════════════════════════════════════════════════════╣
║ 地图: {MAP_ROWS}x{MAP_COLS} @ {MAP_CELL_SIZE}m/格, 原点=({MAP_ORIGIN_X}, {MAP_ORIGIN_Y})
║ 扫描: hit={SCAN_PROB_HIT}, miss={SCAN_PROB_MISS}, 最大距离={SCAN_MAX_RANGE}m
║ 平滑: {'启用' if SMOOTH_ENABLE else '禁用'}, sigma={SMOOTH_SIGMA}m
║ 导出: {EXPORT_DIR}/{EXPORT_NAME}.pgm + .yaml
║ 日志: {LOG_LEVEL} -> {LOG_DIR}
╚════════════════════════════════════════════════════════════════╝
    """

def validate_config():
    """验证配置参数的合理性

    Returns:
        (是否通过, 错误列表, 警告列表)
    """
    errors = []
    warnings = []

    if MAP_ROWS <= 0 or MAP_COLS <= 0:
        errors.append("MAP_ROWS/MAP_COLS 必须大于0")
    if MAP_CELL_SIZE <= 0:
        errors.append("MAP_CELL_SIZE 必须大于0")
    for name, value in (('SCAN_PROB_HIT', SCAN_PROB_HIT), ('SCAN_PROB_MISS', SCAN_PROB_MISS)):
        if not 0.0 < value < 1.0:
            errors.append(f"{name} 必须在(0, 1)内")
    if SMOOTH_SIGMA <= 0:
        errors.append("SMOOTH_SIGMA 必须大于0")

    if SCAN_PROB_HIT <= 0.5:
        warnings.append(f"SCAN_PROB_HIT={SCAN_PROB_HIT} 不大于0.5，命中不会增加占用概率")
    if SCAN_PROB_MISS >= 0.5:
        warnings.append(f"SCAN_PROB_MISS={SCAN_PROB_MISS} 不小于0.5，射线不会清除障碍物")
    if MAP_ROWS * MAP_COLS > 4000 * 4000:
        warnings.append(f"地图 {MAP_ROWS}x{MAP_COLS} 过大，平滑和导出会很慢")

    if errors:
        print("❌ 配置错误:")
        for err in errors:
            print(f"   - {err}")

    if warnings:
        print("⚠️  配置警告:")
        for warn in warnings:
            print(f"   - {warn}")

    if not errors and not warnings:
        print("✅ 配置验证通过")

    return len(errors) == 0, errors, warnings

# ============================================================================
# 自动执行（导入时）
# ============================================================================

if __name__ == '__main__':
    # 如果直接运行此文件，显示配置摘要
    print(get_config_summary())
    validate_config()
