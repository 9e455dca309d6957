"""
地图异常定义
所有概率地图操作抛出的异常类型
"""

from typing import List, Optional


class MapError(Exception):
    """概率地图异常基类"""


class BoundsError(MapError, IndexError):
    """坐标超出地图范围

    Attributes:
        row: 越界的行坐标（插值时为连续的y坐标）
        col: 越界的列坐标（插值时为连续的x坐标）
    """

    def __init__(self, row, col):
        self.row = row
        self.col = col
        super().__init__(f"请求的地图坐标 ({row}, {col}) 不在地图范围内")


class InvalidArgumentError(MapError, ValueError):
    """参数非法（退化概率、缓冲区长度不匹配等）"""


class MapExportError(MapError, OSError):
    """地图文件读写失败

    导出不是事务性的：.pgm写完后.yaml失败时，written中会包含已写出的文件。

    Attributes:
        path: 失败的文件路径
        written: 失败前已经写出的文件列表
    """

    def __init__(self, message: str, path: str, written: Optional[List[str]] = None):
        self.path = path
        self.written = list(written) if written else []
        super().__init__(message)
