"""
扫描融合测试
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest
import numpy as np
from probmap.mapping import (
    ProbabilityMap, ScanIntegrator, ScanUpdateConfig, InvalidArgumentError
)


class TestScanIntegrator:
    """扫描融合器测试（10x10，1米/格）"""

    def setup_method(self):
        self.map = ProbabilityMap(10, 10, 1.0)
        self.integrator = ScanIntegrator(self.map)

    def test_single_ray(self):
        """途经栅格为空闲，终点栅格为占用"""
        updated = self.integrator.integrate_ray((0.5, 0.5), (5.5, 0.5))

        assert updated == 6
        for col in range(5):
            assert self.map.at(0, col) == pytest.approx(0.4)
        assert self.map.at(0, 5) == pytest.approx(0.7)
        assert self.map.at(0, 6) == pytest.approx(0.5)

    def test_no_hit(self):
        """未命中的射线终点也标记为空闲"""
        self.integrator.integrate_ray((0.5, 0.5), (5.5, 0.5), hit=False)
        assert self.map.at(0, 5) == pytest.approx(0.4)

    def test_endpoint_outside_map(self):
        """终点在地图外：最后一个栅格不含终点，不标记占用"""
        updated = self.integrator.integrate_ray((0.5, 0.5), (15.5, 0.5))

        assert updated == 10
        assert self.map.at(0, 9) == pytest.approx(0.4)

    def test_ray_outside_map(self):
        """完全在地图外的射线不更新任何栅格"""
        assert self.integrator.integrate_ray((-5.0, -5.0), (-1.0, -1.0)) == 0
        assert self.integrator.ray_count == 1
        assert self.integrator.cell_updates == 0

    def test_max_range(self):
        """超出最大距离的射线被截断并视为未命中"""
        integrator = ScanIntegrator(self.map, ScanUpdateConfig(max_range=3.0))
        updated = integrator.integrate_ray((0.5, 0.5), (8.5, 0.5))

        assert updated == 4
        for col in range(4):
            assert self.map.at(0, col) == pytest.approx(0.4)
        assert self.map.at(0, 4) == pytest.approx(0.5)

    def test_integrate_scan(self):
        """一帧扫描的统计信息"""
        endpoints = np.array([[5.5, 5.5], [1.5, 5.5], [5.5, 1.5], [9.5, 9.5]])
        self.integrator.integrate_scan((5.5, 5.5), endpoints)
        self.integrator.integrate_scan((5.5, 5.5), endpoints, hits=[True, False, True, True])

        stats = self.integrator.get_statistics()
        assert stats['scan_count'] == 2
        assert stats['ray_count'] == 8
        assert stats['cell_updates'] > 0

        # 第二帧第二条射线未命中：命中一次、未命中一次
        assert self.map.at(5, 1) == pytest.approx(
            float(1.0 / (1.0 + (0.3 / 0.7) * (0.6 / 0.4))))

    def test_hits_length_mismatch(self):
        """hits长度必须与终点数量一致"""
        with pytest.raises(InvalidArgumentError):
            self.integrator.integrate_scan((0.5, 0.5), [[1.5, 1.5], [2.5, 2.5]], hits=[True])

    def test_invalid_config(self):
        """非法参数"""
        with pytest.raises(InvalidArgumentError):
            ScanIntegrator(self.map, ScanUpdateConfig(prob_hit=1.0))
        with pytest.raises(InvalidArgumentError):
            ScanIntegrator(self.map, ScanUpdateConfig(prob_miss=0.0))
        with pytest.raises(InvalidArgumentError):
            ScanIntegrator(self.map, ScanUpdateConfig(max_range=-1.0))

    def test_repeated_hits_become_points(self):
        """多次命中同一位置后可提取为障碍物点"""
        for _ in range(5):
            self.integrator.integrate_scan((0.5, 0.5), [[5.5, 0.5]])

        assert self.map.points(0.9) == [(5.0, 0.0)]
        assert self.map.at(0, 2) < 0.2


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
