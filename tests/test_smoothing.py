"""
高斯平滑测试
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest
import numpy as np
from probmap.mapping.probability_map import ProbabilityMap, gaussian_kernel
from probmap.mapping.errors import InvalidArgumentError


def test_gaussian_kernel_shape():
    """核长度 2*floor(3*sigma)+1，归一化且对称"""
    kernel = gaussian_kernel(1.0)

    assert kernel.size == 7
    assert kernel.sum() == pytest.approx(1.0)
    assert np.allclose(kernel, kernel[::-1])
    assert np.argmax(kernel) == 3

    assert gaussian_kernel(2.5).size == 15


def test_gaussian_kernel_weights():
    """权重正比于 exp(-x^2/(2*sigma^2))"""
    kernel = gaussian_kernel(1.0)
    assert kernel[4] / kernel[3] == pytest.approx(np.exp(-0.5))
    assert kernel[5] / kernel[3] == pytest.approx(np.exp(-2.0))


def test_gaussian_kernel_small_sigma():
    """sigma小于1/3格时核长度为1"""
    kernel = gaussian_kernel(0.2)
    assert kernel.size == 1
    assert kernel[0] == 1.0


class TestSmooth:
    """地图平滑测试"""

    def setup_method(self):
        # 11x11，中心脉冲
        self.map = ProbabilityMap(11, 11, 1.0)
        buffer = np.zeros((11, 11))
        buffer[5, 5] = 10.0
        self.map.load(buffer)

    def test_impulse_response(self):
        """脉冲平滑后为两个一维核的外积"""
        self.map.smooth(1.0)
        data = self.map.log_odds()
        kernel = gaussian_kernel(1.0)

        expected = np.zeros((11, 11))
        expected[2:9, 2:9] = 10.0 * np.outer(kernel, kernel)
        assert np.allclose(data, expected)

    def test_impulse_symmetric(self):
        """行、列方向对称"""
        self.map.smooth(1.0)
        data = self.map.log_odds()

        assert data[5, 5] < 10.0
        assert data[5, 4] == pytest.approx(data[5, 6])
        assert data[5, 4] == pytest.approx(data[4, 5])
        assert data.sum() == pytest.approx(10.0)

    def test_sigma_in_world_units(self):
        """sigma按栅格尺寸换算"""
        scaled = ProbabilityMap(11, 11, 0.5)
        scaled.load(self.map.log_odds())

        scaled.smooth(0.5)  # 0.5米 = 1格
        self.map.smooth(1.0)

        assert np.allclose(scaled.log_odds(), self.map.log_odds())

    def test_uniform_field_unchanged(self):
        """边界复制边缘值：均匀场保持不变"""
        self.map.load(np.full(121, 2.0))
        self.map.smooth(2.0)

        assert np.allclose(self.map.log_odds(), 2.0)

    def test_edge_uses_nearest_value(self):
        """边界外按最近的边缘栅格取值"""
        buffer = np.zeros((11, 11))
        buffer[:, 0] = 4.0  # 第一列
        self.map.load(buffer)
        self.map.smooth(1.0)

        kernel = gaussian_kernel(1.0)
        # 第0列：自身及左侧三个复制值都为4
        assert self.map.log_odds()[5, 0] == pytest.approx(4.0 * kernel[:4].sum())
        # 每一行相同
        assert np.allclose(self.map.log_odds()[:, 0], self.map.log_odds()[5, 0])

    def test_result_within_limits(self):
        """平滑结果仍在 ±MAX_LOG_ODDS 内"""
        self.map.load(np.full(121, ProbabilityMap.MAX_LOG_ODDS))
        self.map.smooth(1.5)

        assert np.all(self.map.log_odds() <= ProbabilityMap.MAX_LOG_ODDS)

    def test_small_sigma_is_identity(self):
        """核长度为1时地图不变"""
        before = self.map.log_odds()
        self.map.smooth(0.1)

        assert np.allclose(self.map.log_odds(), before)

    def test_invalid_sigma(self):
        """非法sigma"""
        for sigma in (0.0, -1.0, float('nan'), float('inf')):
            with pytest.raises(InvalidArgumentError):
                self.map.smooth(sigma)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
