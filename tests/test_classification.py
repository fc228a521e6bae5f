"""LISA 聚类分类与 p 值分级测试"""

import numpy as np
import pytest

from lisa_moran.analysis import (
    CLUSTER_LABELS,
    ClusterLabel,
    classify_lisa,
    classify_lisa_array,
    classify_pvalues,
)


class TestClassifyLisa:

    @pytest.mark.parametrize('z, Z, expected', [
        (1.2, 2.0, ClusterLabel.HIGH_HIGH),
        (-1.2, 2.0, ClusterLabel.LOW_LOW),
        (1.2, -2.0, ClusterLabel.HIGH_LOW),
        (-1.2, -2.0, ClusterLabel.LOW_HIGH),
    ])
    def test_quadrants(self, z, Z, expected):
        assert classify_lisa(z, Z, 0.01, alpha=0.05) == expected

    def test_labels_are_strings(self):
        assert classify_lisa(1.0, 1.0, 0.0) == 'High-High'
        assert CLUSTER_LABELS == ['High-High', 'Low-Low', 'High-Low', 'Low-High', 'Not Significant']

    def test_not_significant(self):
        assert classify_lisa(1.2, 2.0, 0.2, alpha=0.05) == ClusterLabel.NOT_SIGNIFICANT

    def test_p_equal_to_alpha_is_significant(self):
        assert classify_lisa(1.2, 2.0, 0.05, alpha=0.05) == ClusterLabel.HIGH_HIGH

    @pytest.mark.parametrize('z, Z', [(0.0, 2.0), (1.0, 0.0), (0.0, 0.0), (-1.0, 0.0)])
    def test_zero_boundaries(self, z, Z):
        assert classify_lisa(z, Z, 0.001) == ClusterLabel.NOT_SIGNIFICANT

    def test_nan_p(self):
        assert classify_lisa(1.0, 1.0, float('nan')) == ClusterLabel.NOT_SIGNIFICANT

    @pytest.mark.parametrize('alpha', [0.0, 1.0, -0.1, 1.5])
    def test_invalid_alpha(self, alpha):
        with pytest.raises(ValueError):
            classify_lisa(1.0, 1.0, 0.01, alpha=alpha)


class TestClassifyArray:

    def test_matches_scalar(self):
        rng = np.random.default_rng(0)
        z = rng.normal(size=200)
        Z = rng.normal(size=200)
        p = rng.uniform(size=200)
        z[:5] = 0.0
        Z[5:10] = 0.0

        labels = classify_lisa_array(z, Z, p, alpha=0.1)
        for i in range(200):
            assert labels[i] == classify_lisa(z[i], Z[i], p[i], alpha=0.1).value

    def test_stricter_alpha_never_adds_clusters(self):
        rng = np.random.default_rng(1)
        z = rng.normal(size=500)
        Z = rng.normal(size=500)
        p = rng.uniform(size=500)

        loose = classify_lisa_array(z, Z, p, alpha=0.05)
        strict = classify_lisa_array(z, Z, p, alpha=0.01)
        for label in CLUSTER_LABELS[:-1]:
            assert (strict == label).sum() <= (loose == label).sum()
        # 严格 α 下被判为某类的单元在宽松 α 下类别不变
        directional = strict != ClusterLabel.NOT_SIGNIFICANT.value
        assert np.array_equal(strict[directional], loose[directional])

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            classify_lisa_array([1.0, 2.0], [1.0], [0.01, 0.02])


class TestClassifyPvalues:

    def test_left_closed_bins(self):
        p = [0.0, 0.005, 0.01, 0.049, 0.05, 0.0999, 0.10, 0.5, 1.0, float('nan')]
        assert classify_pvalues(p).tolist() == [
            'p < 0.01', 'p < 0.01',
            'p < 0.05', 'p < 0.05',
            'p < 0.10', 'p < 0.10',
            'Not Significant', 'Not Significant', 'Not Significant', 'Not Significant',
        ]
