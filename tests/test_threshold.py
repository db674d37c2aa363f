"""Tests for intensity grid binarization."""

import math

import numpy as np
import pytest

from rasterpaths.models import ThresholdMethod

ALL_METHODS = list(ThresholdMethod)


class TestGlobalThresholds:
    """Tests for the histogram-based strategies."""

    def test_otsu_two_level_between_levels(self, two_level_grid):
        """Otsu cutoff lands strictly between the two intensity levels."""
        from rasterpaths.preprocess.threshold import otsu_threshold

        t = otsu_threshold(two_level_grid)

        assert 10 < t < 60000

    def test_otsu_cuts_halfway_across_gap(self, two_level_grid):
        """An empty histogram gap is split at its midpoint."""
        from rasterpaths.preprocess.threshold import otsu_threshold

        assert otsu_threshold(two_level_grid) == pytest.approx((10 + 59999) / 2)

    def test_kapur_two_level_between_levels(self, two_level_grid):
        """Kapur cutoff lands strictly between the two intensity levels."""
        from rasterpaths.preprocess.threshold import kapur_threshold

        t = kapur_threshold(two_level_grid)

        assert 10 < t < 60000

    def test_single_intensity_falls_back_to_zero(self, uniform_grid):
        """With only one intensity no split exists, so the cutoff is 0."""
        from rasterpaths.preprocess.threshold import kapur_threshold, otsu_threshold

        assert otsu_threshold(uniform_grid) == 0.0
        assert kapur_threshold(uniform_grid) == 0.0

    def test_otsu_separates_three_clusters(self):
        """A dark minority cluster is split from the bright majority."""
        from rasterpaths.preprocess.threshold import otsu_threshold

        grid = np.full((20, 20), 200, dtype=np.uint8)
        grid[:5] = 20
        grid[5:8] = 30

        t = otsu_threshold(grid)

        assert 30 <= t < 200

    def test_two_level_mask(self, two_level_grid):
        """Dark half becomes ink, bright half paper."""
        from rasterpaths.models import BACKGROUND, FOREGROUND
        from rasterpaths.preprocess.threshold import threshold

        for method in (ThresholdMethod.OTSU, ThresholdMethod.KAPUR, ThresholdMethod.WOLF):
            mask = threshold(two_level_grid, method)
            assert np.all(mask[:, :30] == FOREGROUND), method
            assert np.all(mask[:, 30:] == BACKGROUND), method


class TestLocalThresholds:
    """Tests for the windowed strategies."""

    def test_window_half_size_clamped(self):
        """Adaptive window half-size is clamped to [5, 50]."""
        from rasterpaths.config import ThresholdConfig
        from rasterpaths.preprocess.threshold import window_half_size

        config = ThresholdConfig()

        assert window_half_size(40, 40, config) == 5
        assert window_half_size(400, 300, config) == 15
        assert window_half_size(5000, 4000, config) == 50

    def test_integral_tables_totals(self, line_drawing_grid):
        """Bottom-right corner of the prefix tables holds the full sums."""
        from rasterpaths.preprocess.threshold import integral_tables

        sums, squares = integral_tables(line_drawing_grid)
        values = line_drawing_grid.astype(np.float64)

        assert sums.shape == (121, 161)
        assert sums[-1, -1] == pytest.approx(values.sum())
        assert squares[-1, -1] == pytest.approx((values ** 2).sum())
        assert np.all(sums[0, :] == 0) and np.all(sums[:, 0] == 0)

    def test_small_grid_uses_midrange(self):
        """Grids smaller than the window fall back to the representable mid-range."""
        from rasterpaths.preprocess.threshold import bernsen_threshold, sauvola_threshold

        grid = np.arange(25, dtype=np.uint16).reshape(5, 5)

        assert sauvola_threshold(grid) == pytest.approx(65535 / 2)
        assert bernsen_threshold(grid) == pytest.approx(65535 / 2)

    def test_wolf_flat_grid_uses_midrange(self, uniform_grid):
        """Zero total contrast falls back to the mid-range."""
        from rasterpaths.preprocess.threshold import wolf_threshold

        assert wolf_threshold(uniform_grid) == pytest.approx(65535 / 2)

    def test_sauvola_flat_grid(self, uniform_grid):
        """Zero variance gives mean * (1 - k)."""
        from rasterpaths.preprocess.threshold import sauvola_threshold

        assert sauvola_threshold(uniform_grid) == pytest.approx(40000 * 0.5)

    def test_bernsen_flat_grid(self, uniform_grid):
        """Midrange of a flat window is the intensity itself."""
        from rasterpaths.preprocess.threshold import bernsen_threshold

        assert bernsen_threshold(uniform_grid) == pytest.approx(40000)


class TestThresholdDispatch:
    """Tests shared by every strategy."""

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_mask_matches_grid_shape(self, method, line_drawing_grid):
        """Mask dimensions equal grid dimensions."""
        from rasterpaths.preprocess.threshold import threshold

        mask = threshold(line_drawing_grid, method)

        assert mask.shape == line_drawing_grid.shape
        assert mask.dtype == np.uint8

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_mask_is_binary(self, method, line_drawing_grid):
        """Mask holds only ink and paper values."""
        from rasterpaths.models import BACKGROUND, FOREGROUND
        from rasterpaths.preprocess.threshold import threshold

        mask = threshold(line_drawing_grid, method)

        assert set(np.unique(mask)).issubset({FOREGROUND, BACKGROUND})

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_line_drawing_ink_recovered(self, method, line_drawing_grid):
        """Black strokes on white paper come out as exactly the ink pixels."""
        from rasterpaths.models import FOREGROUND
        from rasterpaths.preprocess.threshold import threshold

        mask = threshold(line_drawing_grid, method)

        np.testing.assert_array_equal(mask == FOREGROUND, line_drawing_grid == 0)

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_uniform_grid_is_safe(self, method, uniform_grid):
        """Flat input returns a finite cutoff and a full-size mask."""
        from rasterpaths.preprocess.threshold import binarize

        mask, cutoff = binarize(uniform_grid, method)

        assert math.isfinite(cutoff)
        assert mask.shape == uniform_grid.shape

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_deterministic(self, method, line_drawing_grid):
        """Two runs give bit-identical masks."""
        from rasterpaths.preprocess.threshold import threshold

        first = threshold(line_drawing_grid, method)
        second = threshold(line_drawing_grid, method)

        assert np.array_equal(first, second)

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_empty_grid(self, method):
        """Zero-area grids produce an empty mask."""
        from rasterpaths.preprocess.threshold import threshold

        grid = np.zeros((0, 12), dtype=np.uint16)
        mask = threshold(grid, method)

        assert mask.shape == (0, 12)

    def test_accepts_method_name(self, two_level_grid):
        """Strategies can be selected by their string value."""
        from rasterpaths.preprocess.threshold import compute_threshold

        assert compute_threshold(two_level_grid, "otsu") == compute_threshold(two_level_grid, ThresholdMethod.OTSU)

    def test_rejects_color_input(self):
        """Three-channel arrays are not intensity grids."""
        from rasterpaths.preprocess.threshold import threshold

        with pytest.raises(ValueError):
            threshold(np.zeros((10, 10, 3), dtype=np.uint8), ThresholdMethod.OTSU)

    def test_rejects_float_input(self):
        """Float arrays are rejected."""
        from rasterpaths.preprocess.threshold import threshold

        with pytest.raises(ValueError):
            threshold(np.zeros((10, 10), dtype=np.float32), ThresholdMethod.OTSU)

    def test_sauvola_scales_with_bit_depth(self):
        """Widening a grid to 16 bits scales the Sauvola cutoff by the same factor."""
        from rasterpaths.preprocess.threshold import sauvola_threshold

        grid8 = (np.arange(1600).reshape(40, 40) % 256).astype(np.uint8)
        grid16 = grid8.astype(np.uint16) * np.uint16(257)

        assert sauvola_threshold(grid16) == pytest.approx(257 * sauvola_threshold(grid8), rel=1e-6)

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_rejects_wide_unsigned_input(self, method):
        """Only 8- and 16-bit grids are accepted."""
        from rasterpaths.preprocess.threshold import compute_threshold, threshold

        grid = np.full((20, 20), 7, dtype=np.uint32)

        with pytest.raises(ValueError, match="uint8 or uint16"):
            threshold(grid, method)
        with pytest.raises(ValueError, match="uint8 or uint16"):
            compute_threshold(grid.astype(np.uint64), method)

    def test_eight_bit_grid(self):
        """8-bit grids use an 8-bit histogram and mid-range."""
        from rasterpaths.preprocess.threshold import compute_threshold

        grid = np.zeros((4, 4), dtype=np.uint8)

        assert compute_threshold(grid, ThresholdMethod.SAUVOLA) == pytest.approx(127.5)

    def test_debug_artifacts_written(self, temp_dir, line_drawing_grid):
        """Debug writer receives the gray preview, mask and metrics."""
        import os
        from rasterpaths.io.save_artifacts import DebugArtifactWriter
        from rasterpaths.preprocess.threshold import binarize

        writer = DebugArtifactWriter(temp_dir, "plan_test")
        binarize(line_drawing_grid, ThresholdMethod.OTSU, debug_writer=writer)

        stage_dir = os.path.join(temp_dir, "debug", "plan_test", "threshold")
        for name in ["00_gray.png", "01_mask.png", "threshold_metrics.json"]:
            assert os.path.exists(os.path.join(stage_dir, name)), name
