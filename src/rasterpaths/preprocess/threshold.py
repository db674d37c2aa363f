"""
Stage 1: Intensity grid binarization for rasterpaths.

Turns a grayscale grid (uint8 or uint16) into a binary ink/paper mask using
one of five strategies. Otsu and Kapur read the histogram only. Sauvola,
Bernsen and Wolf read windowed statistics of the source grid and reduce
them to a single cutoff before the mask is written.

Every strategy shares one convention: a pixel is ink when its intensity is
at or below the cutoff, paper when above.
"""

import math

import cv2
import numpy as np

from rasterpaths.config import ThresholdConfig
from rasterpaths.models import BACKGROUND, FOREGROUND, ThresholdMethod
from rasterpaths.tracer import get_tracer, trace

GRID_DTYPES = (np.dtype(np.uint8), np.dtype(np.uint16))


def max_intensity(grid):
    """Largest representable sample for the grid's bit depth."""
    return int(np.iinfo(grid.dtype).max)


def _check_grid(grid):
    grid = np.asarray(grid)
    if grid.ndim != 2:
        raise ValueError(f"Intensity grid must be 2-D, got shape {grid.shape}")
    if grid.dtype not in GRID_DTYPES:
        raise ValueError(f"Intensity grid must be uint8 or uint16, got {grid.dtype}")
    return np.ascontiguousarray(grid)


def window_half_size(width, height, config):
    """Adaptive window half-size shared by Sauvola and Wolf."""
    half = math.floor(config.window_fraction * min(width, height) + 0.5)
    return int(min(max(half, config.min_window), config.max_window))


def _histogram(grid):
    return np.bincount(grid.ravel(), minlength=max_intensity(grid) + 1).astype(np.float64)


def _first_plateau_midpoint(scores, valid):
    """
    Pick the best candidate threshold.

    When several consecutive candidates share the best score (an empty gap
    in the histogram), the cut goes halfway across the gap. Returns None
    when no candidate is valid.
    """
    if not valid.any():
        return None

    best = scores[valid].max()
    winners = np.flatnonzero(valid & (scores == best))
    breaks = np.flatnonzero(np.diff(winners) != 1)
    last = winners[breaks[0]] if len(breaks) else winners[-1]
    return (float(winners[0]) + float(last)) / 2.0


def otsu_threshold(grid, config=None):
    """
    Otsu's method: maximize between-class variance w0*w1*(mu0-mu1)^2.

    Class 0 holds intensities <= t. A grid with a single intensity has no
    split with two non-empty classes and falls back to 0.
    """
    hist = _histogram(grid)
    total = hist.sum()
    levels = np.arange(len(hist), dtype=np.float64)

    count0 = np.cumsum(hist)
    sum0 = np.cumsum(hist * levels)
    count1 = total - count0
    sum1 = sum0[-1] - sum0

    valid = (count0 > 0) & (count1 > 0)
    mu0 = np.divide(sum0, count0, out=np.zeros_like(sum0), where=count0 > 0)
    mu1 = np.divide(sum1, count1, out=np.zeros_like(sum1), where=count1 > 0)
    w0 = count0 / total
    w1 = count1 / total

    variance = np.where(valid, w0 * w1 * (mu0 - mu1) ** 2, 0.0)
    valid &= variance > 0

    t = _first_plateau_midpoint(variance, valid)
    return 0.0 if t is None else t


def kapur_threshold(grid, config=None):
    """
    Kapur's maximum entropy method.

    For each t the two classes' entropies are -sum(p * ln(p / w)); the t
    with the largest total wins. Same fallback as Otsu.
    """
    hist = _histogram(grid)
    total = hist.sum()

    count0 = np.cumsum(hist)
    count1 = total - count0
    w0 = count0 / total
    w1 = count1 / total

    p = hist / total
    with np.errstate(divide="ignore", invalid="ignore"):
        plogp = np.where(p > 0, p * np.log(p), 0.0)
        w0logw0 = np.where(w0 > 0, w0 * np.log(w0), 0.0)
        w1logw1 = np.where(w1 > 0, w1 * np.log(w1), 0.0)

    # sum_{i<=t} p_i ln(p_i / w0) == sum_{i<=t} p_i ln p_i - w0 ln w0
    cum_plogp = np.cumsum(plogp)
    sum0 = cum_plogp - w0logw0
    sum1 = (cum_plogp[-1] - cum_plogp) - w1logw1

    valid = (count0 > 0) & (count1 > 0)
    entropy = np.where(valid, -sum0 - sum1, -np.inf)

    t = _first_plateau_midpoint(entropy, valid)
    return 0.0 if t is None else t


def _box_sums(table, size):
    """Window sums for every full size x size window of a padded integral table."""
    return table[size:, size:] - table[:-size, size:] - table[size:, :-size] + table[:-size, :-size]


def integral_tables(grid):
    """
    Prefix-sum tables of intensities and squared intensities.

    Both have a leading zero row and column so window sums need no edge
    cases.
    """
    values = grid.astype(np.float64)
    height, width = values.shape
    sums = np.zeros((height + 1, width + 1), dtype=np.float64)
    squares = np.zeros((height + 1, width + 1), dtype=np.float64)
    sums[1:, 1:] = values.cumsum(axis=0).cumsum(axis=1)
    squares[1:, 1:] = (values * values).cumsum(axis=0).cumsum(axis=1)
    return sums, squares


def sauvola_threshold(grid, config=None):
    """
    Sauvola's method reduced to one cutoff.

    Per-pixel thresholds mean * (1 + k * (std / R - 1)) are computed for
    every pixel whose window fits inside the grid, then collapsed to their
    median.

    R is given on the 8-bit scale and rescaled by max/255 for deeper grids.
    """
    config = config or ThresholdConfig()
    height, width = grid.shape
    half = window_half_size(width, height, config)
    size = 2 * half + 1

    if height < size or width < size:
        return max_intensity(grid) / 2.0

    sums, squares = integral_tables(grid)
    n = float(size * size)
    mean = _box_sums(sums, size) / n
    variance = np.maximum(_box_sums(squares, size) / n - mean * mean, 0.0)
    std = np.sqrt(variance)

    r = config.sauvola_r * max_intensity(grid) / 255.0
    local = mean * (1.0 + config.sauvola_k * (std / r - 1.0))
    return float(np.median(local))


def _window_extrema(grid, half):
    """Local min and max over a (2*half+1)^2 window, clipped at the borders."""
    size = 2 * half + 1
    kernel = np.ones((size, size), dtype=np.uint8)
    local_min = cv2.erode(grid, kernel)
    local_max = cv2.dilate(grid, kernel)
    return local_min, local_max


def bernsen_threshold(grid, config=None):
    """
    Bernsen's method reduced to one cutoff.

    Midrange (min + max) / 2 of a fixed window around each interior pixel,
    collapsed to the median.
    """
    config = config or ThresholdConfig()
    height, width = grid.shape
    half = config.bernsen_window
    size = 2 * half + 1

    if height < size or width < size:
        return max_intensity(grid) / 2.0

    local_min, local_max = _window_extrema(grid, half)
    interior = (slice(half, height - half), slice(half, width - half))
    midrange = (local_min[interior].astype(np.float64) + local_max[interior].astype(np.float64)) / 2.0
    return float(np.median(midrange))


def wolf_threshold(grid, config=None):
    """
    Wolf's contrast-weighted threshold.

    k * sum(contrast * intensity) / sum(contrast), where contrast is the
    local max - min around each pixel. Flat grids fall back to mid-range.
    """
    config = config or ThresholdConfig()
    height, width = grid.shape
    half = window_half_size(width, height, config)

    local_min, local_max = _window_extrema(grid, half)
    contrast = local_max.astype(np.float64) - local_min.astype(np.float64)
    total = contrast.sum()
    if total <= 0:
        return max_intensity(grid) / 2.0

    weighted = (contrast * grid.astype(np.float64)).sum()
    return float(config.wolf_k * weighted / total)


STRATEGIES = {
    ThresholdMethod.OTSU: otsu_threshold,
    ThresholdMethod.KAPUR: kapur_threshold,
    ThresholdMethod.SAUVOLA: sauvola_threshold,
    ThresholdMethod.WOLF: wolf_threshold,
    ThresholdMethod.BERNSEN: bernsen_threshold,
}


def compute_threshold(grid, method, config=None):
    """Scalar cutoff for the grid under the chosen strategy."""
    grid = _check_grid(grid)
    method = ThresholdMethod(method)
    if grid.size == 0:
        return max_intensity(grid) / 2.0
    return STRATEGIES[method](grid, config)


def apply_threshold(grid, cutoff):
    """Binary mask: FOREGROUND where intensity <= cutoff, BACKGROUND elsewhere."""
    return np.where(grid <= cutoff, FOREGROUND, BACKGROUND).astype(np.uint8)


@trace(label="binarize")
def binarize(grid, method, config=None, debug_writer=None):
    """
    Binarize an intensity grid and report the cutoff used.

    Returns a (mask, cutoff) tuple. The mask is uint8 with the same shape
    as the grid, FOREGROUND (0) for ink and BACKGROUND (255) for paper.
    """
    tracer = get_tracer()
    grid = _check_grid(grid)
    method = ThresholdMethod(method)

    with tracer.span("cutoff", module="threshold", method=method):
        cutoff = compute_threshold(grid, method, config)
        tracer.event(f"Threshold method: {method.value} cutoff={cutoff:.2f}")

    with tracer.span("binarize", module="threshold"):
        mask = apply_threshold(grid, cutoff)

    ink_ratio = get_ink_ratio(mask)
    tracer.event(f"Binary result: ink_ratio={ink_ratio:.3f}")

    if debug_writer:
        debug_writer.save_image(to_8bit(grid), "threshold", "00_gray.png")
        debug_writer.save_image(mask, "threshold", "01_mask.png")
        debug_writer.save_json({
            "method": method.value,
            "cutoff": round(cutoff, 3),
            "bit_depth": grid.dtype.itemsize * 8,
            "ink_ratio": round(ink_ratio, 4),
            "width": grid.shape[1],
            "height": grid.shape[0],
        }, "threshold", "threshold_metrics.json")

    return mask, cutoff


def threshold(grid, method, config=None):
    """Binary mask for the grid under the chosen strategy."""
    mask, _ = binarize(grid, method, config)
    return mask


def to_8bit(grid):
    """Preview copy of a grid scaled to uint8."""
    if grid.dtype == np.uint8:
        return grid
    return (grid.astype(np.float64) * 255.0 / max_intensity(grid)).round().astype(np.uint8)


def get_ink_ratio(mask):
    """Fraction of mask pixels that are ink."""
    if mask.size == 0:
        return 0.0
    return float(np.sum(mask == FOREGROUND)) / mask.size
