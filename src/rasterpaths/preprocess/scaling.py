"""
Stage 2: Fit a binary mask into the target region.

The region is given by two corners in any order. Output is always a binary
mask of the region's size; padding is paper. Resampling uses Lanczos and is
re-binarized at the midpoint so the mask stays two-valued.
"""

import cv2
import numpy as np

from rasterpaths.models import BACKGROUND, FOREGROUND, Point, ScalingMode
from rasterpaths.tracer import get_tracer, trace

MIN_REGION_SIZE = 10


def region_size(corner_a, corner_b, min_size=MIN_REGION_SIZE):
    """(width, height) spanned by two corners, each floored at min_size."""
    width = max(abs(corner_b.x - corner_a.x), min_size)
    height = max(abs(corner_b.y - corner_a.y), min_size)
    return width, height


def region_origin(corner_a, corner_b):
    """Top-left corner of the region; the offset to add to every path point."""
    return Point(min(corner_a.x, corner_b.x), min(corner_a.y, corner_b.y))


def _blank(width, height):
    return np.full((height, width), BACKGROUND, dtype=np.uint8)


def _resample(mask, width, height):
    """Lanczos resample to (width, height), then snap back to ink/paper."""
    width = max(int(width), 1)
    height = max(int(height), 1)
    resized = cv2.resize(mask, (width, height), interpolation=cv2.INTER_LANCZOS4)
    midpoint = (int(FOREGROUND) + int(BACKGROUND)) / 2.0
    return np.where(resized < midpoint, FOREGROUND, BACKGROUND).astype(np.uint8)


def _stretch(mask, width, height):
    return _resample(mask, width, height)


def _fit(mask, width, height):
    src_h, src_w = mask.shape
    scale = min(width / src_w, height / src_h)
    new_w = min(max(int(src_w * scale), 1), width)
    new_h = min(max(int(src_h * scale), 1), height)

    scaled = _resample(mask, new_w, new_h)
    canvas = _blank(width, height)
    offset_x = (width - new_w) // 2
    offset_y = (height - new_h) // 2
    canvas[offset_y:offset_y + new_h, offset_x:offset_x + new_w] = scaled
    return canvas


def _fill(mask, width, height):
    src_h, src_w = mask.shape
    scale = max(width / src_w, height / src_h)
    new_w = max(int(src_w * scale), 1)
    new_h = max(int(src_h * scale), 1)

    scaled = _resample(mask, new_w, new_h)
    crop_x = max((new_w - width) // 2, 0)
    crop_y = max((new_h - height) // 2, 0)
    cropped = scaled[crop_y:crop_y + height, crop_x:crop_x + width]

    # Truncation can leave the scaled image a pixel short of the region.
    canvas = _blank(width, height)
    canvas[:cropped.shape[0], :cropped.shape[1]] = cropped
    return canvas


def _center(mask, width, height):
    src_h, src_w = mask.shape
    offset_x = max((width - src_w) // 2, 0)
    offset_y = max((height - src_h) // 2, 0)
    visible_w = min(src_w, width - offset_x)
    visible_h = min(src_h, height - offset_y)

    canvas = _blank(width, height)
    canvas[offset_y:offset_y + visible_h, offset_x:offset_x + visible_w] = mask[:visible_h, :visible_w]
    return canvas


def _tile(mask, width, height):
    src_h, src_w = mask.shape
    rows = np.arange(height) % src_h
    cols = np.arange(width) % src_w
    return mask[np.ix_(rows, cols)].astype(np.uint8)


SCALERS = {
    ScalingMode.STRETCH: _stretch,
    ScalingMode.FIT: _fit,
    ScalingMode.FILL: _fill,
    ScalingMode.CENTER: _center,
    ScalingMode.TILE: _tile,
}


@trace(label="scale_to_region")
def scale_to_region(mask, corner_a, corner_b, mode, min_size=MIN_REGION_SIZE, debug_writer=None):
    """
    Scale a binary mask into the region spanned by two corners.

    Returns a new uint8 mask of shape (height, width) where width and
    height come from region_size. Swapping the corners gives the same
    result. An empty source mask yields a blank region.
    """
    tracer = get_tracer()
    mode = ScalingMode(mode)
    mask = np.ascontiguousarray(mask, dtype=np.uint8)
    if mask.ndim != 2:
        raise ValueError(f"Mask must be 2-D, got shape {mask.shape}")
    width, height = region_size(corner_a, corner_b, min_size)

    tracer.event(f"Source mask: {mask.shape[1]}x{mask.shape[0]}, target region: {width}x{height}, mode={mode.value}")

    if mask.size == 0:
        scaled = _blank(width, height)
    else:
        scaled = SCALERS[mode](mask, width, height)

    if debug_writer:
        debug_writer.save_image(scaled, "scaling", "00_scaled_mask.png")
        debug_writer.save_json({
            "mode": mode.value,
            "source_width": int(mask.shape[1]),
            "source_height": int(mask.shape[0]),
            "region_width": width,
            "region_height": height,
        }, "scaling", "scaling_metrics.json")

    return scaled
