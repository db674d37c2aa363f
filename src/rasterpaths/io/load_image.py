"""
Image decoding for rasterpaths.

The compiler only ever sees a 2-D uint16 intensity grid. This module is the
codec boundary: it reads a file or byte buffer with OpenCV, drops color,
widens 8-bit samples to 16 bits and raises DecodeFailure on anything it
cannot turn into a grid.
"""

import os

import cv2
import numpy as np

from rasterpaths.tracer import get_tracer, trace

SUPPORTED_EXTENSIONS = [".png", ".jpg", ".jpeg", ".gif", ".bmp", ".tiff", ".tif", ".webp"]

# Gray flag plus any-depth keeps 16-bit sources at full precision.
_READ_FLAGS = cv2.IMREAD_GRAYSCALE | cv2.IMREAD_ANYDEPTH


class DecodeFailure(ValueError):
    """The input could not be decoded into an intensity grid."""


def to_luma16(gray):
    """
    Widen a decoded grayscale image to uint16.

    8-bit samples are scaled by 257 so 255 maps to 65535.
    """
    if gray.dtype == np.uint16:
        return gray
    if gray.dtype == np.uint8:
        return gray.astype(np.uint16) * np.uint16(257)
    raise DecodeFailure(f"Unsupported sample type: {gray.dtype}")


@trace(label="load_image")
def load_image(path):
    """
    Load an image from disk as an intensity grid.

    Returns a tuple of (grid, metadata) where:
    - grid: uint16 numpy array (H, W)
    - metadata: dict with width, height, bit_depth, source_path

    Raises DecodeFailure if the file is missing or cannot be decoded.
    """
    tracer = get_tracer()

    if not os.path.exists(path):
        raise DecodeFailure(f"Image not found: {path}")

    gray = cv2.imread(path, _READ_FLAGS)
    if gray is None:
        raise DecodeFailure(f"Failed to load image: {path}")

    source_depth = gray.dtype.itemsize * 8
    grid = to_luma16(gray)
    height, width = grid.shape[:2]

    tracer.event(f"Loaded image: {width}x{height}, source_depth={source_depth}")

    metadata = {
        "width": width,
        "height": height,
        "bit_depth": 16,
        "source_path": os.path.abspath(path),
    }

    return grid, metadata


def decode_image(data):
    """
    Decode an in-memory encoded image (PNG, JPEG, ...) into a uint16 grid.

    Raises DecodeFailure when the buffer is empty or not a supported image.
    """
    buffer = np.frombuffer(data, dtype=np.uint8)
    if buffer.size == 0:
        raise DecodeFailure("Empty image buffer")

    gray = cv2.imdecode(buffer, _READ_FLAGS)
    if gray is None:
        raise DecodeFailure("Failed to decode image buffer")

    return to_luma16(gray)


def validate_image_input(path):
    """
    Check that path looks like a readable image.

    Returns a list of error messages (empty if valid).
    """
    errors = []

    if not os.path.exists(path):
        errors.append(f"File not found: {path}")
        return errors

    ext = os.path.splitext(path)[1].lower()
    if ext not in SUPPORTED_EXTENSIONS:
        errors.append(f"Unsupported image format: {path}")

    return errors
