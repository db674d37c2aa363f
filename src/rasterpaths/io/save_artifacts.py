"""
Artifact saving utilities for rasterpaths.

Handles writing the path plan, debug images and per-stage metrics.
"""

import json
import os

import cv2
import numpy as np

from rasterpaths.tracer import get_tracer


def ensure_dir(path):
    """Create directory if it does not exist."""
    os.makedirs(path, exist_ok=True)


def get_debug_dir(out_dir, plan_id, stage_name):
    """
    Get the debug directory path for a stage.

    Creates the directory if it does not exist.
    """
    debug_dir = os.path.join(out_dir, "debug", plan_id, stage_name)
    ensure_dir(debug_dir)
    return debug_dir


def save_image(img, path, max_edge=None):
    """
    Save an image to disk.

    Optionally downscales to max_edge while preserving aspect ratio.
    Three-channel images are taken as RGB.
    """
    tracer = get_tracer()

    if max_edge and img.size and max(img.shape[:2]) > max_edge:
        scale = max_edge / max(img.shape[:2])
        new_size = (max(int(img.shape[1] * scale), 1), max(int(img.shape[0] * scale), 1))
        img = cv2.resize(img, new_size, interpolation=cv2.INTER_AREA)

    if img.ndim == 3 and img.shape[2] == 3:
        img = cv2.cvtColor(img, cv2.COLOR_RGB2BGR)

    ensure_dir(os.path.dirname(path))
    cv2.imwrite(path, img)
    tracer.event(f"Saved image: {path}")


def save_json(data, path, indent=2):
    """
    Save a dictionary or Pydantic model to JSON.
    """
    tracer = get_tracer()

    ensure_dir(os.path.dirname(path))

    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, default=str)

    tracer.event(f"Saved JSON: {path}")


def draw_paths_overlay(mask, paths, start_color=(255, 0, 0), end_color=(0, 0, 255)):
    """
    Draw traced paths over a binary mask.

    Paths are polylines in mask coordinates; color fades from start_color
    for the first (longest) path to end_color for the last. Returns RGB.
    """
    overlay = cv2.cvtColor(mask, cv2.COLOR_GRAY2RGB)
    # Lighten the mask so the strokes stand out.
    overlay = (overlay.astype(np.float32) * 0.5 + 127).astype(np.uint8)

    count = len(paths)
    for i, path in enumerate(paths):
        if len(path) < 2:
            continue
        t = i / max(count - 1, 1)
        color = tuple(int(s + (e - s) * t) for s, e in zip(start_color, end_color))
        pts = np.array([[p.x, p.y] for p in path], dtype=np.int32)
        cv2.polylines(overlay, [pts], isClosed=False, color=color, thickness=1)

    return overlay


class DebugArtifactWriter:
    """
    Helper class to manage debug artifact writing for a single plan.

    Handles creation of debug directories and provides convenience methods
    for saving images and metrics.
    """

    def __init__(self, out_dir, plan_id, enabled=True, max_edge=1600):
        self.out_dir = out_dir
        self.plan_id = plan_id
        self.enabled = enabled
        self.max_edge = max_edge

    def get_stage_dir(self, stage_name):
        """Get the debug directory for a stage."""
        return get_debug_dir(self.out_dir, self.plan_id, stage_name)

    def save_image(self, img, stage_name, filename):
        """Save an image artifact."""
        if not self.enabled:
            return
        path = os.path.join(self.get_stage_dir(stage_name), filename)
        save_image(img, path, max_edge=self.max_edge)

    def save_json(self, data, stage_name, filename):
        """Save a JSON artifact."""
        if not self.enabled:
            return
        path = os.path.join(self.get_stage_dir(stage_name), filename)
        save_json(data, path)
