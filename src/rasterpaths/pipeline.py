"""
Main pipeline orchestrator for rasterpaths.

Runs threshold -> scale -> sample -> trace and packages the result as a
PathPlan.
"""

import os

import numpy as np

from rasterpaths.config import PipelineConfig, load_config
from rasterpaths.io.load_image import DecodeFailure, load_image, validate_image_input
from rasterpaths.io.save_artifacts import DebugArtifactWriter, draw_paths_overlay, ensure_dir, save_json
from rasterpaths.models import (
    ImageMeta, PathPlan, RegionMeta, Stroke,
    generate_plan_id, generate_stroke_id,
)
from rasterpaths.preprocess.scaling import region_origin, region_size, scale_to_region
from rasterpaths.preprocess.threshold import binarize
from rasterpaths.strokes.path_trace import sample_foreground_points, trace_paths
from rasterpaths.strokes.replay import build_replay_plan
from rasterpaths.strokes.spatial_index import as_point
from rasterpaths.tracer import get_tracer, trace


@trace(label="compile_paths")
def compile_paths(grid, corner_a, corner_b, config=None, source_path="", out_dir=None):
    """
    Compile an intensity grid into an ordered set of strokes.

    Args:
        grid: 2-D uint8/uint16 intensity array
        corner_a, corner_b: opposite corners of the target region, any order
        config: PipelineConfig (defaults when None)
        source_path: recorded in the plan metadata and used for the plan id
        out_dir: where debug artifacts go when config.debug.enabled

    Returns:
        PathPlan whose stroke points are in region-local coordinates.
    """
    tracer = get_tracer()
    config = config or PipelineConfig()
    grid = np.asarray(grid)
    corner_a = as_point(corner_a)
    corner_b = as_point(corner_b)

    method = config.threshold_method
    mode = config.scaling_mode
    step = config.step
    max_distance = config.trace.max_distance

    plan_id = generate_plan_id(source_path, method, mode, [corner_a, corner_b])

    debug_writer = None
    if config.debug.enabled and out_dir:
        debug_writer = DebugArtifactWriter(
            out_dir, plan_id,
            enabled=True,
            max_edge=config.debug.max_edge_scale,
        )

    with tracer.span("stage1_threshold", module="pipeline"):
        mask, cutoff = binarize(grid, method, config.threshold, debug_writer)

    with tracer.span("stage2_scale", module="pipeline"):
        scaled = scale_to_region(
            mask, corner_a, corner_b, mode,
            min_size=config.scaling.min_size,
            debug_writer=debug_writer,
        )

    with tracer.span("stage3_trace", module="pipeline"):
        points = sample_foreground_points(scaled, step)
        paths = trace_paths(points, max_distance, min_length=config.trace.min_path_length)

    if debug_writer:
        debug_writer.save_image(draw_paths_overlay(scaled, paths), "trace", "00_paths_overlay.png")
        lengths = [len(p) for p in paths]
        debug_writer.save_json({
            "point_count": len(points),
            "path_count": len(paths),
            "step": step,
            "max_distance": max_distance,
            "min_length": min(lengths) if lengths else 0,
            "max_length": max(lengths) if lengths else 0,
        }, "trace", "trace_metrics.json")

    width, height = region_size(corner_a, corner_b, config.scaling.min_size)
    origin = region_origin(corner_a, corner_b)

    plan = PathPlan(
        plan_id=plan_id,
        image_meta=ImageMeta(
            width=int(grid.shape[1]),
            height=int(grid.shape[0]),
            bit_depth=grid.dtype.itemsize * 8,
            source_path=source_path,
        ),
        region=RegionMeta(
            corner_a=corner_a.as_list(),
            corner_b=corner_b.as_list(),
            origin=origin.as_list(),
            width=width,
            height=height,
        ),
        threshold_method=method,
        threshold_value=cutoff,
        scaling_mode=mode,
        step=step,
        max_distance=max_distance,
        point_count=len(points),
        strokes=[
            Stroke(stroke_id=generate_stroke_id(path, i), points=[p.as_list() for p in path])
            for i, path in enumerate(paths)
        ],
    )

    tracer.event(f"Compiled {len(plan.strokes)} strokes from {len(points)} points")
    return plan


@trace(label="run_pipeline")
def run_pipeline(input_path, out_dir, corner_a, corner_b, config=None, config_path=None, debug=False):
    """
    Decode an image file, compile it and write the results.

    Writes paths.json (the PathPlan) and replay.json (absolute pointer
    moves) into out_dir.

    Raises DecodeFailure when the input cannot be read.
    """
    tracer = get_tracer()

    if config is None:
        config = load_config(config_path)
    if debug:
        config.debug.enabled = True

    errors = validate_image_input(input_path)
    if errors:
        for error in errors:
            tracer.event(error, level="ERROR")
        raise DecodeFailure(f"Input validation failed: {errors}")

    ensure_dir(out_dir)

    grid, metadata = load_image(input_path)

    plan = compile_paths(
        grid, corner_a, corner_b,
        config=config,
        source_path=metadata["source_path"],
        out_dir=out_dir,
    )

    replay = build_replay_plan(
        plan,
        line_order=config.line_order,
        speed=config.drawing_speed,
        seed=config.replay.seed,
        interpolate=config.replay.interpolate,
    )

    save_json(plan, os.path.join(out_dir, "paths.json"))
    save_json(replay, os.path.join(out_dir, "replay.json"))

    tracer.event(f"Pipeline complete: {len(plan.strokes)} strokes, {replay.move_count} moves")

    return plan


def load_plan(path):
    """Read a paths.json written by run_pipeline."""
    with open(path, "r", encoding="utf-8") as f:
        return PathPlan.model_validate_json(f.read())
