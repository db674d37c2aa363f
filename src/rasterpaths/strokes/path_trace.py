"""
Ink sampling and path tracing for rasterpaths.

Sampled ink pixels are chained greedily into strokes: each stroke starts at
the first unvisited point in (y, x) order and repeatedly hops to the nearest
unvisited point within max_distance. Short chains are dropped as noise and
the rest are returned longest first.
"""

import numpy as np

from rasterpaths.models import FOREGROUND, Point
from rasterpaths.strokes.spatial_index import as_point, build_spatial_index
from rasterpaths.tracer import get_tracer, trace

MIN_PATH_LENGTH = 3


@trace(label="sample_foreground_points")
def sample_foreground_points(mask, step=1):
    """
    Collect ink pixels on a stride grid.

    Only pixels with x % step == 0 and y % step == 0 are inspected.
    Returns a set of Points in mask coordinates.
    """
    tracer = get_tracer()
    step = max(int(step), 1)
    mask = np.asarray(mask)
    if mask.size == 0:
        return set()

    sampled = mask[::step, ::step] == FOREGROUND
    ys, xs = np.nonzero(sampled)
    points = {Point(int(x) * step, int(y) * step) for y, x in zip(ys, xs)}

    tracer.event(f"Sampled {len(points)} ink points at step={step}")
    return points


def trace_line(start, index, visited, max_distance):
    """
    Follow nearest unvisited neighbors from start until none is in range.

    Marks every appended point in visited. Returns the chain as a list.
    """
    line = [start]
    visited.add(start)

    while True:
        nxt = index.nearest(line[-1], max_distance, exclude=visited)
        if nxt is None:
            break
        line.append(nxt)
        visited.add(nxt)

    return line


@trace(label="trace_paths")
def trace_paths(points, max_distance, min_length=MIN_PATH_LENGTH):
    """
    Chain a point set into drawable paths.

    Every input point is visited exactly once. Chains shorter than
    min_length are discarded; the remaining paths are sorted by descending
    length, ties kept in start order. An empty point set gives [].
    """
    tracer = get_tracer()

    points = {as_point(p) for p in points}
    if not points:
        tracer.event("No ink points to trace")
        return []

    max_distance = max(int(max_distance), 0)
    index = build_spatial_index(points, max_distance)
    visited = set()
    paths = []
    dropped = 0

    with tracer.span("chain_points", module="path_trace", points=len(points)):
        for start in sorted(points):
            if start in visited:
                continue
            line = trace_line(start, index, visited, max_distance)
            if len(line) >= min_length:
                paths.append(line)
            else:
                dropped += 1

    paths.sort(key=len, reverse=True)

    lengths = [len(p) for p in paths]
    avg_length = sum(lengths) / len(lengths) if lengths else 0
    tracer.event(f"Paths: count={len(paths)}, dropped={dropped}, avg_length={avg_length:.1f}")

    return paths


def path_points(paths):
    """Union of all points in paths."""
    covered = set()
    for path in paths:
        covered.update(path)
    return covered
