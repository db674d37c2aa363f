"""
Hand-off of compiled strokes to a pointer actuator.

Nothing here moves a pointer. These helpers order strokes, fill in the
intermediate positions a pointer passes through between sampled points and
translate everything into screen coordinates.
"""

import math
import random

from rasterpaths.models import LineOrder, Point, ReplayPlan
from rasterpaths.tracer import get_tracer, trace


def order_paths(paths, line_order=LineOrder.IN_ORDER, seed=None):
    """
    Return paths in drawing order.

    IN_ORDER keeps the compiled order (longest first). SHUFFLED returns a
    shuffled copy; pass seed for a reproducible order.
    """
    ordered = list(paths)
    if LineOrder(line_order) is LineOrder.SHUFFLED:
        random.Random(seed).shuffle(ordered)
    return ordered


def interpolate_path(path):
    """
    Expand a path into every pointer position visited while drawing it.

    Between points more than one pixel apart, floor(sqrt(d^2)) evenly spaced
    positions are emitted, truncated to integers and ending on the next
    point. Adjacent points are passed through unchanged.
    """
    if not path:
        return []

    moves = [path[0]]
    for current, nxt in zip(path, path[1:]):
        dist_sq = current.distance_squared(nxt)
        if dist_sq <= 1:
            moves.append(nxt)
            continue
        steps = int(math.sqrt(dist_sq))
        dx = nxt.x - current.x
        dy = nxt.y - current.y
        for i in range(1, steps + 1):
            t = i / steps
            moves.append(Point(int(current.x + t * dx), int(current.y + t * dy)))
    return moves


def translate_path(path, origin):
    """Shift every point by the region origin."""
    return [p.translate(origin.x, origin.y) for p in path]


@trace(label="build_replay_plan")
def build_replay_plan(plan, line_order=LineOrder.IN_ORDER, speed=None, seed=None, interpolate=True):
    """
    Turn a PathPlan into absolute pointer moves.

    Strokes are ordered, optionally interpolated, then translated by the
    region origin. speed is a DrawingSpeed; None leaves the default delay.
    """
    tracer = get_tracer()
    origin = Point(*plan.region.origin)

    paths = [stroke.to_points() for stroke in plan.strokes]
    strokes = []
    for path in order_paths(paths, line_order, seed):
        moves = interpolate_path(path) if interpolate else path
        strokes.append([p.as_list() for p in translate_path(moves, origin)])

    kwargs = {}
    if speed is not None:
        kwargs["delay_seconds"] = speed.delay_seconds

    replay = ReplayPlan(
        plan_id=plan.plan_id,
        line_order=LineOrder(line_order),
        strokes=strokes,
        **kwargs,
    )
    tracer.event(f"Replay plan: strokes={len(strokes)}, moves={replay.move_count}")
    return replay
