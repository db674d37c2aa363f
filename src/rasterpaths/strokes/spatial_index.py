"""
Grid bucketing of points for bounded-radius neighbor search.
"""

from rasterpaths.models import Point


class SpatialIndex:
    """
    Points bucketed into square cells of side cell_size.

    A point (x, y) lives in cell (x // cell_size, y // cell_size). With
    cell_size equal to the search radius, every neighbor within the radius
    is in the 3x3 block of cells around the query point. Buckets are kept
    sorted by (y, x) so scans are deterministic.
    """

    def __init__(self, points, cell_size):
        self.cell_size = max(int(cell_size), 1)
        self._cells = {}
        count = 0
        for point in points:
            self._cells.setdefault(self.cell_of(point), []).append(point)
            count += 1
        for bucket in self._cells.values():
            bucket.sort()
        self._count = count

    def __len__(self):
        return self._count

    @property
    def cell_count(self):
        return len(self._cells)

    def cell_of(self, point):
        return (point.x // self.cell_size, point.y // self.cell_size)

    def neighborhood(self, point):
        """Yield every indexed point in the 3x3 block of cells around point."""
        cx, cy = self.cell_of(point)
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                yield from self._cells.get((cx + dx, cy + dy), ())

    def nearest(self, point, max_distance, exclude=()):
        """
        Closest indexed point within max_distance of point, or None.

        Points in exclude are skipped. Equidistant candidates resolve to the
        smallest (y, x).
        """
        limit = max_distance * max_distance
        best = None
        best_key = None
        for candidate in self.neighborhood(point):
            if candidate in exclude:
                continue
            dist_sq = point.distance_squared(candidate)
            if dist_sq > limit:
                continue
            key = (dist_sq, candidate.y, candidate.x)
            if best_key is None or key < best_key:
                best = candidate
                best_key = key
        return best


def build_spatial_index(points, max_distance):
    """Index points with a cell size equal to the search radius (at least 1)."""
    return SpatialIndex(points, max(max_distance, 1))


def as_point(value):
    """Coerce an (x, y) pair or Point into a Point."""
    if isinstance(value, Point):
        return value
    x, y = value
    return Point(int(x), int(y))
