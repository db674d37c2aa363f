"""
Data models for the rasterpaths compiler.

Selection enums, the Point value type, binary mask constants and the
pydantic models that describe a compiled path plan. Content-based ID
generation keeps outputs deterministic.
"""

import functools
import hashlib
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


# Binary mask sample values. Ink is drawn, paper is left alone.
FOREGROUND = 0
BACKGROUND = 255


class ThresholdMethod(str, Enum):
    """Binarization strategies."""
    OTSU = "otsu"
    KAPUR = "kapur"
    SAUVOLA = "sauvola"
    WOLF = "wolf"
    BERNSEN = "bernsen"

    @property
    def description(self):
        return _DESCRIPTIONS[self]


class ScalingMode(str, Enum):
    """Policies for fitting a mask into the target region."""
    STRETCH = "stretch"
    FIT = "fit"
    FILL = "fill"
    CENTER = "center"
    TILE = "tile"

    @property
    def description(self):
        return _DESCRIPTIONS[self]


class DrawingAccuracy(str, Enum):
    """Trade-off between sampling density and drawing time."""
    FAST = "fast"
    BALANCED = "balanced"
    ACCURATE = "accurate"

    @property
    def description(self):
        return _DESCRIPTIONS[self]

    @property
    def step(self):
        """Pixel stride used when sampling ink from the scaled mask."""
        return {
            DrawingAccuracy.FAST: 3,
            DrawingAccuracy.BALANCED: 2,
            DrawingAccuracy.ACCURATE: 1,
        }[self]


class DrawingSpeed(str, Enum):
    """Pause between pointer moves during replay."""
    UNIVERSE_ANNIHILATING = "universe_annihilating"
    ULTRA_FAST = "ultra_fast"
    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"

    @property
    def description(self):
        return _DESCRIPTIONS[self]

    @property
    def delay_seconds(self):
        return {
            DrawingSpeed.UNIVERSE_ANNIHILATING: 1e-12,
            DrawingSpeed.ULTRA_FAST: 1e-6,
            DrawingSpeed.FAST: 1e-5,
            DrawingSpeed.MEDIUM: 5e-5,
            DrawingSpeed.SLOW: 2e-4,
        }[self]


class LineOrder(str, Enum):
    """Order in which compiled strokes are handed to the actuator."""
    IN_ORDER = "in_order"
    SHUFFLED = "shuffled"

    @property
    def description(self):
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    ThresholdMethod.OTSU: "Otsu's Method - Best for global thresholding and balanced histograms",
    ThresholdMethod.KAPUR: "Kapur's Entropy - Best for textured/heterogeneous images",
    ThresholdMethod.SAUVOLA: "Sauvola's Method - Best for noisy/textured backgrounds",
    ThresholdMethod.WOLF: "Wolf's Method - Best for degraded images",
    ThresholdMethod.BERNSEN: "Bernsen's Method - Best for low-contrast images",
    ScalingMode.STRETCH: "Stretch - Fills entire region (may distort)",
    ScalingMode.FIT: "Fit - Scales to fit within region (maintains aspect ratio)",
    ScalingMode.FILL: "Fill - Scales to fill region completely (may crop edges)",
    ScalingMode.CENTER: "Center - Original size, centered in region",
    ScalingMode.TILE: "Tile - Repeats image to fill region",
    DrawingAccuracy.FAST: "Fast - Makes the drawing go faster at the cost of accuracy",
    DrawingAccuracy.BALANCED: "Balanced - Balances speed and accuracy",
    DrawingAccuracy.ACCURATE: "Accurate - Makes the drawing more accurate at the cost of speed",
    DrawingSpeed.UNIVERSE_ANNIHILATING: "Universe Annihilating (1ps/line) (BREAKS SOME APPS)",
    DrawingSpeed.ULTRA_FAST: "Ultra-Fast (1us/move)",
    DrawingSpeed.FAST: "Fast (10us/move)",
    DrawingSpeed.MEDIUM: "Medium (50us/move)",
    DrawingSpeed.SLOW: "Slow (200us/move)",
    LineOrder.IN_ORDER: "In Order - Draw each line in order",
    LineOrder.SHUFFLED: "Shuffled - Shuffle the order of each drawn line before drawing",
}


@functools.total_ordering
@dataclass(frozen=True)
class Point:
    """An integer pixel coordinate. Sorts row-major, by (y, x)."""
    x: int
    y: int

    def __lt__(self, other):
        if not isinstance(other, Point):
            return NotImplemented
        return (self.y, self.x) < (other.y, other.x)

    def distance_squared(self, other):
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def translate(self, dx, dy):
        return Point(self.x + dx, self.y + dy)

    def as_list(self):
        return [self.x, self.y]


class Stroke(BaseModel):
    """One pointer-down stroke, in scaled-mask coordinates."""
    stroke_id: str
    points: List[List[int]] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @property
    def length(self):
        return len(self.points)

    def to_points(self):
        return [Point(x, y) for x, y in self.points]


class ImageMeta(BaseModel):
    """Metadata for the decoded intensity grid."""
    width: int
    height: int
    bit_depth: int = 16
    source_path: str = ""

    model_config = ConfigDict(extra="forbid")


class RegionMeta(BaseModel):
    """Target rectangle the mask was scaled into."""
    corner_a: List[int] = Field(..., min_length=2, max_length=2)
    corner_b: List[int] = Field(..., min_length=2, max_length=2)
    origin: List[int] = Field(..., min_length=2, max_length=2)
    width: int = Field(..., ge=10)
    height: int = Field(..., ge=10)

    model_config = ConfigDict(extra="forbid")


class PathPlan(BaseModel):
    """Everything the actuator needs to replay a compiled image."""
    plan_id: str
    created_at: str = Field(default_factory=lambda: datetime.now().isoformat())
    image_meta: ImageMeta
    region: RegionMeta
    threshold_method: ThresholdMethod
    threshold_value: float
    scaling_mode: ScalingMode
    step: int = Field(default=1, ge=1)
    max_distance: int = Field(default=3, ge=0)
    point_count: int = 0
    strokes: List[Stroke] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @property
    def total_points(self):
        """Points across all kept strokes."""
        return sum(s.length for s in self.strokes)


class ReplayPlan(BaseModel):
    """Absolute-coordinate pointer moves for one compiled plan."""
    plan_id: str
    line_order: LineOrder = LineOrder.IN_ORDER
    delay_seconds: float = Field(default=1e-5, ge=0.0)
    strokes: List[List[List[int]]] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @property
    def move_count(self):
        return sum(len(s) for s in self.strokes)


# ID generation functions for deterministic outputs

def generate_stroke_id(points, index):
    """
    Generate deterministic stroke ID from the stroke's points and rank.
    """
    if not points:
        return f"stroke_{index}_empty"

    data = f"{index}:{[[p.x, p.y] for p in points]}"
    h = hashlib.sha256(data.encode()).hexdigest()[:12]
    return f"stroke_{h}"


def generate_plan_id(source, method, mode, corners):
    """
    Generate deterministic plan ID from the source and compile settings.
    """
    corner_data = [[c.x, c.y] for c in corners]
    data = f"{source}:{ThresholdMethod(method).value}:{ScalingMode(mode).value}:{corner_data}"
    h = hashlib.sha256(data.encode()).hexdigest()[:16]
    return f"plan_{h}"
