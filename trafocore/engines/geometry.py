"""
Duval Triangle Geometry
=======================
Barycentric to Cartesian conversion for the equilateral Duval triangles.

Coordinate system (side 100):
    Left  = (0, 0)
    Right = (100, 0)
    Top   = (50, 50 * sqrt(3))

For percentages (p_top, p_right, p_left) of one triangle's three gas roles:
    x = p_right + 0.5 * p_top
    y = (sqrt(3) / 2) * p_top
"""

import math
from typing import Dict, List, Optional, Tuple

from trafocore.models.schemas import GasConcentration, Point, TriangleMethod
from trafocore.utils.errors import NoDataError

SQRT3_OVER_2 = math.sqrt(3) / 2

# Gas roles per triangle: (top, right, left)
TRIANGLE_GASES = {
    TriangleMethod.TRIANGLE_1: ("ch4", "c2h4", "c2h2"),
    TriangleMethod.TRIANGLE_4: ("h2", "ch4", "c2h6"),
    TriangleMethod.TRIANGLE_5: ("ch4", "c2h4", "c2h6"),
}

TRIANGLE_DESCRIPTIONS = {
    TriangleMethod.TRIANGLE_1: {
        "name": "Triangle 1",
        "gases": ["CH4", "C2H4", "C2H2"],
        "description": "Primary triangle for fault detection using methane, ethylene and acetylene",
    },
    TriangleMethod.TRIANGLE_4: {
        "name": "Triangle 4",
        "gases": ["H2", "CH4", "C2H6"],
        "description": "Low temperature faults using hydrogen, methane and ethane",
    },
    TriangleMethod.TRIANGLE_5: {
        "name": "Triangle 5",
        "gases": ["CH4", "C2H4", "C2H6"],
        "description": "Thermal faults using methane, ethylene and ethane",
    },
}


def triangle_method(value) -> TriangleMethod:
    """Coerce 1/4/5 (int or str) to a TriangleMethod."""
    try:
        return TriangleMethod(int(value))
    except (TypeError, ValueError):
        raise ValueError(f"Unknown Duval triangle: {value!r} (expected 1, 4 or 5)")


def to_coordinate(p_top: float, p_right: float, p_left: float) -> Point:
    """
    Cartesian point for three triangle percentages.
    The sum is not checked; callers normalize first.
    """
    return Point(x=p_right + 0.5 * p_top, y=SQRT3_OVER_2 * p_top)


def normalize(g1: float, g2: float, g3: float) -> Tuple[float, float, float]:
    """
    Scale three raw concentrations to percentages of their total.

    Raises:
        NoDataError: when all three are zero.
    """
    total = g1 + g2 + g3
    if total == 0:
        raise NoDataError(
            "All three gases are zero",
            component="geometry",
            context={"gases": [g1, g2, g3]},
        )
    return (g1 / total * 100, g2 / total * 100, g3 / total * 100)


def triangle_gases(method, gases: GasConcentration) -> Tuple[float, float, float]:
    """Raw (top, right, left) concentrations for a triangle."""
    top, right, left = TRIANGLE_GASES[triangle_method(method)]
    return getattr(gases, top), getattr(gases, right), getattr(gases, left)


def position_for(method, gases: GasConcentration) -> Point:
    """Normalized position of a reading inside a triangle."""
    p_top, p_right, p_left = normalize(*triangle_gases(method, gases))
    return to_coordinate(p_top, p_right, p_left)


# =========================
# Drawing data (zone boundaries and labels)
# =========================

def point_from_two(p_top: Optional[float], p_right: Optional[float],
                   p_left: Optional[float]) -> Point:
    """
    Point from two known percentages; the third is 100 minus the others.
    Three values are used as given.
    """
    known = [p is not None for p in (p_top, p_right, p_left)]
    if sum(known) < 2:
        raise ValueError("At least two percentages are required")
    if p_top is None:
        p_top = 100 - p_right - p_left
    elif p_right is None:
        p_right = 100 - p_top - p_left
    elif p_left is None:
        p_left = 100 - p_top - p_right
    return to_coordinate(p_top, p_right, p_left)


# Each boundary is (start, end), each end given as (top, right, left) with one
# None. Lines follow the thresholds used by the zone classifier.
BOUNDARIES = {
    TriangleMethod.TRIANGLE_1: [
        ((None, 0, 13), (0, None, 13)),      # C2H2 = 13
        ((0, 23, None), (None, 23, 0)),      # C2H4 = 23
        ((0, 9, None), (None, 9, 0)),        # C2H4 = 9
        ((75, 23, None), (75, None, 0)),     # CH4 = 75 (C2H4 > 23)
        ((85, 9, None), (85, None, 0)),      # CH4 = 85 (9 < C2H4 <= 23)
    ],
    TriangleMethod.TRIANGLE_4: [
        ((50, 0, None), (50, None, 0)),      # H2 = 50
        ((None, 15, 0), (None, 15, 40)),     # CH4 = 15
        ((50, None, 40), (0, None, 40)),     # C2H6 = 40 (H2 <= 50)
        ((0, 65, None), (None, 65, 0)),      # CH4 = 65
    ],
    TriangleMethod.TRIANGLE_5: [
        ((None, 50, 50), (None, 50, 0)),     # C2H4 = 50
        ((20, 50, None), (20, None, 0)),     # CH4 = 20 (C2H4 > 50)
        ((None, 0, 60), (0, None, 60)),      # C2H6 = 60
        # CH4 = 40 inside C2H6 > 60 collapses to a single point; not drawn
        ((80, 0, None), (80, None, 0)),      # CH4 = 80
    ],
}

# Label anchors as (top, right, left) percentages
LABEL_ANCHORS = {
    TriangleMethod.TRIANGLE_1: {
        "PD": (90, 4, 6),
        "T1": (88, 10, 2),
        "T2": (54, 40, 6),
        "T3": (80, 15, 5),
        "D1": (65, 15, 20),
        "D2": (40, 40, 20),
        "DT": (75, 5, 20),
    },
    TriangleMethod.TRIANGLE_4: {
        "PD": (70, 20, 10),
        "ND": (85, 5, 10),
        "S": (45, 5, 50),
        "C": (30, 20, 50),
        "DT": (10, 80, 10),
        "D2": (20, 50, 30),
    },
    TriangleMethod.TRIANGLE_5: {
        "T2": (30, 60, 10),
        "T3": (10, 80, 10),
        "S": (20, 10, 70),
        "O": (90, 5, 5),
        "ND": (40, 30, 30),
    },
}


def boundary_segments(method) -> List[Tuple[Point, Point]]:
    """Zone boundary lines of a triangle as (start, end) points."""
    return [
        (point_from_two(*start), point_from_two(*end))
        for start, end in BOUNDARIES[triangle_method(method)]
    ]


def zone_labels(method) -> Dict[str, Point]:
    """Anchor point for each zone label of a triangle."""
    return {
        code: to_coordinate(*pcts)
        for code, pcts in LABEL_ANCHORS[triangle_method(method)].items()
    }


def outline() -> List[Point]:
    """Closed outline of the triangle (left, right, top, left)."""
    return [
        to_coordinate(0, 0, 100),
        to_coordinate(0, 100, 0),
        to_coordinate(100, 0, 0),
        to_coordinate(0, 0, 100),
    ]
