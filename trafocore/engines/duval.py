"""
Duval Triangle Zone Classifier
==============================
Maps a normalized gas triple onto the fault zone of Triangle 1, 4 or 5.

Each triangle is an ordered list of zones; the first zone whose predicate
holds wins. Every list ends in a catch-all so classification is total.
All comparisons are strict ``>``, so a reading exactly on a threshold falls
into the lower-ranked branch.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from trafocore.engines import geometry
from trafocore.models.schemas import (
    FAULT_ENUMS,
    FaultDetectionResult,
    GasConcentration,
    Severity,
    Triangle1Fault,
    Triangle4Fault,
    Triangle5Fault,
    TriangleMethod,
)
from trafocore.utils.errors import InvalidReadingError, NoDataError

logger = logging.getLogger(__name__)

# ============================================================================
# ZONE THRESHOLDS (% of the triangle's three-gas total)
# ============================================================================

# Triangle 1 (CH4 = p1, C2H4 = p2, C2H2 = p3)
T1_C2H2_DISCHARGE = 13            # C2H2 > 13% = discharge region
T1_C2H4_HIGH = 23                 # C2H4 > 23% = D2 / high-temperature thermal
T1_C2H4_LOW = 9                   # C2H4 > 9%  = D1 / mid-temperature thermal
T1_CH4_T1_HIGH_C2H4 = 75          # CH4 > 75% with C2H4 > 23% = T1
T1_CH4_T1_MID_C2H4 = 85           # CH4 > 85% with 9 < C2H4 <= 23% = T1

# Triangle 4 (H2 = p1, CH4 = p2, C2H6 = p3)
T4_H2_HIGH = 50                   # H2 > 50% = PD / ND region
T4_CH4_SPLIT = 15                 # CH4 > 15% separates PD from ND and C from S
T4_C2H6_HIGH = 40                 # C2H6 > 40% = C / S region
T4_CH4_DT = 65                    # CH4 > 65% = DT

# Triangle 5 (CH4 = p1, C2H4 = p2, C2H6 = p3)
T5_C2H4_HIGH = 50                 # C2H4 > 50% = high-temperature thermal
T5_CH4_T2 = 20                    # CH4 > 20% with C2H4 > 50% = T2
T5_C2H6_HIGH = 60                 # C2H6 > 60% = C / S region
T5_CH4_C = 40                     # CH4 > 40% with C2H6 > 60% = C (cannot occur when p1+p2+p3 = 100)
T5_CH4_O = 80                     # CH4 > 80% = overheating

COMPUTED_CONFIDENCE = 0.8
MANUAL_CONFIDENCE = 1.0


@dataclass(frozen=True)
class FaultZone:
    """One region of a triangle, tested in list order."""
    code: str
    severity: Severity
    description: str
    condition: str
    predicate: Callable[[float, float, float], bool]

    def matches(self, p1: float, p2: float, p3: float) -> bool:
        return bool(self.predicate(p1, p2, p3))


def _always(p1, p2, p3):
    return True


# =========================
# Ordered zone lists
# =========================

TRIANGLE_1_ZONES = [
    FaultZone(Triangle1Fault.D2, Severity.CRITICAL, "High energy discharge",
              "C2H2 > 13% and C2H4 > 23%",
              lambda p1, p2, p3: p3 > T1_C2H2_DISCHARGE and p2 > T1_C2H4_HIGH),
    FaultZone(Triangle1Fault.D1, Severity.HIGH, "Low energy discharge",
              "C2H2 > 13% and 9% < C2H4 <= 23%",
              lambda p1, p2, p3: p3 > T1_C2H2_DISCHARGE and p2 > T1_C2H4_LOW),
    FaultZone(Triangle1Fault.DT, Severity.HIGH, "Discharge with thermal component",
              "C2H2 > 13% and C2H4 <= 9%",
              lambda p1, p2, p3: p3 > T1_C2H2_DISCHARGE),
    FaultZone(Triangle1Fault.T1, Severity.MEDIUM, "Thermal fault < 300 C",
              "C2H4 > 23% and CH4 > 75%",
              lambda p1, p2, p3: p2 > T1_C2H4_HIGH and p1 > T1_CH4_T1_HIGH_C2H4),
    FaultZone(Triangle1Fault.T2, Severity.HIGH, "Thermal fault 300-700 C",
              "C2H4 > 23% and CH4 <= 75%",
              lambda p1, p2, p3: p2 > T1_C2H4_HIGH),
    FaultZone(Triangle1Fault.T1, Severity.MEDIUM, "Thermal fault < 300 C",
              "9% < C2H4 <= 23% and CH4 > 85%",
              lambda p1, p2, p3: p2 > T1_C2H4_LOW and p1 > T1_CH4_T1_MID_C2H4),
    FaultZone(Triangle1Fault.T3, Severity.CRITICAL, "Thermal fault > 700 C",
              "9% < C2H4 <= 23% and CH4 <= 85%",
              lambda p1, p2, p3: p2 > T1_C2H4_LOW),
    FaultZone(Triangle1Fault.PD, Severity.MEDIUM, "Partial discharge",
              "C2H2 <= 13% and C2H4 <= 9%", _always),
]

TRIANGLE_4_ZONES = [
    FaultZone(Triangle4Fault.PD, Severity.MEDIUM, "Partial discharge",
              "H2 > 50% and CH4 > 15%",
              lambda p1, p2, p3: p1 > T4_H2_HIGH and p2 > T4_CH4_SPLIT),
    FaultZone(Triangle4Fault.ND, Severity.LOW, "Normal degradation",
              "H2 > 50% and CH4 <= 15%",
              lambda p1, p2, p3: p1 > T4_H2_HIGH),
    FaultZone(Triangle4Fault.C, Severity.MEDIUM, "Corona / carbonization of paper",
              "C2H6 > 40% and CH4 > 15%",
              lambda p1, p2, p3: p3 > T4_C2H6_HIGH and p2 > T4_CH4_SPLIT),
    FaultZone(Triangle4Fault.S, Severity.LOW, "Stray gassing",
              "C2H6 > 40% and CH4 <= 15%",
              lambda p1, p2, p3: p3 > T4_C2H6_HIGH),
    FaultZone(Triangle4Fault.DT, Severity.HIGH, "Discharge with thermal component",
              "CH4 > 65%",
              lambda p1, p2, p3: p2 > T4_CH4_DT),
    FaultZone(Triangle4Fault.D2, Severity.CRITICAL, "High energy discharge",
              "remaining region", _always),
]

TRIANGLE_5_ZONES = [
    FaultZone(Triangle5Fault.T2, Severity.HIGH, "Thermal fault 300-700 C",
              "C2H4 > 50% and CH4 > 20%",
              lambda p1, p2, p3: p2 > T5_C2H4_HIGH and p1 > T5_CH4_T2),
    FaultZone(Triangle5Fault.T3, Severity.CRITICAL, "Thermal fault > 700 C",
              "C2H4 > 50% and CH4 <= 20%",
              lambda p1, p2, p3: p2 > T5_C2H4_HIGH),
    FaultZone(Triangle5Fault.C, Severity.MEDIUM, "Corona / carbonization of paper",
              "C2H6 > 60% and CH4 > 40%",
              lambda p1, p2, p3: p3 > T5_C2H6_HIGH and p1 > T5_CH4_C),
    FaultZone(Triangle5Fault.S, Severity.LOW, "Stray gassing",
              "C2H6 > 60% and CH4 <= 40%",
              lambda p1, p2, p3: p3 > T5_C2H6_HIGH),
    FaultZone(Triangle5Fault.O, Severity.LOW, "Overheating < 250 C",
              "CH4 > 80%",
              lambda p1, p2, p3: p1 > T5_CH4_O),
    FaultZone(Triangle5Fault.ND, Severity.LOW, "Normal degradation",
              "remaining region", _always),
]

ZONES: Dict[TriangleMethod, List[FaultZone]] = {
    TriangleMethod.TRIANGLE_1: TRIANGLE_1_ZONES,
    TriangleMethod.TRIANGLE_4: TRIANGLE_4_ZONES,
    TriangleMethod.TRIANGLE_5: TRIANGLE_5_ZONES,
}

# Severity per fault code. A code shared by several triangles carries the
# same severity in each.
FAULT_SEVERITY: Dict[str, Severity] = {
    zone.code.value: zone.severity
    for zones in ZONES.values()
    for zone in zones
}


def zone_descriptions(triangle_id) -> Dict[str, str]:
    """Readable "description (condition)" per fault code of a triangle."""
    method = geometry.triangle_method(triangle_id)
    names: Dict[str, str] = {}
    conditions: Dict[str, List[str]] = {}
    for zone in ZONES[method]:
        code = zone.code.value
        names.setdefault(code, zone.description)
        conditions.setdefault(code, []).append(zone.condition)
    return {code: f"{names[code]} ({' or '.join(conditions[code])})" for code in names}


def find_zone(triangle_id, p1: float, p2: float, p3: float) -> FaultZone:
    """First zone of the triangle whose predicate holds."""
    method = geometry.triangle_method(triangle_id)
    for zone in ZONES[method]:
        if zone.matches(p1, p2, p3):
            return zone
    # Unreachable: every list ends with a catch-all
    raise RuntimeError(f"No zone matched for triangle {int(method)}")


def classify(triangle_id, p1: float, p2: float, p3: float):
    """
    Fault code for a point given as (top, right, left) percentages.

    Raises:
        ValueError: unknown triangle id.
    """
    return find_zone(triangle_id, p1, p2, p3).code


def analyze_triangle(triangle_id, gases: GasConcentration) -> Optional[FaultDetectionResult]:
    """
    Normalize the triangle's gases, position and classify them.
    Returns None when the triangle's three gases are all zero.
    """
    method = geometry.triangle_method(triangle_id)
    try:
        p1, p2, p3 = geometry.normalize(*geometry.triangle_gases(method, gases))
    except NoDataError:
        logger.debug("Triangle %d skipped: no gas data", int(method))
        return None

    fault = classify(method, p1, p2, p3)
    return FaultDetectionResult(
        triangle_method=method,
        fault_type=fault,
        confidence=COMPUTED_CONFIDENCE,
        coordinates=geometry.to_coordinate(p1, p2, p3),
        gas_ratios=(p1, p2, p3),
    )


def analyze_triangle_1(gases: GasConcentration) -> Optional[FaultDetectionResult]:
    return analyze_triangle(TriangleMethod.TRIANGLE_1, gases)


def analyze_triangle_4(gases: GasConcentration) -> Optional[FaultDetectionResult]:
    return analyze_triangle(TriangleMethod.TRIANGLE_4, gases)


def analyze_triangle_5(gases: GasConcentration) -> Optional[FaultDetectionResult]:
    return analyze_triangle(TriangleMethod.TRIANGLE_5, gases)


def parse_fault(triangle_id, code):
    """
    Validate an operator-supplied fault code against a triangle's enum.

    Raises:
        InvalidReadingError: the code does not exist in that triangle.
    """
    method = geometry.triangle_method(triangle_id)
    enum_cls = FAULT_ENUMS[method]
    try:
        return enum_cls(str(getattr(code, "value", code)).strip().upper())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidReadingError(
            f"Fault '{code}' is not valid for triangle {int(method)} (allowed: {allowed})",
            component="duval",
            context={"triangle": int(method), "fault": str(code)},
        )
