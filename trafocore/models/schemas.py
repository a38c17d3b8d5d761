"""
Diagnostic Data Model
=====================
Enumerations and immutable records exchanged between the classification
engine and its callers.

Every record is created per analysis request and owned by the caller. The
``to_dict`` methods emit the camelCase field names that the report, history
and HTTP layers depend on (``faultType``, ``severity``, ``recommendations``,
``coLevel``, ``result`` ...).
"""

import math
from dataclasses import dataclass, field, fields
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Tuple

from trafocore.utils.errors import InvalidReadingError


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  ENUMERATIONS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TriangleMethod(IntEnum):
    """Duval triangles supported by the engine."""
    TRIANGLE_1 = 1  # CH4 / C2H4 / C2H2
    TRIANGLE_4 = 4  # H2 / CH4 / C2H6
    TRIANGLE_5 = 5  # CH4 / C2H4 / C2H6


class Triangle1Fault(str, Enum):
    PD = "PD"  # Partial discharge
    D1 = "D1"  # Low energy discharge
    D2 = "D2"  # High energy discharge
    T1 = "T1"  # Thermal < 300 C
    T2 = "T2"  # Thermal 300-700 C
    T3 = "T3"  # Thermal > 700 C
    DT = "DT"  # Discharge + thermal


class Triangle4Fault(str, Enum):
    PD = "PD"
    ND = "ND"  # Normal degradation
    C = "C"    # Corona / carbonization
    S = "S"    # Stray gassing
    DT = "DT"
    D2 = "D2"


class Triangle5Fault(str, Enum):
    T2 = "T2"
    T3 = "T3"
    C = "C"
    S = "S"
    O = "O"    # Overheating < 250 C
    ND = "ND"


FAULT_ENUMS = {
    TriangleMethod.TRIANGLE_1: Triangle1Fault,
    TriangleMethod.TRIANGLE_4: Triangle4Fault,
    TriangleMethod.TRIANGLE_5: Triangle5Fault,
}

NORMAL = "NORMAL"


class Severity(str, Enum):
    """Severity tiers, ordered low < medium < high < critical."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self.value]


_SEVERITY_RANK = {"low": 0, "medium": 1, "high": 2, "critical": 3}


class TransformerClass(str, Enum):
    O = "O"  # > 400 kV
    A = "A"  # 170 - 400 kV
    B = "B"  # 72.5 kV
    C = "C"  # < 72.5 kV


class BreakdownResult(str, Enum):
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class COSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


def fault_code(value: Any) -> str:
    """Plain string form of a fault code or enum member."""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  INPUT RECORDS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class GasConcentration:
    """
    Dissolved gas reading. Gases in ppm, ``gas_by_volume`` in %.

    Every field is optional; a missing or zero value means "not measured".
    """
    h2: float = 0.0
    ch4: float = 0.0
    c2h6: float = 0.0
    c2h4: float = 0.0
    c2h2: float = 0.0
    co: float = 0.0
    co2: float = 0.0
    o2: float = 0.0
    n2: float = 0.0
    o2_n2_ratio: float = 0.0
    co2_co_ratio: float = 0.0
    gas_by_volume: float = 0.0
    nel_oil: float = 0.0
    nel_paper: float = 0.0

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if value < 0:
                raise InvalidReadingError(
                    f"{f.name} must be non-negative, got {value}",
                    component="gas_concentration",
                    context={"field": f.name, "value": value},
                )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GasConcentration":
        """
        Build a reading from a loosely keyed mapping (``h2`` or ``H2``).
        Blank, None and NaN entries are treated as not measured.
        """
        data = data or {}
        lowered = {str(k).strip().lower(): v for k, v in data.items()}
        values = {}
        for f in fields(cls):
            raw = lowered.get(f.name)
            if raw is None or raw == "":
                continue
            try:
                value = float(raw)
            except (TypeError, ValueError):
                raise InvalidReadingError(
                    f"{f.name} is not a number: {raw!r}",
                    component="gas_concentration",
                    context={"field": f.name, "value": raw},
                )
            if math.isnan(value):
                continue
            values[f.name] = value
        return cls(**values)

    def with_derived_ratios(self) -> "GasConcentration":
        """Fill O2/N2 and CO2/CO when not supplied and computable."""
        updates = {}
        if not self.o2_n2_ratio and self.o2 and self.n2:
            updates["o2_n2_ratio"] = round(self.o2 / self.n2, 4)
        if not self.co2_co_ratio and self.co2 and self.co:
            updates["co2_co_ratio"] = round(self.co2 / self.co, 4)
        if not updates:
            return self
        values = self.to_dict()
        values.update(updates)
        return GasConcentration(**values)

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class ReportHeader:
    """Sample metadata printed at the top of reports."""
    sampling_date: str = ""
    id_trafo: str = ""
    serial_no: str = ""
    power_rating: str = ""
    voltage_ratio: str = ""
    category: str = ""
    manufacture: str = ""
    oil_brand: str = ""
    weight_volume_oil: str = ""
    year: str = ""
    temperature: str = ""
    sampling_point: str = ""

    _KEYS = {
        "sampling_date": "samplingDate",
        "id_trafo": "idTrafo",
        "serial_no": "serialNo",
        "power_rating": "powerRating",
        "voltage_ratio": "voltageRatio",
        "category": "category",
        "manufacture": "manufacture",
        "oil_brand": "oilBrand",
        "weight_volume_oil": "weightVolumeOil",
        "year": "year",
        "temperature": "temperature",
        "sampling_point": "samplingPoint",
    }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ReportHeader":
        data = data or {}
        values = {}
        for attr, key in cls._KEYS.items():
            value = data.get(key, data.get(attr))
            if value is not None:
                values[attr] = str(value)
        return cls(**values)

    def to_dict(self) -> Dict[str, str]:
        return {key: getattr(self, attr) for attr, key in self._KEYS.items()}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  RESULT RECORDS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class FaultDetectionResult:
    """Classification of one triangle."""
    triangle_method: TriangleMethod
    fault_type: Enum
    confidence: float
    coordinates: Optional[Point]
    gas_ratios: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    @property
    def code(self) -> str:
        return fault_code(self.fault_type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "triangleMethod": int(self.triangle_method),
            "faultType": self.code,
            "confidence": self.confidence,
            "coordinates": self.coordinates.to_dict() if self.coordinates else None,
            "gasRatios": {
                "gas1": self.gas_ratios[0],
                "gas2": self.gas_ratios[1],
                "gas3": self.gas_ratios[2],
            },
        }


@dataclass(frozen=True)
class RecommendationRecord:
    fault_type: str
    description: str
    corrective_actions: Tuple[str, ...]
    preventive_actions: Tuple[str, ...] = ()
    priority: str = "low"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "faultType": self.fault_type,
            "description": self.description,
            "correctiveActions": list(self.corrective_actions),
            "preventiveActions": list(self.preventive_actions),
            "priority": self.priority,
        }


@dataclass(frozen=True)
class COAnalysisResult:
    co_level: float
    severity: COSeverity
    description: str
    resampling_interval: str
    recommendations: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coLevel": self.co_level,
            "severity": self.severity.value,
            "description": self.description,
            "resamplingInterval": self.resampling_interval,
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Aggregate of the per-triangle classifications of one reading."""
    results: Tuple[FaultDetectionResult, ...]
    severity: Severity
    overall_recommendation: str
    recommendations: Tuple[RecommendationRecord, ...]
    co_analysis: Optional[COAnalysisResult] = None

    def for_triangle(self, method: int) -> Optional[FaultDetectionResult]:
        for result in self.results:
            if result.triangle_method == method:
                return result
        return None

    @property
    def triangle1(self) -> Optional[FaultDetectionResult]:
        return self.for_triangle(TriangleMethod.TRIANGLE_1)

    @property
    def triangle4(self) -> Optional[FaultDetectionResult]:
        return self.for_triangle(TriangleMethod.TRIANGLE_4)

    @property
    def triangle5(self) -> Optional[FaultDetectionResult]:
        return self.for_triangle(TriangleMethod.TRIANGLE_5)

    @property
    def fault_types(self) -> Tuple[str, ...]:
        return tuple(r.code for r in self.results)

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "triangle1": self.triangle1.to_dict() if self.triangle1 else None,
            "triangle4": self.triangle4.to_dict() if self.triangle4 else None,
            "triangle5": self.triangle5.to_dict() if self.triangle5 else None,
            "severity": self.severity.value,
            "overallRecommendation": self.overall_recommendation,
            "recommendations": [r.to_dict() for r in self.recommendations],
        }
        if self.co_analysis is not None:
            payload["coAnalysis"] = self.co_analysis.to_dict()
        return payload


@dataclass(frozen=True)
class BreakdownVoltageReading:
    transformer_class: str
    dielectric_strengths: Tuple[float, ...]
    average: float
    result: BreakdownResult
    recommendation: str
    id_trafo: str = ""
    thresholds: Optional[Tuple[float, float]] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "idTrafo": self.id_trafo,
            "transformerType": self.transformer_class,
            "dielectricStrengths": list(self.dielectric_strengths),
            "average": self.average,
            "result": self.result.value,
            "recommendation": self.recommendation,
            "thresholds": (
                {"good": self.thresholds[0], "fair": self.thresholds[1]}
                if self.thresholds else None
            ),
        }
