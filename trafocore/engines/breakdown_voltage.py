"""
Breakdown Voltage (BDV) Classifier
==================================
Dielectric strength of insulating oil per IEC 60156 / IEC 60422.

Six breakdown readings are averaged and the mean is compared with the
good / fair thresholds of the transformer's voltage class:

    average > good           -> good
    fair <= average <= good  -> fair
    average < fair           -> poor

An unknown transformer class degrades to ``poor``.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Sequence

from trafocore.agents import recommendation
from trafocore.models.schemas import BreakdownResult, BreakdownVoltageReading, TransformerClass
from trafocore.utils.errors import InvalidReadingError

logger = logging.getLogger(__name__)

READINGS_PER_SAMPLE = 6

# (good threshold kV, fair threshold kV) per transformer class
BDV_THRESHOLDS = {
    TransformerClass.O: (60.0, 50.0),            # > 400 kV
    TransformerClass.A: (60.0, 50.0),            # 170 - 400 kV
    TransformerClass.B: (50.0, 40.0),            # 72.5 kV
    TransformerClass.C: (40.0, 30.0),            # < 72.5 kV
}

TRANSFORMER_CLASSES = [
    {"type": "O", "label": "Type O (> 400 kV)", "voltageRange": "> 400 kV"},
    {"type": "A", "label": "Type A (170 kV - 400 kV)", "voltageRange": "170 kV - 400 kV"},
    {"type": "B", "label": "Type B (72.5 kV)", "voltageRange": "72.5 kV"},
    {"type": "C", "label": "Type C (< 72.5 kV)", "voltageRange": "< 72.5 kV"},
]


def voltage_ranges() -> List[Dict]:
    """Class table with readable good / fair / poor bands."""
    table = []
    for entry in TRANSFORMER_CLASSES:
        good, fair = BDV_THRESHOLDS[TransformerClass(entry["type"])]
        table.append({
            **entry,
            "good": f"> {good:g} kV",
            "fair": f"{fair:g}-{good:g} kV",
            "poor": f"< {fair:g} kV",
            "goodThreshold": good,
            "fairThreshold": fair,
        })
    return table


def transformer_class_of(value) -> Optional[TransformerClass]:
    """
    Parse a transformer class. Matching ignores case and surrounding
    whitespace ("b" and " B " are class B); None when unknown.
    """
    if isinstance(value, TransformerClass):
        return value
    try:
        return TransformerClass(str(value or "").strip().upper())
    except ValueError:
        return None


def thresholds_for(transformer_class) -> Optional[tuple]:
    parsed = transformer_class_of(transformer_class)
    return BDV_THRESHOLDS[parsed] if parsed is not None else None


def classify_breakdown_voltage(average_kv: float, transformer_class) -> BreakdownResult:
    thresholds = thresholds_for(transformer_class)
    if thresholds is None:
        logger.warning("Unknown transformer class %r, classifying as poor", transformer_class)
        return BreakdownResult.POOR

    good, fair = thresholds
    if average_kv > good:
        return BreakdownResult.GOOD
    if average_kv >= fair:
        return BreakdownResult.FAIR
    return BreakdownResult.POOR


def average_dielectric_strength(readings: Sequence[float]) -> float:
    """
    Mean of exactly six readings, rounded half-up to 2 decimals.

    Raises:
        InvalidReadingError: wrong count, non-numeric or negative reading.
    """
    readings = list(readings or [])
    if len(readings) != READINGS_PER_SAMPLE:
        raise InvalidReadingError(
            f"Expected {READINGS_PER_SAMPLE} dielectric strength readings, got {len(readings)}",
            component="breakdown_voltage",
            context={"count": len(readings)},
        )

    values = []
    for i, raw in enumerate(readings):
        try:
            value = Decimal(str(raw))
        except ArithmeticError:
            raise InvalidReadingError(
                f"Reading {i + 1} is not a number: {raw!r}",
                component="breakdown_voltage",
                context={"index": i, "value": raw},
            )
        if not value.is_finite() or value < 0:
            raise InvalidReadingError(
                f"Reading {i + 1} must be a non-negative number, got {raw!r}",
                component="breakdown_voltage",
                context={"index": i, "value": raw},
            )
        values.append(value)

    mean = sum(values) / Decimal(READINGS_PER_SAMPLE)
    return float(mean.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def recommendation_text(result: BreakdownResult) -> str:
    record = recommendation.resolve(result.value)
    return record.corrective_actions[0] if record else ""


def analyze_breakdown_voltage(readings: Sequence[float], transformer_class,
                              id_trafo: str = "") -> BreakdownVoltageReading:
    """Average six readings, classify and attach the recommendation."""
    readings = tuple(readings or ())
    average = average_dielectric_strength(readings)
    result = classify_breakdown_voltage(average, transformer_class)
    parsed = transformer_class_of(transformer_class)
    cls = parsed.value if parsed is not None else str(transformer_class or "").strip()

    return BreakdownVoltageReading(
        transformer_class=cls,
        dielectric_strengths=tuple(float(r) for r in readings),
        average=average,
        result=result,
        recommendation=recommendation_text(result),
        id_trafo=id_trafo or "",
        thresholds=thresholds_for(parsed),
    )
