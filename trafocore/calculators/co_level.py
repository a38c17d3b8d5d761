"""
Carbon monoxide level analysis.

CO in transformer oil comes mostly from cellulose (paper) degradation, so the
level sets how often the oil should be resampled.
"""

from trafocore.models.schemas import COAnalysisResult, COSeverity
from trafocore.utils.errors import InvalidReadingError

# CO thresholds (ppm)
CO_MEDIUM_MIN = 500               # 500 <= CO <= 600 = MEDIUM
CO_MEDIUM_MAX = 600               # CO > 600 = HIGH

_CO_BANDS = {
    COSeverity.LOW: ("4-8 months", "Low"),
    COSeverity.MEDIUM: ("2-4 months", "Medium"),
    COSeverity.HIGH: ("1-2 months", "High"),
}


def co_severity(co_ppm: float) -> COSeverity:
    if co_ppm < CO_MEDIUM_MIN:
        return COSeverity.LOW
    if co_ppm <= CO_MEDIUM_MAX:
        return COSeverity.MEDIUM
    return COSeverity.HIGH


def analyze_co_level(co_ppm: float) -> COAnalysisResult:
    """
    Classify a CO reading and return the resampling advice.

    Args:
        co_ppm: carbon monoxide concentration in ppm (non-negative).
    """
    if co_ppm is None or co_ppm < 0:
        raise InvalidReadingError(
            f"CO level must be non-negative, got {co_ppm}",
            component="co_level",
            context={"co": co_ppm},
        )

    severity = co_severity(co_ppm)
    interval, label = _CO_BANDS[severity]
    return COAnalysisResult(
        co_level=co_ppm,
        severity=severity,
        description=f"CO (Carbon Monoxide) {severity.value}",
        resampling_interval=interval,
        recommendations=(
            "Continue Operation",
            f"CO within the {label} limit: resample periodically every {interval}",
        ),
    )
