import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from trafocore.agents import recommendation
from trafocore.calculators.co_level import analyze_co_level
from trafocore.engines import duval, geometry
from trafocore.models.schemas import (
    NORMAL,
    AnalysisResult,
    FaultDetectionResult,
    GasConcentration,
    Severity,
    TriangleMethod,
    fault_code,
)
from trafocore.utils.errors import NoDataError

logger = logging.getLogger(__name__)


class DGAEngine:
    """
    Multi-Triangle DGA Engine
    =========================
    Runs Duval Triangles 1, 4 and 5 on one gas reading and merges the
    per-triangle fault codes into a single verdict.

    Features:
    - Gas-availability gating per triangle
    - Severity = worst fault across triangles (critical > high > medium > low)
    - Priority narrative: the worst problem is reported first
    - Deduplicated maintenance recommendations (NORMAL when nothing is found)
    - Operator-confirmed (manual) fault selection
    - CO level analysis when CO is measured
    """

    def __init__(self):
        # --- SEVERITY RANKING (from the zone tables; unknown codes are low) ---
        self.FAULT_SEVERITY = dict(duval.FAULT_SEVERITY)

        # --- NARRATIVE TEMPLATES (checked in order) ---
        self.NARRATIVES = [
            ("D2", "CRITICAL: High Energy Discharge (D2) detected. Shut down immediately and inspect the transformer internally."),
            ("T3", "CRITICAL: Thermal Fault >700°C (T3) detected. Shut down immediately and carry out comprehensive repairs."),
            ("D1", "HIGH: Low Energy Discharge (D1) detected. Inspect thoroughly and repair the insulation."),
            ("T2", "HIGH: Thermal Fault 300-700°C (T2) detected. Check the cooling system and operating load."),
            ("T1", "MEDIUM: Thermal Fault <300°C (T1) detected. Increase monitoring and check for hotspots."),
            ("PD", "MEDIUM: Partial Discharge (PD) detected. Measure partial discharge and check the insulation."),
        ]
        self.NO_FAULT_NARRATIVE = "No fault indication detected. Continue routine DGA monitoring on schedule."
        self.FALLBACK_NARRATIVE = "Minor fault indication detected. Increase DGA monitoring frequency."
        self.MANUAL_FALLBACK_NARRATIVE = "Manual analysis complete. Follow up according to the detected faults."

    # =========================
    # Computed analysis
    # =========================
    def analyze(self, gases: GasConcentration) -> AnalysisResult:
        """
        Main entry point: run every triangle whose gases are present.

        Triangle 1 runs whenever CH4, C2H4 or C2H2 is non-zero; Triangle 4
        needs both H2 and C2H6; Triangle 5 needs C2H6.
        """
        results = []
        for method in self._applicable_triangles(gases):
            result = duval.analyze_triangle(method, gases)
            if result is not None:
                results.append(result)

        logger.debug("DGA analysis produced %d triangle result(s)", len(results))
        return self.aggregate(results, co=gases.co)

    def _applicable_triangles(self, gases: GasConcentration) -> List[TriangleMethod]:
        methods = []
        if gases.ch4 or gases.c2h4 or gases.c2h2:
            methods.append(TriangleMethod.TRIANGLE_1)
        if gases.h2 and gases.c2h6:
            methods.append(TriangleMethod.TRIANGLE_4)
        if gases.c2h6:
            methods.append(TriangleMethod.TRIANGLE_5)
        return methods

    # =========================
    # Aggregation
    # =========================
    def aggregate(self, results: Sequence[FaultDetectionResult], co: float = 0.0,
                  fallback: Optional[str] = None) -> AnalysisResult:
        """Merge per-triangle results into one AnalysisResult."""
        results = tuple(results)
        codes = [r.code for r in results]

        if results:
            records = recommendation.resolve_many(codes)
        else:
            normal = recommendation.resolve(NORMAL)
            records = [normal] if normal else []

        return AnalysisResult(
            results=results,
            severity=self.severity_of(codes),
            overall_recommendation=self.narrative_for(codes, fallback),
            recommendations=tuple(records),
            co_analysis=analyze_co_level(co) if co and co > 0 else None,
        )

    def fault_severity(self, code) -> Severity:
        return self.FAULT_SEVERITY.get(fault_code(code), Severity.LOW)

    def severity_of(self, codes: Iterable) -> Severity:
        """Worst severity across codes; low for none."""
        severity = Severity.LOW
        for code in codes:
            candidate = self.fault_severity(code)
            if candidate.rank > severity.rank:
                severity = candidate
        return severity

    def narrative_for(self, codes: Iterable, fallback: Optional[str] = None) -> str:
        present = {getattr(c, "value", c) for c in codes}
        if not present:
            return self.NO_FAULT_NARRATIVE
        for code, text in self.NARRATIVES:
            if code in present:
                return text
        return fallback or self.FALLBACK_NARRATIVE

    # =========================
    # Manual analysis
    # =========================
    def analyze_manual(self, selections: Mapping, gases: Optional[GasConcentration] = None) -> AnalysisResult:
        """
        Aggregate operator-selected faults, e.g. ``{1: "T2", 4: "PD"}``.

        Codes are validated against their triangle. Coordinates are computed
        when the triangle's gases are supplied, otherwise left as None.
        """
        results = []
        for key in sorted(selections, key=lambda k: int(geometry.triangle_method(k))):
            code = selections[key]
            if code in (None, ""):
                continue
            method = geometry.triangle_method(key)
            fault = duval.parse_fault(method, code)
            results.append(self._manual_result(method, fault, gases))

        co = gases.co if gases is not None else 0.0
        return self.aggregate(results, co=co, fallback=self.MANUAL_FALLBACK_NARRATIVE)

    def _manual_result(self, method, fault, gases):
        coordinates = None
        ratios = (0.0, 0.0, 0.0)
        if gases is not None:
            try:
                ratios = geometry.normalize(*geometry.triangle_gases(method, gases))
                coordinates = geometry.to_coordinate(*ratios)
            except NoDataError:
                logger.debug("Manual triangle %d has no gas data", int(method))
        return FaultDetectionResult(
            triangle_method=method,
            fault_type=fault,
            confidence=duval.MANUAL_CONFIDENCE,
            coordinates=coordinates,
            gas_ratios=tuple(ratios),
        )


_default_engine = DGAEngine()


def analyze(gases: GasConcentration) -> AnalysisResult:
    return _default_engine.analyze(gases)


def aggregate(results: Sequence[FaultDetectionResult]) -> AnalysisResult:
    return _default_engine.aggregate(results)


def analyze_manual(selections: Mapping, gases: Optional[GasConcentration] = None) -> AnalysisResult:
    return _default_engine.analyze_manual(selections, gases)


def severity_of(codes: Iterable) -> Severity:
    return _default_engine.severity_of(codes)


def analyze_dict(data: Optional[Dict]) -> AnalysisResult:
    """Analyze a loosely keyed gas mapping (API / CSV row)."""
    return analyze(GasConcentration.from_dict(data).with_derived_ratios())
