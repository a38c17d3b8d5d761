import sys
import os

import pytest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from trafocore.engines import aggregator
from trafocore.engines.aggregator import DGAEngine
from trafocore.models.schemas import (
    COSeverity, FaultDetectionResult, GasConcentration, Severity,
    Triangle1Fault, Triangle4Fault, Triangle5Fault, TriangleMethod,
)
from trafocore.utils.errors import InvalidReadingError


def _result(method, fault):
    return FaultDetectionResult(triangle_method=method, fault_type=fault,
                                confidence=0.8, coordinates=None)


def test_triangle_1_only():
    engine = DGAEngine()
    analysis = engine.analyze(GasConcentration(ch4=10, c2h4=30, c2h2=60))

    assert analysis.fault_types == ("D2",)
    assert analysis.triangle4 is None
    assert analysis.triangle5 is None
    assert analysis.severity == Severity.CRITICAL
    assert analysis.overall_recommendation.startswith("CRITICAL")
    assert [r.fault_type for r in analysis.recommendations] == ["D2"]


def test_no_gases_gives_normal():
    analysis = aggregator.analyze(GasConcentration())

    assert analysis.results == ()
    assert analysis.severity == Severity.LOW
    assert analysis.overall_recommendation == DGAEngine().NO_FAULT_NARRATIVE
    assert [r.fault_type for r in analysis.recommendations] == ["NORMAL"]


def test_triangle_4_needs_h2_and_c2h6():
    analysis = aggregator.analyze(GasConcentration(h2=100, ch4=10))
    # Triangle 1 sees pure CH4 -> PD; Triangles 4 and 5 are skipped without C2H6
    assert [int(r.triangle_method) for r in analysis.results] == [1]
    assert analysis.triangle1.code == "PD"


def test_triangle_5_needs_c2h6():
    analysis = aggregator.analyze(GasConcentration(ch4=10, c2h6=50))

    assert analysis.triangle4 is None
    assert analysis.triangle5.code == "S"
    assert analysis.fault_types == ("PD", "S")
    assert analysis.severity == Severity.MEDIUM
    assert "(PD)" in analysis.overall_recommendation


def test_all_triangles():
    gases = GasConcentration(h2=50, ch4=100, c2h6=20, c2h4=30, c2h2=5)
    analysis = aggregator.analyze(gases)
    print(f"Faults: {analysis.fault_types}, severity: {analysis.severity.value}")

    assert analysis.fault_types == ("T3", "D2", "ND")
    assert analysis.severity == Severity.CRITICAL
    # D2 outranks T3 in the narrative
    assert "(D2)" in analysis.overall_recommendation
    assert [r.fault_type for r in analysis.recommendations] == ["T3", "D2", "ND"]


def test_severity_max_wins_regardless_of_order():
    assert aggregator.severity_of(["T1", "D2"]) == Severity.CRITICAL
    assert aggregator.severity_of(["D2", "T1"]) == Severity.CRITICAL
    assert aggregator.severity_of(["PD", "DT"]) == Severity.HIGH
    assert aggregator.severity_of(["C"]) == Severity.MEDIUM
    assert aggregator.severity_of(["O", "ND", "S"]) == Severity.LOW
    assert aggregator.severity_of([]) == Severity.LOW


def test_recommendations_deduplicated():
    results = [
        _result(TriangleMethod.TRIANGLE_1, Triangle1Fault.T2),
        _result(TriangleMethod.TRIANGLE_5, Triangle5Fault.T2),
    ]
    analysis = aggregator.aggregate(results)

    assert len(analysis.recommendations) == 1
    assert analysis.recommendations[0].fault_type == "T2"
    assert analysis.severity == Severity.HIGH


def test_fallback_narrative():
    engine = DGAEngine()
    analysis = engine.aggregate([_result(TriangleMethod.TRIANGLE_4, Triangle4Fault.S)])
    assert analysis.overall_recommendation == engine.FALLBACK_NARRATIVE


def test_aggregate_is_idempotent():
    results = [
        _result(TriangleMethod.TRIANGLE_1, Triangle1Fault.T1),
        _result(TriangleMethod.TRIANGLE_4, Triangle4Fault.D2),
    ]
    assert aggregator.aggregate(results) == aggregator.aggregate(results)
    assert aggregator.aggregate(results).severity == Severity.CRITICAL


def test_co_analysis_attached():
    analysis = aggregator.analyze(GasConcentration(ch4=10, co=550))
    assert analysis.co_analysis.severity == COSeverity.MEDIUM
    assert analysis.to_dict()["coAnalysis"]["coLevel"] == 550

    assert aggregator.analyze(GasConcentration(ch4=10)).co_analysis is None


def test_manual_analysis():
    engine = DGAEngine()
    analysis = engine.analyze_manual({1: "T2", "4": "pd", 5: None})

    assert analysis.fault_types == ("T2", "PD")
    assert all(r.confidence == 1.0 for r in analysis.results)
    assert all(r.coordinates is None for r in analysis.results)
    assert analysis.severity == Severity.HIGH
    assert "(T2)" in analysis.overall_recommendation


def test_manual_fallback_narrative():
    engine = DGAEngine()
    analysis = engine.analyze_manual({4: "S"})
    assert analysis.overall_recommendation == engine.MANUAL_FALLBACK_NARRATIVE


def test_manual_with_gases_has_coordinates():
    gases = GasConcentration(c2h4=50, c2h2=50)
    analysis = aggregator.analyze_manual({1: "D2", 4: "ND"}, gases)

    assert analysis.triangle1.coordinates is not None
    assert analysis.triangle1.gas_ratios == pytest.approx((0, 50, 50))
    # No H2 / C2H6 supplied
    assert analysis.triangle4.coordinates is None


def test_manual_invalid_fault_raises():
    with pytest.raises(InvalidReadingError):
        aggregator.analyze_manual({5: "D1"})


def test_result_serialisation():
    payload = aggregator.analyze_dict({"CH4": 10, "C2H4": 30, "C2H2": 60}).to_dict()

    assert payload["triangle1"]["faultType"] == "D2"
    assert payload["triangle4"] is None
    assert payload["severity"] == "critical"
    assert payload["recommendations"][0]["priority"] == "urgent"
    assert "coAnalysis" not in payload


if __name__ == "__main__":
    test_all_triangles()
    test_severity_max_wins_regardless_of_order()
    test_manual_analysis()
    print("Aggregator tests passed!")
