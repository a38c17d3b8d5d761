import sys
import os
import math

import pytest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from trafocore.engines import aggregator, duval
from trafocore.models.schemas import (
    GasConcentration, Severity, Triangle1Fault, Triangle4Fault, Triangle5Fault, TriangleMethod,
)
from trafocore.utils.errors import InvalidReadingError

# (CH4, C2H4, C2H2) -> fault
TRIANGLE_1_CASES = [
    ((90, 5, 5), "PD"),
    ((70, 30, 0), "T2"),
    ((72, 25, 3), "T2"),
    ((76, 24, 0), "T1"),
    ((88, 10, 2), "T1"),
    ((80, 15, 5), "T3"),      # CH4 <= 85 with 9 < C2H4 <= 23
    ((60, 30, 10), "T2"),     # C2H2 <= 13, so not a discharge
    ((70, 10, 20), "D1"),
    ((40, 40, 20), "D2"),
    ((50, 5, 45), "DT"),
]

# (H2, CH4, C2H6) -> fault
TRIANGLE_4_CASES = [
    ((60, 20, 20), "PD"),
    ((60, 10, 30), "ND"),
    ((10, 45, 45), "C"),
    ((10, 5, 85), "S"),
    ((10, 70, 20), "DT"),
    ((30, 50, 20), "D2"),
]

# (CH4, C2H4, C2H6) -> fault
TRIANGLE_5_CASES = [
    ((30, 60, 10), "T2"),
    ((10, 80, 10), "T3"),
    ((20, 10, 70), "S"),
    ((90, 5, 5), "O"),
    ((40, 30, 30), "ND"),
]


@pytest.mark.parametrize("pcts,expected", TRIANGLE_1_CASES)
def test_triangle_1_zones(pcts, expected):
    fault = duval.classify(1, *pcts)
    assert isinstance(fault, Triangle1Fault)
    assert fault.value == expected


@pytest.mark.parametrize("pcts,expected", TRIANGLE_4_CASES)
def test_triangle_4_zones(pcts, expected):
    fault = duval.classify(4, *pcts)
    assert isinstance(fault, Triangle4Fault)
    assert fault.value == expected


@pytest.mark.parametrize("pcts,expected", TRIANGLE_5_CASES)
def test_triangle_5_zones(pcts, expected):
    fault = duval.classify(5, *pcts)
    assert isinstance(fault, Triangle5Fault)
    assert fault.value == expected


def test_c2h2_threshold_is_strict():
    # Exactly 13% C2H2 stays out of the discharge branch
    assert duval.classify(1, 60, 27, 13.0) == Triangle1Fault.T2
    assert duval.classify(1, 60, 26.99, 13.01) == Triangle1Fault.D2


def test_c2h4_thresholds_are_strict():
    assert duval.classify(1, 91, 9.0, 0) == Triangle1Fault.PD
    assert duval.classify(1, 77, 23.0, 0) == Triangle1Fault.T3
    assert duval.classify(1, 75.0, 25.0, 0) == Triangle1Fault.T2


def test_triangle_5_corona_branch_kept():
    # Only reachable with an unnormalized triple
    assert duval.classify(5, 45, 0, 65) == Triangle5Fault.C


def test_every_list_ends_in_catch_all():
    for zones in duval.ZONES.values():
        assert zones[-1].matches(0, 0, 0)


def test_classification_is_total_on_grid():
    for method in TriangleMethod:
        for p1 in range(0, 101, 5):
            for p2 in range(0, 101 - p1, 5):
                p3 = 100 - p1 - p2
                assert duval.classify(method, p1, p2, p3) is not None


def test_unknown_triangle_raises():
    with pytest.raises(ValueError):
        duval.classify(3, 10, 10, 80)


def test_analyze_triangle_result():
    gases = GasConcentration(ch4=90, c2h4=5, c2h2=5)
    result = duval.analyze_triangle_1(gases)

    assert result.fault_type == Triangle1Fault.PD
    assert result.confidence == duval.COMPUTED_CONFIDENCE
    assert result.gas_ratios == pytest.approx((90, 5, 5))
    assert result.coordinates.x == pytest.approx(50)
    assert result.coordinates.y == pytest.approx(math.sqrt(3) / 2 * 90)

    payload = result.to_dict()
    assert payload["triangleMethod"] == 1
    assert payload["faultType"] == "PD"
    assert set(payload["gasRatios"]) == {"gas1", "gas2", "gas3"}


def test_analyze_triangle_without_gases_is_none():
    assert duval.analyze_triangle_4(GasConcentration()) is None
    assert duval.analyze_triangle_5(GasConcentration(h2=100)) is None


def test_analyze_is_idempotent():
    gases = GasConcentration(h2=50, ch4=100, c2h6=20, c2h4=30, c2h2=5)
    for method in TriangleMethod:
        assert duval.analyze_triangle(method, gases) == duval.analyze_triangle(method, gases)


def test_parse_fault():
    assert duval.parse_fault(4, "pd") == Triangle4Fault.PD
    assert duval.parse_fault(1, Triangle1Fault.T3) == Triangle1Fault.T3

    with pytest.raises(InvalidReadingError):
        duval.parse_fault(5, "D1")


def test_zone_severity_is_single_source():
    engine = aggregator.DGAEngine()
    for zones in duval.ZONES.values():
        for zone in zones:
            assert duval.FAULT_SEVERITY[zone.code.value] == zone.severity, zone.code.value
            assert engine.fault_severity(zone.code) == zone.severity
    assert engine.fault_severity("NORMAL") == Severity.LOW


def test_zone_descriptions():
    t1 = duval.zone_descriptions(1)
    assert set(t1) == {"PD", "D1", "D2", "T1", "T2", "T3", "DT"}
    # Both Triangle 1 T1 regions are listed
    assert "CH4 > 75%" in t1["T1"] and "CH4 > 85%" in t1["T1"]
    assert duval.zone_descriptions(5)["C"].startswith("Corona")


if __name__ == "__main__":
    for pcts, expected in TRIANGLE_1_CASES:
        print(f"Triangle 1 {pcts} -> {duval.classify(1, *pcts).value} (expected {expected})")
    test_c2h2_threshold_is_strict()
    test_analyze_triangle_result()
    print("Duval engine tests passed!")
