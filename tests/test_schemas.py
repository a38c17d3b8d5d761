import sys
import os
import dataclasses

import pytest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from trafocore.models.schemas import (
    GasConcentration, ReportHeader, Severity, Triangle4Fault, fault_code,
)
from trafocore.utils.errors import DiagnosticsError, InvalidReadingError


def test_gas_from_dict_is_case_insensitive():
    gases = GasConcentration.from_dict({"H2": 50, "ch4": "100", "C2H6": "", "CO": None,
                                        "c2h4": float("nan"), "unknown": 5})
    assert gases.h2 == 50
    assert gases.ch4 == 100
    assert gases.c2h6 == 0
    assert gases.co == 0
    assert gases.c2h4 == 0


def test_gas_from_empty():
    assert GasConcentration.from_dict(None) == GasConcentration()
    assert GasConcentration.from_dict({}) == GasConcentration()


def test_gas_rejects_bad_values():
    with pytest.raises(InvalidReadingError):
        GasConcentration.from_dict({"h2": "lots"})
    with pytest.raises(InvalidReadingError) as excinfo:
        GasConcentration(h2=-5)
    assert excinfo.value.context["field"] == "h2"
    # Still a ValueError for callers that only know the builtin
    assert isinstance(excinfo.value, ValueError)


def test_gas_is_immutable():
    gases = GasConcentration(h2=1)
    with pytest.raises(dataclasses.FrozenInstanceError):
        gases.h2 = 2


def test_derived_ratios():
    gases = GasConcentration(o2=2000, n2=50000, co=400, co2=4000).with_derived_ratios()
    assert gases.o2_n2_ratio == 0.04
    assert gases.co2_co_ratio == 10.0

    supplied = GasConcentration(o2=2000, n2=50000, o2_n2_ratio=0.5).with_derived_ratios()
    assert supplied.o2_n2_ratio == 0.5

    bare = GasConcentration(h2=10)
    assert bare.with_derived_ratios() is bare


def test_report_header_keys():
    header = ReportHeader.from_dict({"idTrafo": "TR-01", "sampling_date": "2024-05-01", "year": 2010})
    assert header.id_trafo == "TR-01"
    assert header.sampling_date == "2024-05-01"
    assert header.year == "2010"

    payload = header.to_dict()
    assert payload["idTrafo"] == "TR-01"
    assert payload["samplingDate"] == "2024-05-01"
    assert payload["oilBrand"] == ""
    assert len(payload) == 12


def test_severity_rank_order():
    ranks = [s.rank for s in (Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL)]
    assert ranks == sorted(ranks)
    assert len(set(ranks)) == 4


def test_fault_code():
    assert fault_code(Triangle4Fault.ND) == "ND"
    assert fault_code("T1") == "T1"


def test_error_to_dict():
    error = DiagnosticsError("boom", component="test", context={"a": 1})
    payload = error.to_dict()
    assert payload["error_type"] == "DiagnosticsError"
    assert payload["component"] == "test"
    assert payload["context"] == {"a": 1}
    assert "timestamp" in payload


if __name__ == "__main__":
    test_gas_from_dict_is_case_insensitive()
    test_derived_ratios()
    test_report_header_keys()
    print("Schema tests passed!")
