import sys
import os

import pytest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from trafocore.calculators.co_level import analyze_co_level, co_severity
from trafocore.models.schemas import COSeverity
from trafocore.utils.errors import InvalidReadingError


def test_severity_bands():
    assert co_severity(0) == COSeverity.LOW
    assert co_severity(499.99) == COSeverity.LOW
    assert co_severity(500) == COSeverity.MEDIUM
    assert co_severity(600) == COSeverity.MEDIUM
    assert co_severity(600.01) == COSeverity.HIGH


def test_resampling_interval():
    assert analyze_co_level(100).resampling_interval == "4-8 months"
    assert analyze_co_level(550).resampling_interval == "2-4 months"
    assert analyze_co_level(900).resampling_interval == "1-2 months"


def test_result_contents():
    result = analyze_co_level(550)
    print(result.to_dict())

    assert result.description == "CO (Carbon Monoxide) MEDIUM"
    assert result.recommendations[0] == "Continue Operation"
    assert "Medium limit" in result.recommendations[1]
    assert result.to_dict()["severity"] == "MEDIUM"


def test_negative_raises():
    with pytest.raises(InvalidReadingError):
        analyze_co_level(-1)
    with pytest.raises(InvalidReadingError):
        analyze_co_level(None)


if __name__ == "__main__":
    test_severity_bands()
    test_result_contents()
    print("CO level tests passed!")
