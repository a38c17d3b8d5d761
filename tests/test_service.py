import sys
import os
import datetime
from io import StringIO
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from apps.service import DiagnosticsService
from database.history_store import InMemoryHistoryStore
from trafocore.utils import report_generator
from trafocore.utils.errors import InvalidReadingError

CSV_DATA = """idTrafo,samplingDate,h2,ch4,c2h6,c2h4,c2h2,co
TR-01,2024-05-01,50,100,20,30,5,550
TR-02,2024-05-02,0,10,50,0,0,
TR-03,2024-05-03,abc,10,0,0,0,
"""


@pytest.fixture
def service():
    return DiagnosticsService(InMemoryHistoryStore(), MagicMock())


def test_run_dga_saves_and_notifies(service):
    report = service.run_dga({"CH4": 10, "C2H4": 30, "C2H2": 60}, {"idTrafo": "TR-01"})

    assert report["faultTypes"] == ["D2"]
    assert service.get_entry(report["_id"])["header"]["idTrafo"] == "TR-01"
    service.notifier.notify.assert_called_once()
    assert service.notifier.notify.call_args[0][1] == "success"


def test_run_dga_without_saving(service):
    service.run_dga({"ch4": 10}, save=False)
    assert service.history() == []


def test_run_manual(service):
    report = service.run_manual({"1": "T2", "4": "PD"})
    assert report["method"] == "manual"
    assert report["faultTypes"] == ["T2", "PD"]
    assert report["result"]["triangle1"]["confidence"] == 1.0


def test_run_manual_requires_a_selection(service):
    with pytest.raises(InvalidReadingError):
        service.run_manual({"1": None, "4": ""})
    with pytest.raises(InvalidReadingError):
        service.run_manual({"5": "D1"})


def test_run_csv_collects_row_errors(service):
    batch = service.run_csv(StringIO(CSV_DATA))
    print(batch["errors"])

    assert batch["processed"] == 2
    assert batch["reports"][0]["header"]["idTrafo"] == "TR-01"
    assert batch["reports"][0]["result"]["coAnalysis"]["severity"] == "MEDIUM"
    assert batch["reports"][1]["faultTypes"] == ["PD", "S"]
    assert batch["errors"][0]["row"] == 3
    assert "h2" in batch["errors"][0]["message"]
    assert service.notifier.notify.call_args[0][1] == "warning"
    assert len(service.history(kind="dga")) == 2


def test_run_csv_header_only(service):
    with pytest.raises(InvalidReadingError):
        service.run_csv(StringIO("h2,ch4\n"))


def test_run_breakdown_voltage(service):
    report = service.run_breakdown_voltage([55, 56, 54, 55, 57, 53], "A", {"idTrafo": "TR-05"})

    assert report["kind"] == "bdv"
    assert report["result"]["result"] == "fair"
    assert report["result"]["idTrafo"] == "TR-05"
    assert service.history(kind="bdv")[0]["_id"] == report["_id"]


def test_history_delete_and_pdf(service):
    dga = service.run_dga({"h2": 100, "ch4": 10, "c2h6": 5})
    bdv = service.run_breakdown_voltage([45] * 6, "B")

    assert service.export_pdf(dga["_id"]).startswith(b"%PDF")
    assert service.export_pdf(bdv["_id"]).startswith(b"%PDF")
    assert service.export_pdf("missing") is None

    assert service.delete_entry(dga["_id"]) is True
    assert service.delete_entry(dga["_id"]) is False
    assert [e["_id"] for e in service.history()] == [bdv["_id"]]


def test_run_csv_stores_every_row_in_one_clock_tick(service, monkeypatch):
    fixed = datetime.datetime(2024, 5, 1, 10, 0, 0, 123456)

    class FrozenDatetime(datetime.datetime):
        @classmethod
        def now(cls, tz=None):
            return fixed

    monkeypatch.setattr(report_generator, "datetime", SimpleNamespace(datetime=FrozenDatetime))
    csv = "h2,ch4,c2h6\n60,20,20\n10,5,85\n0,10,50\n"
    batch = service.run_csv(StringIO(csv))

    ids = [r["_id"] for r in batch["reports"]]
    assert batch["processed"] == 3
    assert len(set(ids)) == 3
    assert len(service.history()) == 3


if __name__ == "__main__":
    svc = DiagnosticsService(InMemoryHistoryStore(), MagicMock())
    test_run_csv_collects_row_errors(svc)
    print("Service tests passed!")
