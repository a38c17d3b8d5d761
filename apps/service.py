"""
Analysis service shared by the FastAPI, Flask and Streamlit front ends.

Pipeline per request: parse input -> engine -> JSON report -> history -> notify.
The engine never touches storage or notification; both are injected here.
"""

import logging
import os
import sys

import numpy as np
import pandas as pd

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from database.history_store import InMemoryHistoryStore
from trafocore.engines import aggregator, breakdown_voltage
from trafocore.models.schemas import GasConcentration, ReportHeader
from trafocore.utils.errors import DiagnosticsError, InvalidReadingError
from trafocore.utils.pdf_report import build_bdv_pdf, build_dga_pdf
from trafocore.utils.report_generator import generate_bdv_json, generate_dga_json

logger = logging.getLogger(__name__)

# CSV columns that belong to the report header rather than the gas reading
CSV_HEADER_COLUMNS = {
    "idtrafo": "idTrafo",
    "id_trafo": "idTrafo",
    "samplingdate": "samplingDate",
    "sampling_date": "samplingDate",
    "serialno": "serialNo",
    "serial_no": "serialNo",
    "samplingpoint": "samplingPoint",
    "sampling_point": "samplingPoint",
}


class LoggingNotifier:
    """Notifier that writes user-facing messages to the log."""

    LEVELS = {
        "success": logging.INFO,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
    }

    def notify(self, message: str, level: str = "info"):
        logger.log(self.LEVELS.get(level, logging.INFO), message)


class DiagnosticsService:
    def __init__(self, store=None, notifier=None):
        self.store = store if store is not None else InMemoryHistoryStore()
        self.notifier = notifier if notifier is not None else LoggingNotifier()
        self.engine = aggregator.DGAEngine()

    # =========================
    # DGA
    # =========================
    def run_dga(self, gas_data, header=None, save=True):
        gases = GasConcentration.from_dict(gas_data).with_derived_ratios()
        analysis = self.engine.analyze(gases)
        report = generate_dga_json(analysis, gases, ReportHeader.from_dict(header))
        self._finish(report, save, f"DGA analysis complete: severity {analysis.severity.value}")
        return report

    def run_manual(self, selections, gas_data=None, header=None, save=True):
        if not selections or all(v in (None, "") for v in selections.values()):
            raise InvalidReadingError(
                "Select a fault for at least one triangle",
                component="manual_analysis",
            )
        gases = GasConcentration.from_dict(gas_data).with_derived_ratios() if gas_data else None
        analysis = self.engine.analyze_manual(selections, gases)
        report = generate_dga_json(
            analysis, gases or GasConcentration(), ReportHeader.from_dict(header), method="manual"
        )
        self._finish(report, save, f"Manual analysis saved: severity {analysis.severity.value}")
        return report

    def run_csv(self, source, save=True):
        """
        Analyze every row of a CSV (path or file-like) with gas columns
        (h2, ch4, c2h6, ...). Rows that fail are reported, not raised.
        """
        df = pd.read_csv(source)
        df = df.replace({np.nan: None})
        if df.empty:
            raise InvalidReadingError("CSV file contains no rows", component="csv_upload")

        reports, errors = [], []
        for idx, row in df.iterrows():
            data = {k: v for k, v in row.to_dict().items()}
            header = {}
            for col in list(data):
                key = CSV_HEADER_COLUMNS.get(str(col).strip().lower())
                if key:
                    value = data.pop(col)
                    if value is not None:
                        header[key] = str(value)
            try:
                reports.append(self.run_dga(data, header, save=save))
            except DiagnosticsError as e:
                errors.append({"row": int(idx) + 1, "message": e.message})

        level = "warning" if errors else "success"
        self.notifier.notify(f"CSV analysis: {len(reports)} row(s) analysed, {len(errors)} failed", level)
        return {"processed": len(reports), "reports": reports, "errors": errors}

    # =========================
    # Breakdown voltage
    # =========================
    def run_breakdown_voltage(self, readings, transformer_class, header=None, save=True):
        header = ReportHeader.from_dict(header)
        reading = breakdown_voltage.analyze_breakdown_voltage(
            readings, transformer_class, id_trafo=header.id_trafo
        )
        report = generate_bdv_json(reading, header)
        self._finish(report, save, f"Breakdown voltage result: {reading.result.value}")
        return report

    # =========================
    # History
    # =========================
    def history(self, kind=None, limit=100, result=None, sort_by="date", descending=True):
        """Stored reports filtered by kind and verdict (BDV result or DGA severity)."""
        return self.store.list(kind=kind, limit=limit, result=result,
                               sort_by=sort_by, descending=descending)

    def get_entry(self, entry_id):
        return self.store.get(entry_id)

    def delete_entry(self, entry_id):
        deleted = self.store.delete(entry_id)
        if deleted:
            self.notifier.notify(f"History entry {entry_id} deleted", "info")
        return deleted

    def export_pdf(self, entry_id, include_gas=True, include_recommendations=True):
        """PDF bytes for a stored entry, None when the id is unknown."""
        entry = self.store.get(entry_id)
        if entry is None:
            return None
        if entry.get("kind") == "bdv":
            return build_bdv_pdf(entry)
        return build_dga_pdf(entry, include_gas=include_gas,
                             include_recommendations=include_recommendations)

    def _finish(self, report, save, message):
        if save:
            self.store.save(report)
        self.notifier.notify(message, "success")
