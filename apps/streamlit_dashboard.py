import streamlit as st
import pandas as pd
import os
import json
import sys

# Add project root to sys.path to allow importing from trafocore
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Load environment variables
from dotenv import load_dotenv
load_dotenv()

from apps.service import DiagnosticsService
from database.history_store import get_history_store, history_to_dataframe
from trafocore.agents.plotting import create_duval_triangle_plot, create_bdv_plot
from trafocore.engines.breakdown_voltage import TRANSFORMER_CLASSES, thresholds_for
from trafocore.models.schemas import (
    FAULT_ENUMS, BreakdownResult, BreakdownVoltageReading, FaultDetectionResult,
    Point, TriangleMethod,
)
from trafocore.utils.errors import DiagnosticsError

# --- Configuration & CSS ---
st.set_page_config(page_title="Transformer Oil Diagnostics", page_icon="⚡", layout="wide")

GAS_FIELDS = [
    ("h2", "H2 (ppm)"), ("ch4", "CH4 (ppm)"), ("c2h6", "C2H6 (ppm)"),
    ("c2h4", "C2H4 (ppm)"), ("c2h2", "C2H2 (ppm)"), ("co", "CO (ppm)"),
    ("co2", "CO2 (ppm)"), ("o2", "O2 (ppm)"), ("n2", "N2 (ppm)"),
]

SEVERITY_ICONS = {"critical": "🔴", "high": "🟠", "medium": "🟡", "low": "🟢"}


class StreamlitNotifier:
    """Shows service notifications as toasts."""

    ICONS = {"success": "✅", "info": "ℹ️", "warning": "⚠️", "error": "❌"}

    def notify(self, message, level="info"):
        st.toast(message, icon=self.ICONS.get(level, "ℹ️"))


@st.cache_resource
def get_service():
    return DiagnosticsService(get_history_store(), StreamlitNotifier())


def load_css():
    st.markdown("""
        <style>
        html, body, [class*="css"] {
            font-family: 'Segoe UI', Roboto, Helvetica, Arial, sans-serif;
        }
        h1, h2, h3 {
            color: #2c3e50;
            font-weight: 600;
        }
        [data-testid="stMetricValue"] {
            font-size: 2rem;
            color: #2980b9;
        }
        section[data-testid="stSidebar"] {
            background-color: #f8f9fa;
        }
        </style>
    """, unsafe_allow_html=True)


def header_inputs(prefix):
    with st.expander("Report Header"):
        c1, c2, c3 = st.columns(3)
        return {
            "idTrafo": c1.text_input("Transformer ID", key=f"{prefix}_id"),
            "samplingDate": c2.text_input("Sampling Date", key=f"{prefix}_date"),
            "serialNo": c3.text_input("Serial No.", key=f"{prefix}_serial"),
            "powerRating": c1.text_input("Power Rating", key=f"{prefix}_power"),
            "voltageRatio": c2.text_input("Voltage Ratio", key=f"{prefix}_ratio"),
            "samplingPoint": c3.text_input("Sampling Point", key=f"{prefix}_point"),
        }


def _triangle_result(item):
    """Rebuild a FaultDetectionResult from its report dict for plotting."""
    coords = item.get("coordinates")
    ratios = item.get("gasRatios", {})
    method = TriangleMethod(item["triangleMethod"])
    return FaultDetectionResult(
        triangle_method=method,
        fault_type=FAULT_ENUMS[method](item["faultType"]),
        confidence=item["confidence"],
        coordinates=Point(**coords) if coords else None,
        gas_ratios=(ratios.get("gas1", 0.0), ratios.get("gas2", 0.0), ratios.get("gas3", 0.0)),
    )


def show_dga_report(report):
    result = report["result"]
    severity = result["severity"]

    m1, m2, m3 = st.columns(3)
    m1.metric("Severity", f"{SEVERITY_ICONS.get(severity, '')} {severity.upper()}")
    m2.metric("Detected Faults", ", ".join(report["faultTypes"]) or "NORMAL")
    co = result.get("coAnalysis")
    m3.metric("CO Level", f"{co['coLevel']:g} ppm" if co else "-", delta=co["severity"] if co else None,
              delta_color="off")

    if severity in ("critical", "high"):
        st.error(result["overallRecommendation"])
    else:
        st.success(result["overallRecommendation"])

    cols = st.columns(3)
    for col, key in zip(cols, ("triangle1", "triangle4", "triangle5")):
        item = result.get(key)
        with col:
            if item is None:
                st.caption(f"{key.replace('triangle', 'Triangle ')}: not evaluated")
                continue
            fig = create_duval_triangle_plot(item["triangleMethod"], _triangle_result(item))
            st.plotly_chart(fig, width='stretch')

    st.subheader("🛠️ Maintenance Recommendations")
    for rec in result["recommendations"]:
        with st.expander(f"**{rec['faultType']}** - {rec['description']} | Priority: {rec['priority']}",
                         expanded=(rec["priority"] == "urgent")):
            for action in rec["correctiveActions"]:
                st.markdown(f"- {action}")
            if rec["preventiveActions"]:
                st.markdown("**Preventive**")
                for action in rec["preventiveActions"]:
                    st.markdown(f"- {action}")

    if co:
        with st.expander("Carbon Monoxide Analysis"):
            st.write(co["description"])
            for line in co["recommendations"]:
                st.markdown(f"- {line}")

    download_buttons(report)


def download_buttons(report):
    service = get_service()
    c1, c2 = st.columns(2)
    with c1:
        st.download_button(
            label="📥 Download JSON Report",
            data=json.dumps(report, indent=2, default=str),
            file_name=f"{report['_id']}.json",
            mime="application/json",
            key=f"json_{report['_id']}",
        )
    with c2:
        pdf = service.export_pdf(report["_id"])
        if pdf:
            st.download_button(
                label="📄 Download PDF Report",
                data=pdf,
                file_name=f"{report['_id']}.pdf",
                mime="application/pdf",
                key=f"pdf_{report['_id']}",
            )


def dga_tab():
    service = get_service()
    mode = st.radio("Input Mode", ["Gas Concentrations", "Manual Fault Selection", "CSV Batch"],
                    horizontal=True)
    header = header_inputs("dga")

    if mode == "CSV Batch":
        uploaded_file = st.file_uploader("Upload DGA Data (CSV)", type="csv")
        if uploaded_file is not None and st.button("Analyze CSV"):
            try:
                batch = service.run_csv(uploaded_file)
            except (DiagnosticsError, ValueError, pd.errors.EmptyDataError) as e:
                st.error(f"Error reading CSV file: {str(e)}")
                return
            st.dataframe(history_to_dataframe(batch["reports"]))
            for err in batch["errors"]:
                st.warning(f"Row {err['row']}: {err['message']}")
        return

    cols = st.columns(3)
    gases = {}
    for i, (key, label) in enumerate(GAS_FIELDS):
        gases[key] = cols[i % 3].number_input(label, min_value=0.0, value=0.0, key=f"gas_{key}")

    if mode == "Manual Fault Selection":
        selections = {}
        sel_cols = st.columns(3)
        for col, method in zip(sel_cols, TriangleMethod):
            options = ["-"] + [f.value for f in FAULT_ENUMS[method]]
            choice = col.selectbox(f"Triangle {int(method)}", options, key=f"manual_{int(method)}")
            selections[int(method)] = None if choice == "-" else choice
        if st.button("Save Manual Analysis"):
            try:
                report = service.run_manual(selections, gases, header)
            except (DiagnosticsError, ValueError) as e:
                st.error(str(e))
                return
            show_dga_report(report)
        return

    if st.button("Run DGA Analysis"):
        try:
            report = service.run_dga(gases, header)
        except (DiagnosticsError, ValueError) as e:
            st.error(str(e))
            return
        show_dga_report(report)


def bdv_tab():
    service = get_service()
    labels = {c["type"]: c["label"] for c in TRANSFORMER_CLASSES}
    transformer_class = st.selectbox("Transformer Class", list(labels), format_func=labels.get)
    good, fair = thresholds_for(transformer_class)
    st.caption(f"Good > {good:g} kV · Fair {fair:g}-{good:g} kV · Poor < {fair:g} kV")

    header = header_inputs("bdv")
    cols = st.columns(6)
    readings = [
        cols[i].number_input(f"Reading {i + 1} (kV)", min_value=0.0, value=0.0, key=f"bdv_{i}")
        for i in range(6)
    ]

    if st.button("Analyze Breakdown Voltage"):
        try:
            report = service.run_breakdown_voltage(readings, transformer_class, header)
        except (DiagnosticsError, ValueError) as e:
            st.error(str(e))
            return
        result = report["result"]
        m1, m2 = st.columns(2)
        m1.metric("Average", f"{result['average']:.2f} kV")
        m2.metric("Result", result["result"].upper())
        st.info(result["recommendation"])

        thresholds = result.get("thresholds")
        reading = BreakdownVoltageReading(
            transformer_class=result["transformerType"],
            dielectric_strengths=tuple(result["dielectricStrengths"]),
            average=result["average"],
            result=BreakdownResult(result["result"]),
            recommendation=result["recommendation"],
            thresholds=(thresholds["good"], thresholds["fair"]) if thresholds else None,
        )
        st.plotly_chart(create_bdv_plot(reading), width='stretch')
        download_buttons(report)


def history_tab():
    service = get_service()
    c1, c2, c3, c4 = st.columns(4)
    kind = c1.selectbox("Show", ["all", "dga", "bdv"])
    verdict = c2.selectbox("Result", ["all", "good", "fair", "poor", "critical", "high", "medium", "low"])
    sort_by = c3.selectbox("Sort by", ["date", "idTrafo", "result", "voltage"])
    order = c4.radio("Order", ["desc", "asc"], horizontal=True)
    entries = service.history(
        kind=None if kind == "all" else kind,
        result=None if verdict == "all" else verdict,
        sort_by=sort_by,
        descending=(order == "desc"),
    )
    if not entries:
        st.info("No analyses saved yet.")
        return

    st.dataframe(history_to_dataframe(entries), width='stretch')
    ids = [e["_id"] for e in entries]
    selected = st.selectbox("Entry", ids)
    entry = service.get_entry(selected)
    if entry is None:
        return

    with st.expander("View JSON"):
        st.json(entry)
    download_buttons(entry)
    if st.button("🗑️ Delete Entry"):
        service.delete_entry(selected)
        st.rerun()


def main():
    load_css()

    with st.sidebar:
        st.title("⚡ Transformer Oil Diagnostics")
        st.markdown("---")
        st.caption("Duval Triangles 1, 4, 5 · IEC 60599")
        st.caption("Breakdown Voltage · IEC 60156")

    tab_dga, tab_bdv, tab_history = st.tabs(["DGA Analysis", "Breakdown Voltage", "History"])
    with tab_dga:
        dga_tab()
    with tab_bdv:
        bdv_tab()
    with tab_history:
        history_tab()


if __name__ == "__main__":
    main()
