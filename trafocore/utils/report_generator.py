import datetime
import uuid

from trafocore.agents.recommendation import priority_of
from trafocore.models.schemas import ReportHeader

# Gas table rows, in report order
GAS_MAPPING = [
    {"key": "h2", "name": "Hydrogen (H2)", "unit": "ppm"},
    {"key": "ch4", "name": "Methane (CH4)", "unit": "ppm"},
    {"key": "c2h6", "name": "Ethane (C2H6)", "unit": "ppm"},
    {"key": "c2h4", "name": "Ethylene (C2H4)", "unit": "ppm"},
    {"key": "c2h2", "name": "Acetylene (C2H2)", "unit": "ppm"},
    {"key": "co", "name": "Carbon Monoxide (CO)", "unit": "ppm"},
    {"key": "co2", "name": "Carbon Dioxide (CO2)", "unit": "ppm"},
    {"key": "o2", "name": "Oxygen (O2)", "unit": "ppm"},
    {"key": "n2", "name": "Nitrogen (N2)", "unit": "ppm"},
    {"key": "o2_n2_ratio", "name": "O2/N2 Ratio", "unit": ""},
    {"key": "co2_co_ratio", "name": "CO2/CO Ratio", "unit": ""},
    {"key": "gas_by_volume", "name": "Total Gas by Volume", "unit": "%"},
    {"key": "nel_oil", "name": "NEI Oil", "unit": ""},
    {"key": "nel_paper", "name": "NEI Paper", "unit": ""},
]


def _generated_id(prefix, now):
    # Unique even for reports created within the same clock tick
    return f"{prefix}_{now.strftime('%Y%m%d%H%M%S%f')}_{uuid.uuid4().hex[:12]}"


def format_gases(gases):
    """Measured gases as [{"name", "unit", "value"}], skipping unmeasured ones."""
    values = gases.to_dict()
    formatted = []
    for item in GAS_MAPPING:
        value = values.get(item["key"], 0.0)
        if value:
            formatted.append({"name": item["name"], "unit": item["unit"], "value": value})
    return formatted


def generate_dga_json(analysis, gases, header=None, method="computed"):
    """
    Builds the DGA report document stored in history and sent to clients.

    Args:
        analysis (AnalysisResult): Aggregated triangle results.
        gases (GasConcentration): The measured reading.
        header (ReportHeader, optional): Sample metadata.
        method (str): "computed" or "manual".

    Returns:
        dict: The formatted JSON report.
    """
    now = datetime.datetime.now()
    header = header or ReportHeader()
    result = analysis.to_dict()

    # Maintenance actions per detected fault, highest priority first
    order = {"urgent": 0, "high": 1, "medium": 2, "low": 3}
    maintenance_actions = sorted(
        (
            {
                "faultType": rec["faultType"],
                "title": rec["description"],
                "priority": priority_of(rec["faultType"]),
                "actions": rec["correctiveActions"],
            }
            for rec in result["recommendations"]
        ),
        key=lambda a: order.get(a["priority"], 4),
    )

    return {
        "_id": _generated_id("dga", now),
        "kind": "dga",
        "method": method,
        "createdAt": now.isoformat(),
        "header": header.to_dict(),
        "gasConcentrations": gases.to_dict(),
        "gases": format_gases(gases),
        "faultTypes": list(analysis.fault_types),
        "result": result,
        "maintenanceActions": maintenance_actions,
        "status": "completed",
    }


def generate_bdv_json(reading, header=None):
    """Builds the breakdown-voltage report document."""
    now = datetime.datetime.now()
    header = header or ReportHeader(id_trafo=reading.id_trafo)
    return {
        "_id": _generated_id("bdv", now),
        "kind": "bdv",
        "createdAt": now.isoformat(),
        "header": header.to_dict(),
        "result": reading.to_dict(),
        "status": "completed",
    }
