"""
Maintenance Recommendation Agent
================================
Static knowledge base of maintenance actions per fault code, plus the
breakdown-voltage results (good / fair / poor) and the NORMAL condition.

The table is a process-wide constant; ``resolve`` is the only lookup.
"""

import logging
from typing import Dict, Iterable, List, Optional

from trafocore.models.schemas import NORMAL, RecommendationRecord, fault_code

logger = logging.getLogger(__name__)

PRIORITY_LEVELS = ("low", "medium", "high", "urgent")

# =========================
# DGA FAULT KNOWLEDGE BASE
# =========================
RECOMMENDATIONS: Dict[str, RecommendationRecord] = {
    # --- Triangle 1 ---
    "PD": RecommendationRecord(
        fault_type="PD",
        description="Partial Discharge",
        corrective_actions=(
            "Measure partial discharge periodically (every 6-12 months) with a standard PD detector",
            "Prefer simple non-invasive methods such as ultrasonic or TEV (Transient Earth Voltage) measurement",
            "Visually inspect gas cavities and solid insulation for physical damage, corrosion or leaks",
            "Repair or replace cracked or damaged insulators, as damaged insulation can initiate partial discharge",
            "Check insulating gas pressure regularly for any significant drop (2 bar)",
            "Keep the transformer and insulation space free of excess humidity (30-40 C)",
            "Check the transformer operating temperature (60-65 C) stays within safe limits",
        ),
        preventive_actions=(
            "Trend PD measurements between DGA samples",
            "Keep bushings and terminals clean and dry",
        ),
        priority="medium",
    ),
    "D1": RecommendationRecord(
        fault_type="D1",
        description="Low Energy Discharge",
        corrective_actions=(
            "Run DGA routinely, tracking methane (CH4), ethylene (C2H4) and acetylene (C2H2)",
            "Also check temperature, oil leaks, tank cleanliness and the condition of busbars and bushings visually",
            "Clean insulators and bushings of dust, carbon and arcing residue",
            "Repair or replace insulation showing degradation or traces of light arcing",
            "Tighten electrical connections so no terminal, bolt or cable joint is loose",
            "Verify the transformer grounding to limit flashover potential",
            "Test oil breakdown voltage periodically",
            "Replace the insulating oil if its quality remains poor after filtration",
        ),
        preventive_actions=(
            "Include bushing and terminal inspection in every maintenance round",
            "Keep a breakdown voltage trend alongside the DGA trend",
        ),
        priority="high",
    ),
    "D2": RecommendationRecord(
        fault_type="D2",
        description="High Energy Discharge",
        corrective_actions=(
            "Increase DGA frequency (every 2-4 months) to catch sharp rises in discharge gases, especially C2H2",
            "Investigate in depth as soon as D2 gas concentrations increase",
            "Use infrared thermography to detect early hotspots caused by arcing",
            "Perform a controlled shutdown and open the main cover for internal visual inspection",
            "Replace or recondition paper and oil insulation showing severe damage",
            "Repair loose or burnt terminals and connections",
            "Clean carbon, debris and metal particles produced by the discharge",
            "Test oil breakdown voltage per IEC 60156",
            "Replace the oil immediately if it has turned dark from arcing decomposition",
            "Verify the cooling system (radiators, fans, oil circulation) works properly",
        ),
        preventive_actions=(
            "Confirm Buchholz and pressure relief protection settings",
            "Plan an outage window for repeat internal inspection",
        ),
        priority="urgent",
    ),
    "T1": RecommendationRecord(
        fault_type="T1",
        description="Thermal Fault < 300°C",
        corrective_actions=(
            "Monitor dissolved gases routinely and analyse them with the Duval Triangle method",
            "Keep operating temperature within normal limits and check radiators, fans and oil circulation",
            "Inspect and clean terminals, bushings and joints for loose contacts",
            "Test and maintain the insulating oil with breakdown voltage tests and filtration",
            "Make sure grounding and protection systems work to avoid secondary electrical faults",
            "Review transformer loading and avoid overloads that raise operating temperature",
            "Increase test frequency and trend the results so the fault does not progress",
            "Schedule preventive maintenance covering DGA, visual inspection, insulation tests and cooling",
        ),
        preventive_actions=(
            "Trend top-oil and winding temperatures against load",
        ),
        priority="medium",
    ),
    "T2": RecommendationRecord(
        fault_type="T2",
        description="Thermal Fault 300-700°C",
        corrective_actions=(
            "Monitor and analyse dissolved gases regularly with the Duval Triangle method",
            "Evaluate and optimise cooling: radiators, fans and oil circulation",
            "Test insulating oil quality periodically, including breakdown voltage, and filter or replace the oil",
            "Inspect terminals, busbars and electrical joints for loose contacts, dirt or oxidation",
            "Tighten mechanical and electrical joints routinely to prevent hotspots",
            "Keep transformer load within its design capacity",
            "Repair or replace insulation components damaged by heating",
            "Make sure grounding and transformer protection work properly",
            "Increase testing and inspection frequency if T2 gases keep rising",
        ),
        preventive_actions=(
            "Run an infrared survey of external connections each season",
        ),
        priority="high",
    ),
    "T3": RecommendationRecord(
        fault_type="T3",
        description="Thermal Fault > 700°C",
        corrective_actions=(
            "Carry out a full internal inspection soon after a high-temperature thermal fault is detected",
            "Perform a controlled shutdown as soon as possible to prevent further damage",
            "Replace or recondition internal insulation badly degraded by overheating",
            "Inspect and replace the insulating oil completely, as it may be seriously degraded",
            "Check the cooling system and make sure it works properly",
            "Repair electrical connections and terminals damaged by hotspots",
            "Run DGA more frequently and more carefully from now on",
            "Make sure transformer protection (relays, Buchholz relay, pressure protection) works",
            "Review operating load and plan a replacement or upgrade if needed",
            "Document all maintenance actions, inspection results and DGA conditions",
        ),
        preventive_actions=(
            "Review protection trip settings after repair",
            "Keep spare insulation material and oil on hand",
        ),
        priority="urgent",
    ),
    "DT": RecommendationRecord(
        fault_type="DT",
        description="Discharge With Thermal Component",
        corrective_actions=(
            "Review load, oil temperature and winding temperature history for overloads or excess temperature",
            "Check for sudden load surges or abnormal temperatures in recent periods",
            "Inspect the transformer thoroughly, especially solid insulation and oil",
            "Test oil quality comprehensively (tan delta, water content, acidity and other contaminants)",
            "Repair or replace insulation in areas suspected of discharge with thermal damage",
            "Treat or replace the oil (degassing, filtering or replacement) to remove contaminants",
            "Improve cooling by repairing the cooling system or adding extra cooling",
            "Reduce operating load where possible to avoid further heating",
            "Increase DGA monitoring to every 2-4 months to follow gas development",
        ),
        preventive_actions=(
            "Correlate DGA samples with load records",
        ),
        priority="high",
    ),
    # --- Triangle 4 ---
    "S": RecommendationRecord(
        fault_type="S",
        description="Stray Gassing",
        corrective_actions=(
            "Review load, oil and winding temperature history, as stray gassing often follows temperature or load swings",
            "Check for light overloads or high hotspot temperatures with no direct damage",
            "Inspect the transformer for mild thermal degradation, dirt or leaking seals",
            "Test oil quality (tan delta, water content) to see whether the oil is ageing or oxidising",
            "Degas the oil when gas levels approach operating limits",
            "Filter the oil to slow ageing and reduce gas release",
            "Add cooling if operating temperature is locally too high",
            "Run DGA every 3-6 months to confirm the gas pattern stays stable",
        ),
        preventive_actions=(
            "Record oil brand and batch for stray gassing comparison",
        ),
        priority="low",
    ),
    "C": RecommendationRecord(
        fault_type="C",
        description="Corona",
        corrective_actions=(
            "Monitor DGA routinely with the Duval Triangle method to detect gases typical of corona",
            "Inspect and clean insulator, bushing and terminal surfaces periodically",
            "Check and tighten electrical connections to avoid loose contacts",
            "Improve oil quality with breakdown voltage testing and filtration every 3-6 months",
            "Keep the surroundings free of pollutants and high humidity",
            "Run scheduled preventive maintenance with a 3-6 month monitoring interval",
            "Monitor more often if the Duval Triangle trend shows rising partial discharge",
        ),
        preventive_actions=(
            "Check paper insulation condition at the next outage",
        ),
        priority="medium",
    ),
    "ND": RecommendationRecord(
        fault_type="ND",
        description="Normal Degradation",
        corrective_actions=(
            "Resample periodically to follow dissolved gas development in the oil",
            "CO LOW: resample every 4-8 months",
            "CO MEDIUM: resample every 2-4 months",
            "CO HIGH: resample every 1-2 months",
            "Monitor the general condition of the transformer routinely",
            "Carry out preventive maintenance on the normal schedule",
        ),
        preventive_actions=(
            "Keep DGA history for trend analysis",
        ),
        priority="low",
    ),
    # --- Triangle 5 ---
    "O": RecommendationRecord(
        fault_type="O",
        description="Overheating < 200°C",
        corrective_actions=(
            "Monitor transformer operating temperature continuously",
            "Check the cooling and ventilation system",
            "Evaluate operating load and heat distribution",
            "Inspect electrical connections and contacts",
            "Run DGA periodically for early detection of rising temperature",
        ),
        preventive_actions=(
            "Keep radiators and fans clean",
        ),
        priority="medium",
    ),
    NORMAL: RecommendationRecord(
        fault_type=NORMAL,
        description="Normal Condition",
        corrective_actions=(
            "Resample periodically to follow dissolved gas development in the oil",
            "Run routine DGA on the standard schedule",
            "Carry out periodic preventive maintenance per procedure",
            "Document the normal condition for trend analysis",
        ),
        priority="low",
    ),
    # =========================
    # BREAKDOWN VOLTAGE RESULTS
    # =========================
    "good": RecommendationRecord(
        fault_type="good",
        description="Breakdown Voltage Good",
        corrective_actions=(
            "GOOD: resample every 6-12 months to monitor breakdown voltage, and purify or filter the oil "
            "to improve its breakdown voltage",
        ),
        priority="low",
    ),
    "fair": RecommendationRecord(
        fault_type="fair",
        description="Breakdown Voltage Fair",
        corrective_actions=(
            "FAIR: resample every 3-6 months to monitor breakdown voltage, and purify or filter the oil "
            "to improve its breakdown voltage",
        ),
        priority="medium",
    ),
    "poor": RecommendationRecord(
        fault_type="poor",
        description="Breakdown Voltage Poor",
        corrective_actions=(
            "POOR: filter the oil to improve its breakdown voltage and take a DGA sample to identify "
            "active gases dissolved in the transformer",
        ),
        priority="high",
    ),
}


def resolve(code) -> Optional[RecommendationRecord]:
    """Recommendation for a fault code or BDV result; None when unknown."""
    key = fault_code(code)
    record = RECOMMENDATIONS.get(key)
    if record is None:
        logger.debug("No recommendation entry for %r", key)
    return record


def resolve_many(codes: Iterable) -> List[RecommendationRecord]:
    """Resolve each distinct code in order, skipping unknown ones."""
    seen = set()
    records = []
    for code in codes:
        key = fault_code(code)
        if key in seen:
            continue
        seen.add(key)
        record = resolve(key)
        if record is not None:
            records.append(record)
    return records


def priority_of(code) -> str:
    """Maintenance priority of a code, ``low`` when unknown."""
    record = resolve(code)
    return record.priority if record else "low"
