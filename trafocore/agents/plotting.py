import plotly.graph_objects as go

from trafocore.engines import breakdown_voltage, duval, geometry
from trafocore.models.schemas import TriangleMethod

FAULT_COLORS = {
    # Triangle 1
    "PD": "#3B82F6",
    "D1": "#F59E0B",
    "D2": "#EF4444",
    "T1": "#10B981",
    "T2": "#F59E0B",
    "T3": "#DC2626",
    "DT": "#8B5CF6",
    # Triangle 4
    "S": "#06B6D4",
    "C": "#84CC16",
    "ND": "#6B7280",
    # Triangle 5
    "O": "#F97316",
    "NORMAL": "#10B981",
}

BDV_COLORS = {
    "good": "#10B981",
    "fair": "#F59E0B",
    "poor": "#EF4444",
}


def _base_layout(fig, title, height):
    fig.update_layout(
        title_text=f"<b>{title}</b>",
        height=height,
        plot_bgcolor="white",
        paper_bgcolor="white",
        font=dict(family="Segoe UI, sans-serif"),
        margin=dict(l=20, r=20, t=60, b=20),
    )


def create_duval_triangle_plot(method, result=None):
    """
    Duval triangle with zone boundaries, zone labels and (optionally) the
    measured point of a FaultDetectionResult.
    """
    method = geometry.triangle_method(method)
    info = geometry.TRIANGLE_DESCRIPTIONS[method]
    top_gas, right_gas, left_gas = info["gases"]

    fig = go.Figure()

    # Outline
    edge = geometry.outline()
    fig.add_trace(go.Scatter(
        x=[p.x for p in edge], y=[p.y for p in edge],
        mode="lines", name="Outline", line=dict(color="#2c3e50", width=2),
        hoverinfo="skip", showlegend=False,
    ))

    # Zone boundaries
    for start, end in geometry.boundary_segments(method):
        fig.add_trace(go.Scatter(
            x=[start.x, end.x], y=[start.y, end.y],
            mode="lines", line=dict(color="#7f8c8d", width=1),
            hoverinfo="skip", showlegend=False,
        ))

    # Zone labels
    labels = geometry.zone_labels(method)
    descriptions = duval.zone_descriptions(method)
    fig.add_trace(go.Scatter(
        x=[p.x for p in labels.values()], y=[p.y for p in labels.values()],
        mode="text", text=list(labels.keys()),
        textfont=dict(size=13, color=[FAULT_COLORS.get(c, "#34495e") for c in labels]),
        hovertext=[f"{c}: {descriptions[c]}" for c in labels],
        hoverinfo="text", showlegend=False,
    ))

    # Measured point
    if result is not None and result.coordinates is not None:
        g1, g2, g3 = result.gas_ratios
        fig.add_trace(go.Scatter(
            x=[result.coordinates.x], y=[result.coordinates.y],
            mode="markers", name=f"Sample ({result.code})",
            marker=dict(size=14, color=FAULT_COLORS.get(result.code, "#e74c3c"),
                        line=dict(color="black", width=1.5)),
            hovertemplate=(
                f"{top_gas}: {g1:.1f}%<br>{right_gas}: {g2:.1f}%<br>"
                f"{left_gas}: {g3:.1f}%<extra>{result.code}</extra>"
            ),
        ))

    # Vertex captions
    height = geometry.to_coordinate(100, 0, 0).y
    fig.add_annotation(x=50, y=height + 5, text=f"{top_gas} %", showarrow=False)
    fig.add_annotation(x=100, y=-5, text=f"{right_gas} %", showarrow=False)
    fig.add_annotation(x=0, y=-5, text=f"{left_gas} %", showarrow=False)

    _base_layout(fig, info["name"], 500)
    fig.update_xaxes(visible=False, range=[-10, 110])
    fig.update_yaxes(visible=False, range=[-10, height + 10], scaleanchor="x", scaleratio=1)
    return fig


def create_all_triangle_plots(analysis):
    """One figure per triangle present in an AnalysisResult."""
    figures = {}
    for method in TriangleMethod:
        result = analysis.for_triangle(method)
        if result is not None:
            figures[int(method)] = create_duval_triangle_plot(method, result)
    return figures


def create_bdv_plot(reading):
    """Bar chart of the six BDV readings with good / fair threshold lines."""
    labels = [f"#{i + 1}" for i in range(len(reading.dielectric_strengths))]
    color = BDV_COLORS.get(reading.result.value, "#3498db")

    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=labels, y=list(reading.dielectric_strengths),
        name="Dielectric Strength (kV)", marker_color=color,
    ))
    fig.add_trace(go.Scatter(
        x=labels, y=[reading.average] * len(labels),
        mode="lines", name=f"Average ({reading.average:.2f} kV)",
        line=dict(color="#2c3e50", width=2, dash="dot"),
    ))

    thresholds = reading.thresholds or breakdown_voltage.thresholds_for(reading.transformer_class)
    if thresholds:
        good, fair = thresholds
        fig.add_hline(y=good, line_dash="dash", line_color=BDV_COLORS["good"],
                      annotation_text=f"Good > {good:g} kV")
        fig.add_hline(y=fair, line_dash="dash", line_color=BDV_COLORS["poor"],
                      annotation_text=f"Poor < {fair:g} kV")

    _base_layout(fig, f"Breakdown Voltage - Class {reading.transformer_class}", 400)
    fig.update_xaxes(showgrid=True, gridwidth=1, gridcolor='#f0f0f0')
    fig.update_yaxes(title_text="kV", showgrid=True, gridwidth=1, gridcolor='#f0f0f0')
    return fig
