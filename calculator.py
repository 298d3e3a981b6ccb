#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SORA 2.5 Assessment Calculator - Streamlit app
 A) Ground risk: intrinsic GRC (Table 2) and M1(A)/M1(B)/M1(C)/M2 mitigations
 B) Air risk: initial ARC with an optional VLOS/EVLOS/DAA tactical mitigation
 C) SAIL (Table 7), containment requirement and adjacent area size
 D) OSO compliance table with gap filters and CSV export
 E) Optional JSON reference table override for alternate revisions
"""
from __future__ import annotations

import json
import logging
from typing import Optional

import numpy as np
import pandas as pd
import streamlit as st

from air_risk import TMPRSelection, suggest_initial_arc
from assessment import AssessmentInput, ContainmentSelection, evaluate
from containment import ADJACENT_AREA_FLIGHT_TIME_S
from ground_risk import MitigationSelection, classify_ua_characteristic
from oso_compliance import compliance_frame
from oso_filters import build_oso_dataframe
from sfoc import OperationParams, check_sfoc_required, mpd_requirements
from sora_tables import (
    ARC_LEVELS,
    ROBUSTNESS_LEVELS,
    SoraTables,
    TableError,
    default_tables,
)

logger = logging.getLogger(__name__)

SPEED_INPUT_MAX_MS = 250.0
OSO_STATE_PREFIX = "oso_"


def sanitize_max_speed(value: Optional[float]) -> Optional[float]:
    """Return a usable max speed in m/s, or ``None`` to use the UA class value."""

    try:
        speed = float(value) if value is not None else None
    except (TypeError, ValueError):
        return None
    if speed is None or np.isnan(speed) or speed <= 0.0:
        return None
    return float(np.clip(speed, 0.0, SPEED_INPUT_MAX_MS))


def load_uploaded_tables(raw: Optional[bytes]) -> Optional[SoraTables]:
    """Parse an uploaded JSON table set; ``None`` keeps the built-in tables."""

    if not raw:
        return None
    payload = json.loads(raw.decode("utf-8"))
    return SoraTables.from_dict(payload)


def robustness_options(key: str, tables: SoraTables) -> list[str]:
    mitigation = tables.mitigation(key)
    return list(mitigation.supported_tiers) if mitigation is not None else list(ROBUSTNESS_LEVELS)


def format_grc(value) -> str:
    return str(value) if isinstance(value, int) else "Out of scope"


# ------------------------------- Streamlit UI -------------------------------

st.set_page_config(page_title="SORA 2.5 Assessment Calculator", layout="wide")
st.title("SORA 2.5 Assessment Calculator")

with st.sidebar:
    st.header("Assessment Inputs")

    with st.expander("Reference tables", expanded=False):
        upload = st.file_uploader(
            "Alternate table set (JSON)",
            type=["json"],
            help="Load a complete alternate reference table set. Numbers are never merged with the built-in set."
        )
        tables = default_tables()
        if upload is not None:
            try:
                tables = load_uploaded_tables(upload.getvalue()) or tables
                st.success(f"Using uploaded {tables.revision} tables.")
            except (TableError, ValueError) as exc:
                logger.warning("Rejected uploaded reference tables: %s", exc)
                st.error(f"Could not load tables: {exc}")
                tables = default_tables()
        st.caption(f"Active revision: {tables.revision}")

    with st.expander("Ground Risk", expanded=True):
        population = st.selectbox(
            "Operational area population",
            tables.population_keys,
            index=tables.population_keys.index("sparsely") if "sparsely" in tables.population_keys else 0,
            format_func=lambda k: tables.population(k).label,
            help="Table 3 population density of the operational volume and ground risk buffer."
        )
        size_mode = st.radio(
            "UA characteristic",
            ["Pick class", "From dimension and speed"],
            horizontal=True,
        )
        if size_mode == "Pick class":
            ua_key = st.selectbox(
                "UA class",
                tables.ua_keys,
                format_func=lambda k: tables.ua_characteristic(k).label,
            )
            max_speed_input = st.number_input(
                "Max speed (m/s, 0 = class limit)",
                value=0.0,
                step=1.0,
                min_value=0.0,
                help="Used to size the adjacent area (3 minutes of flight)."
            )
        else:
            dimension = st.number_input("Max characteristic dimension (m)", value=1.0, step=0.5, min_value=0.0)
            max_speed_input = st.number_input("Max speed (m/s)", value=25.0, step=1.0, min_value=0.0)
            ua_key = classify_ua_characteristic(dimension, max_speed_input, tables)
            st.caption(f"Classified as {tables.ua_characteristic(ua_key).label}.")

        mitigations = {}
        for mitigation in tables.ground_mitigations:
            enabled = st.checkbox(mitigation.name, value=False, help=mitigation.notes or mitigation.description)
            robustness = None
            if enabled:
                robustness = st.selectbox(
                    f"{mitigation.key} robustness",
                    robustness_options(mitigation.key, tables),
                    key=f"mit_{mitigation.key}",
                )
            mitigations[mitigation.key] = MitigationSelection(enabled=enabled, robustness=robustness)

    with st.expander("Air Risk", expanded=True):
        use_helper = st.checkbox(
            "Suggest initial ARC from airspace",
            value=False,
            help="Coarse Figure 6 classification; review against the full decision tree."
        )
        if use_helper:
            altitude_m = st.number_input("Max altitude AGL (m)", value=120.0, step=10.0, min_value=0.0)
            airspace = st.selectbox(
                "Airspace",
                ["uncontrolled", "controlled", "mode_c_veil", "tmz", "atypical"],
            )
            airport = st.checkbox("Airport/heliport environment", value=False)
            urban = st.checkbox("Over urban area", value=False)
            initial_arc, arc_reason = suggest_initial_arc(altitude_m, airspace, airport, urban)
            st.caption(f"Suggested {initial_arc}: {arc_reason}.")
        else:
            initial_arc = st.selectbox("Initial ARC", ARC_LEVELS, index=1)

        tmpr_enabled = st.checkbox("Claim tactical mitigation (TMPR)", value=False)
        tmpr_type = None
        tmpr_robustness = None
        if tmpr_enabled:
            tmpr_type = st.selectbox(
                "TMPR type",
                [t.key for t in tables.tmpr_definitions],
                format_func=lambda k: f"{k}: {tables.tmpr(k).description}",
            )
            tmpr_robustness = st.selectbox("TMPR robustness", ROBUSTNESS_LEVELS, index=1)

    with st.expander("Containment", expanded=True):
        adjacent = st.selectbox(
            "Adjacent area population",
            tables.population_keys,
            index=tables.population_keys.index("sparsely") if "sparsely" in tables.population_keys else 0,
            format_func=lambda k: tables.population(k).label,
        )
        method_keys = [m.key for m in tables.containment_methods] or ["none"]
        containment_method = st.selectbox(
            "Containment method",
            method_keys,
            format_func=lambda k: tables.containment_method(k).label if tables.containment_method(k) else k,
        )
        containment_override = st.selectbox(
            "Declared robustness (optional)",
            ["(from method)"] + list(ROBUSTNESS_LEVELS[1:]),
        )

assessment_input = AssessmentInput(
    population_category=population,
    ua_characteristic=ua_key,
    max_speed_ms=sanitize_max_speed(max_speed_input),
    mitigations=mitigations,
    initial_arc=initial_arc,
    tmpr=TMPRSelection(enabled=tmpr_enabled, type=tmpr_type, robustness=tmpr_robustness),
    adjacent_population=adjacent,
    containment=ContainmentSelection(
        method=containment_method,
        robustness=None if containment_override == "(from method)" else containment_override,
    ),
)
for oso in tables.oso_definitions:
    declared = st.session_state.get(OSO_STATE_PREFIX + oso.id)
    if declared:
        assessment_input.set_oso(oso.id, declared)

result = evaluate(assessment_input, tables)

tabs = st.tabs(["Assessment", "OSO compliance", "SFOC"])

with tabs[0]:
    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("Intrinsic GRC", format_grc(result.intrinsic_grc))
    c2.metric("Final GRC", format_grc(result.final_grc))
    c3.metric("Initial ARC", initial_arc)
    c4.metric("Residual ARC", result.residual_arc)
    c5.metric("SAIL", result.sail or "N/A")
    st.caption(result.sail_description)

    for warning in result.warnings:
        st.warning(warning.message)

    if result.out_of_scope:
        st.error(
            "This operation is outside the SORA specific category. "
            "Route it to the certified category process."
        )
    else:
        reductions = pd.DataFrame(
            [{"Mitigation": k, "GRC reduction": v} for k, v in result.mitigation_reductions.items()]
        )
        st.markdown("**Ground mitigation contributions**")
        st.table(reductions)

        cc1, cc2, cc3 = st.columns(3)
        cc1.metric("Required containment", result.required_containment.title())
        cc2.metric("Achieved containment", result.achieved_containment.title())
        cc3.metric("Adjacent area", f"{result.adjacent_area_distance_m / 1000:,.1f} km")
        st.caption(
            f"Adjacent area extent is {ADJACENT_AREA_FLIGHT_TIME_S:.0f} s of flight at max speed, "
            "bounded to 5–35 km."
        )
        if result.containment_compliant:
            st.success("Containment requirement met.")
        else:
            st.error("Containment robustness below requirement.")

    st.download_button(
        "Download assessment (JSON)",
        json.dumps({"input": assessment_input.to_dict(), "result": result.to_dict()}, indent=2).encode("utf-8"),
        file_name="sora_assessment.json",
        mime="application/json",
    )

with tabs[1]:
    if result.oso is None:
        st.info("OSO compliance is not evaluated for out-of-scope operations.")
    else:
        summary = result.oso.summary
        o1, o2, o3, o4 = st.columns(4)
        o1.metric("Compliance", f"{summary.compliance_pct}%")
        o2.metric("Compliant", summary.compliant)
        o3.metric("Gaps", summary.non_compliant)
        o4.metric("Optional", summary.optional)

        with st.expander("Declare OSO robustness", expanded=False):
            for oso in tables.oso_definitions:
                st.selectbox(
                    f"{oso.id} ({oso.required_letter(result.sail)}) {oso.name}",
                    ROBUSTNESS_LEVELS,
                    key=OSO_STATE_PREFIX + oso.id,
                )

        st.markdown("### OSO table")
        gaps_only = st.checkbox(
            "Show gaps only",
            value=False,
            help="Restrict the table to required OSOs whose declared robustness falls short."
        )
        category_keys = [""] + [c.key for c in tables.oso_categories]
        category = st.selectbox(
            "Category",
            category_keys,
            format_func=lambda k: "All" if not k else next(c.label for c in tables.oso_categories if c.key == k),
        )
        sort_by_gap = st.checkbox("Largest gaps first", value=False)

        oso_df = build_oso_dataframe(
            compliance_frame(result.oso),
            gaps_only=gaps_only,
            category=category or None,
            sort_by_gap=sort_by_gap,
        )
        if oso_df.empty:
            st.info("No OSOs match the current filters.")
        else:
            st.dataframe(oso_df, width="stretch")

        csv_bytes = compliance_frame(result.oso).to_csv(index=False).encode("utf-8")
        st.download_button(
            "Download CSV",
            csv_bytes,
            file_name=f"sora_oso_sail_{result.sail}.csv",
            mime="text/csv",
        )

with tabs[2]:
    st.markdown("### Transport Canada SFOC check")
    s1, s2 = st.columns(2)
    with s1:
        weight = st.number_input("RPAS weight (kg)", value=25.0, step=1.0, min_value=0.0)
        altitude_ft = st.number_input("Max altitude (ft AGL)", value=400.0, step=50.0, min_value=0.0)
        controlled = st.checkbox("Controlled airspace", value=False)
    with s2:
        bvlos = st.checkbox("BVLOS", value=False)
        bvlos_type = st.selectbox("BVLOS type", ["lower_risk", "sheltered", "extended"]) if bvlos else None
        near_aerodrome = st.checkbox("Near aerodrome", value=False)
        hazardous = st.checkbox("Hazardous payload", value=False)

    decision = check_sfoc_required(
        OperationParams(
            weight_kg=weight,
            max_altitude_ft=altitude_ft,
            controlled_airspace=controlled,
            is_bvlos=bvlos,
            bvlos_type=bvlos_type,
            near_aerodrome=near_aerodrome,
            hazardous_payload=hazardous,
            population_category=population,
        )
    )
    if decision.required:
        st.warning(
            f"SFOC required ({decision.complexity} complexity, ~{decision.processing_days} days). "
            f"Contact {decision.contact_email}."
        )
        st.table(pd.DataFrame([{"Trigger": t.label, "CAR": t.car_reference} for t in decision.triggers]))
    else:
        st.success("No SFOC trigger applies.")

    if decision.requires_mpd and result.sail:
        mpd = mpd_requirements(result.sail, tables)
        st.markdown(f"**MPD expectations at {mpd['label']}**: {mpd['description']}")
        st.caption(mpd["notes"])
        if mpd["critical_osos"]:
            st.table(pd.DataFrame(mpd["critical_osos"]))
