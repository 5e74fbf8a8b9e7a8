#!/usr/bin/env python3
from __future__ import annotations

import pandas as pd
import streamlit as st

from press_report.config import ReportConfig
from press_report.errors import ReportError
from press_report.frames import issues_frame, rows_frame
from press_report.pipeline import RequestGate, default_output_name, run_report, suggest_sheet_name
from press_report.workbook import rebuild_aggregate

PRIMARY_EXTS = ["csv", "tsv", "txt"]
SECONDARY_EXTS = ["xlsx", "xlsm", "xls"]
BASELINE_EXTS = ["xlsx"]


def ensure_state() -> None:
    st.session_state.setdefault("extract_gate", RequestGate())
    st.session_state.setdefault("source_key", None)
    st.session_state.setdefault("sheet_name", "")


def upload_key(*uploads) -> tuple:
    return tuple((item.name, item.size) if item is not None else None for item in uploads)


def refresh_extract(primary, secondary, config: ReportConfig) -> None:
    """Re-extract when the selected sources change; results of superseded selections are dropped."""
    gate: RequestGate = st.session_state["extract_gate"]
    key = upload_key(primary, secondary)
    if key == st.session_state["source_key"]:
        return
    st.session_state["source_key"] = key
    token = gate.begin()
    if primary is None:
        gate.commit(token, None)
        return
    try:
        result = run_report(
            primary.getvalue(),
            primary_name=primary.name,
            secondary=secondary.getvalue() if secondary is not None else None,
            secondary_name=secondary.name if secondary is not None else None,
            config=config,
            build=False,
        )
    except ReportError as exc:
        if gate.is_current(token):
            st.error(str(exc))
        gate.commit(token, None)
        return
    if gate.commit(token, result) and not st.session_state["sheet_name"]:
        st.session_state["sheet_name"] = suggest_sheet_name(primary.name)


def render_extract(result) -> None:
    metrics = st.columns(4)
    metrics[0].metric("Primary rows", len(result.primary.rows))
    metrics[1].metric("Secondary rows", len(result.secondary.rows) if result.secondary else 0)
    metrics[2].metric("Merged", result.merged.merged_count)
    metrics[3].metric("Issues", result.issue_count)
    st.dataframe(rows_frame(result.merged.rows), width="stretch", hide_index=True)
    if result.issue_count:
        with st.expander(f"{result.issue_count} issue(s)"):
            frames = [issues_frame(result.primary.issues, "primary"), issues_frame(result.secondary_issues, "secondary")]
            st.dataframe(pd.concat(frames, ignore_index=True), width="stretch", hide_index=True)


def report_tab(config: ReportConfig) -> None:
    primary = st.file_uploader("Primary export", type=PRIMARY_EXTS)
    secondary = st.file_uploader("Secondary export (optional)", type=SECONDARY_EXTS)
    baseline = st.file_uploader("Existing report workbook (optional)", type=BASELINE_EXTS)
    ignore_baseline = st.checkbox("Start a new workbook even if one is uploaded")

    refresh_extract(primary, secondary, config)
    result = st.session_state["extract_gate"].value
    if result is None:
        st.caption("No rows parsed yet.")
        return
    render_extract(result)

    use_baseline = baseline is not None and not ignore_baseline
    sheet_name = st.text_input("Sheet name", key="sheet_name")
    output_name = st.text_input(
        "Output file name",
        value=default_output_name(baseline.name if use_baseline else None),
    )
    if not st.button("Generate report", disabled=not (sheet_name.strip() and output_name.strip())):
        return
    try:
        built = run_report(
            primary.getvalue(),
            primary_name=primary.name,
            secondary=secondary.getvalue() if secondary is not None else None,
            secondary_name=secondary.name if secondary is not None else None,
            baseline=baseline.getvalue() if use_baseline else None,
            baseline_name=baseline.name if use_baseline else None,
            sheet_name=sheet_name,
            output_filename=output_name,
            config=config,
        )
    except ReportError as exc:
        st.error(str(exc))
        return
    report = built.report
    st.success(f"Sheet '{report.sheet_name}' built with {report.row_count} rows.")
    st.download_button("Download workbook", data=report.content, file_name=report.filename, mime=report.media_type)


def aggregate_tab(config: ReportConfig) -> None:
    workbook = st.file_uploader("Report workbook", type=BASELINE_EXTS, key="aggregate_upload")
    if workbook is None or not st.button("Rebuild LIST sheet"):
        return
    try:
        result = rebuild_aggregate(
            workbook.getvalue(),
            sheet_name=config.aggregate_sheet_name,
            data_start_row=config.data_start_row,
            options=config.build_options(),
            filename=workbook.name,
        )
    except ReportError as exc:
        st.error(str(exc))
        return
    st.success(f"{result.aggregated_row_count} rows from {result.source_sheet_count} sheets.")
    st.download_button(
        "Download workbook",
        data=result.report.content,
        file_name=result.report.filename,
        mime=result.report.media_type,
    )


def main() -> None:
    st.set_page_config(page_title="press-report", layout="wide")
    ensure_state()
    st.title("press-report")
    st.caption("Merge media monitoring exports into a coverage report workbook.")
    config = ReportConfig()
    report, aggregate = st.tabs(["Report", "Aggregate"])
    with report:
        report_tab(config)
    with aggregate:
        aggregate_tab(config)


if __name__ == "__main__":
    main()
