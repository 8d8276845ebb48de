# src/basitkargo_bridge/io/report.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import pandas as pd

REPORT_PREFIX = "backfill_"
SUMMARY_SHEET = "Summary"
FAILED_SHEET = "Failed"
FAILED_COLUMNS = ["id", "msg"]


def default_report_path(summary: Mapping[str, Any], directory: Path | str = ".") -> Path:
    """backfill_<start>.xlsx, or backfill_<start>_<end>.xlsx for multi-day runs."""
    start = str(summary.get("startDate") or "")
    end = str(summary.get("endDate") or start)
    stem = REPORT_PREFIX + (start if end == start else f"{start}_{end}")
    return Path(directory) / f"{stem}.xlsx"


def write_backfill_report(summary: Mapping[str, Any], path: Path | str) -> Path:
    """
    Write a backfill summary as a workbook with two sheets:
      - Summary: one row of run parameters and counts
      - Failed:  one row per failed BasitKargo order (id, msg)
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    summary_row = {
        "startDate": summary.get("startDate", ""),
        "endDate": summary.get("endDate", ""),
        "statusList": ",".join(summary.get("statusList") or []),
        "pages": summary.get("pages", 0),
        "doneCount": summary.get("doneCount", 0),
        "skippedCount": summary.get("skippedCount", 0),
        "failedCount": summary.get("failedCount", 0),
    }
    df_summary = pd.DataFrame([summary_row])
    df_failed = pd.DataFrame(list(summary.get("failed") or []), columns=FAILED_COLUMNS)
    df_failed = df_failed.astype("string").fillna("")

    with pd.ExcelWriter(path, engine="openpyxl") as xw:
        df_summary.to_excel(xw, sheet_name=SUMMARY_SHEET, index=False)
        df_failed.to_excel(xw, sheet_name=FAILED_SHEET, index=False)
    return path
