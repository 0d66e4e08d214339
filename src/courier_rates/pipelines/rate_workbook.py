from __future__ import annotations

import asyncio
import datetime as dt
import json
import warnings
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from openpyxl import load_workbook

from courier_rates.aggregator import RateAggregator
from courier_rates.io import schema as S
from courier_rates.models import DetailedRateRequest, RateRequest


def clean_pincode(v: Any) -> str:
    """Return a clean string pincode (no decimals/scientific) from an Excel cell."""
    if v is None or pd.isna(v):
        return ""
    s = str(v).strip()
    if s == "" or s.lower() in ("nan", "none"):
        return ""
    if s.isdigit():
        return s
    try:
        return str(int(float(s.replace(",", ""))))
    except ValueError:
        return s[:-2] if s.endswith(".0") else s


def _cell_number(v: Any) -> Optional[float]:
    if v is None:
        return None
    try:
        n = float(v)
    except (TypeError, ValueError):
        return None
    if pd.isna(n):
        return None
    return n


def _cell_text(v: Any) -> str:
    if v is None or pd.isna(v):
        return ""
    return str(v).strip()


def row_to_requests(row: dict[str, Any]) -> tuple[RateRequest, DetailedRateRequest]:
    """Build both requests for one spreadsheet row. Raises ValueError on bad input."""
    weight = _cell_number(row.get(S.COL_WEIGHT))
    if weight is None:
        raise ValueError(f"{S.COL_WEIGHT} is missing or not a number")

    request = RateRequest(
        origin_pincode=clean_pincode(row.get(S.COL_ORIGIN)),
        destination_pincode=clean_pincode(row.get(S.COL_DESTINATION)),
        weight=weight,
        length=_cell_number(row.get(S.COL_LENGTH)),
        width=_cell_number(row.get(S.COL_WIDTH)),
        height=_cell_number(row.get(S.COL_HEIGHT)),
        payment_type=_cell_text(row.get(S.COL_PAYMENT)),
        declared_value=_cell_number(row.get(S.COL_DECLARED)) or 0.0,
    )
    detailed = DetailedRateRequest.from_rate_request(
        request,
        pieces=int(_cell_number(row.get(S.COL_PIECES)) or 1),
        billing_mode=_cell_text(row.get(S.COL_BILLING)),
        shipment_status=_cell_text(row.get(S.COL_STATUS)),
    )
    return request, detailed


class RateWorkbookProcessor:
    """Quotes every shipment row of a workbook and writes a *_rates.xlsx report.

    Rows are processed one after another; inside a row the providers are
    queried concurrently by the aggregator. A bad row is reported in the
    Error column and never stops the batch.
    """

    def __init__(self, logger, aggregator: RateAggregator, *, detailed: bool = True) -> None:
        self.logger = logger
        self.aggregator = aggregator
        self.detailed = detailed

    def process(self, input_path: Path, output_path: Path) -> dict[str, Any]:
        input_path = Path(input_path)
        output_path = Path(output_path)

        if not input_path.exists():
            self.logger.error("Input file does not exist: %s", input_path)
            raise FileNotFoundError(input_path)

        df_in = self._read_input(input_path)
        missing = [c for c in S.REQUIRED_INPUT_COLUMNS if c not in df_in.columns]
        if missing:
            raise ValueError(
                f"Input workbook is missing required column(s): {', '.join(missing)}")

        shipments, rates, detailed = asyncio.run(self._quote_rows(df_in))

        now_utc = dt.datetime.now(dt.timezone.utc).isoformat()
        marker = pd.DataFrame([{
            "_rates_marker": "ok",
            "input_name": input_path.name,
            "output_name": output_path.name,
            "timestamp_utc": now_utc,
            "input_rows": len(df_in),
            "rows_with_rates": int((shipments["RateCount"] > 0).sum()) if len(shipments) else 0,
            "rows_with_errors": int((shipments["Error"] != "").sum()) if len(shipments) else 0,
            "rate_rows": len(rates),
            "detailed_rate_rows": len(detailed),
        }])

        output_path.parent.mkdir(parents=True, exist_ok=True)
        self._write_workbook(output_path, shipments, rates, detailed, marker)
        self.logger.info("Wrote rates workbook → %s", output_path)
        return {
            "output_path": str(output_path),
            "timestamp_utc": now_utc,
            "input_rows": len(df_in),
            "rate_rows": len(rates),
            "detailed_rate_rows": len(detailed),
        }

    def _read_input(self, input_path: Path) -> pd.DataFrame:
        # pincodes as text so leading zeros survive
        df_in = pd.read_excel(
            input_path,
            sheet_name=0,
            engine="openpyxl",
            dtype={S.COL_ORIGIN: "string", S.COL_DESTINATION: "string"},
        )
        self.logger.debug(
            "Opened input workbook: %s (rows=%d, cols=%d)",
            input_path.name, len(df_in), len(df_in.columns),
        )
        return df_in

    async def _quote_rows(self, df_in: pd.DataFrame) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
        summary_rows: list[dict[str, Any]] = []
        rate_rows: list[dict[str, Any]] = []
        detailed_rows: list[dict[str, Any]] = []

        for idx, row in enumerate(df_in.to_dict(orient="records"), start=1):
            ref = _cell_text(row.get(S.COL_REFERENCE)) or str(idx)
            out = dict(row)
            out.update({c: "" for c in S.OUTPUT_SUMMARY_COLUMNS})
            out["RateCount"] = 0
            out["DetailedRateCount"] = 0

            try:
                request, detailed_request = row_to_requests(row)
            except ValueError as ex:
                self.logger.warning("Row %s (%s) skipped: %s", idx, ref, ex)
                out["Error"] = str(ex)
                summary_rows.append(out)
                continue

            if self.detailed:
                rates, detailed = await asyncio.gather(
                    self.aggregator.get_all_rates(request),
                    self.aggregator.get_detailed_rates(detailed_request),
                )
            else:
                rates, detailed = await self.aggregator.get_all_rates(request), []

            out["RateCount"] = len(rates)
            out["DetailedRateCount"] = len(detailed)
            if rates:
                best = rates[0]
                out["CheapestCourier"] = best.courier_name
                out["CheapestService"] = best.service_name
                out["CheapestRate"] = best.rate
                out["Currency"] = best.currency
            elif not detailed:
                out["Error"] = "No rates found from any courier"
            summary_rows.append(out)

            for r in rates:
                d = r.to_dict()
                rate_rows.append({"Row": idx, S.COL_REFERENCE: ref, **{
                    c: d.get(c, "") for c in S.RATE_COLUMNS[2:]}})
            for r in detailed:
                d = r.to_dict()
                d["tax_total"] = r.tax_total()
                d["itemized_charges"] = json.dumps(r.itemized_charges(), sort_keys=True)
                detailed_rows.append({"Row": idx, S.COL_REFERENCE: ref, **{
                    c: d.get(c) for c in S.DETAILED_RATE_COLUMNS[2:]}})

        shipments = pd.DataFrame(summary_rows, columns=list(
            df_in.columns) + [c for c in S.OUTPUT_SUMMARY_COLUMNS if c not in df_in.columns])
        return (
            shipments,
            pd.DataFrame(rate_rows, columns=S.RATE_COLUMNS),
            pd.DataFrame(detailed_rows, columns=S.DETAILED_RATE_COLUMNS),
        )

    def _write_workbook(self, output_path: Path, shipments: pd.DataFrame, rates: pd.DataFrame, detailed: pd.DataFrame, marker: pd.DataFrame) -> None:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            with pd.ExcelWriter(output_path, engine="openpyxl", mode="w") as xw:
                shipments.to_excel(xw, sheet_name="Shipments", index=False, na_rep="")
                rates.to_excel(xw, sheet_name="Rates", index=False, na_rep="")
                detailed.to_excel(xw, sheet_name="Detailed Rates", index=False, na_rep="")
                marker.to_excel(xw, sheet_name="Marker", index=False)

        self._force_text_columns(output_path)

    def _force_text_columns(self, output_path: Path) -> None:
        """Store pincode/reference cells as Excel text so they keep leading zeros."""
        wb = load_workbook(output_path)
        for ws in wb.worksheets:
            if ws.max_row < 1:
                continue
            header = [c.value for c in ws[1]]
            for name in S.TEXT_COLUMNS:
                if name not in header:
                    continue
                col_idx = header.index(name) + 1
                for r in range(2, ws.max_row + 1):
                    c = ws.cell(row=r, column=col_idx)
                    if name != S.COL_REFERENCE:
                        c.value = clean_pincode(c.value)
                    elif c.value is not None:
                        c.value = str(c.value)
                    c.number_format = "@"
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            wb.save(output_path)
