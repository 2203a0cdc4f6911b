"""
csv_export.py – Build the downloadable CSV report for one analysed bill.

Layout
------
    Categoria,Parametro,Valore,Unita
    Generale,...            (supplier, billing period)
    KPI Unitario,...        (4 rows: raw energy, general charges, network, fixed fee)
    Annuale,...             (2 rows: annual consumption, estimated spend)
    <blank>
    Storico Mese,Consumo Totale,F1,F2,F3
    <one row per history month>

Bands missing from a history month are written as 0.
"""
from __future__ import annotations

import csv
import io
import re
from typing import Any

from src.constants import (
    CSV_FILENAME_PREFIX,
    CSV_HEADER,
    CSV_HISTORY_HEADER,
    UNIT_EURO,
    UNIT_EURO_PER_MONTH,
)
from src.schemas import BillData


def _cell(value: Any) -> Any:
    """Integral floats print without the trailing ``.0``; None prints empty."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def build_csv_rows(bill: BillData) -> list[list[Any]]:
    """Return the report as a list of rows (lists of cells)."""
    unit_price = bill.unit_price_label
    rows: list[list[Any]] = [
        list(CSV_HEADER),
        ["Generale", "Fornitore", bill.fornitore, ""],
        ["Generale", "Periodo", bill.periodo_fatturazione, ""],
        ["KPI Unitario", "Materia Prima", bill.prezzo_materia_prima_unitario, unit_price],
        ["KPI Unitario", "Oneri Generali", bill.oneri_generali_unitario, unit_price],
        ["KPI Unitario", "Spese Rete", bill.spese_rete_unitario, unit_price],
        ["KPI Unitario", "Quota Fissa", bill.quota_fissa_mensile, UNIT_EURO_PER_MONTH],
        ["Annuale", "Consumo Totale", bill.consumo_annuo_totale, bill.unit_label],
        ["Annuale", "Spesa Stimata", bill.spesa_totale_annua_stima, UNIT_EURO],
        [],
        list(CSV_HISTORY_HEADER),
    ]
    for item in bill.storico_consumi:
        rows.append([item.mese, item.valore, item.f1 or 0, item.f2 or 0, item.f3 or 0])
    return [[_cell(c) for c in row] for row in rows]


def render_csv(bill: BillData) -> str:
    """Serialise :func:`build_csv_rows` as comma-separated text (``\\n`` line ends)."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerows(build_csv_rows(bill))
    return buf.getvalue()


def export_filename(fornitore: str) -> str:
    """File name for the report, e.g. ``Analisi_Dettagliata_Enel_Energia.csv``."""
    name = re.sub(r"\s+", "_", fornitore.strip())
    return f"{CSV_FILENAME_PREFIX}{name}.csv"
