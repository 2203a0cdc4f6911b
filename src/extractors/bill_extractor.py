"""
bill_extractor.py – Extract structured figures from an Italian energy bill via Gemini.

Prompt design
-------------
The prompt walks the model through six steps: unit rates, fixed fee, the
monthly consumption history (chart or table), the F1/F2/F3 split per month
(zero-filled when only totals are printed), normalisation to 12 months, and
the total annual spend.  The JSON shape itself is enforced by the response
schema the model was built with (see ``gemini_client.build_model``), so the
prompt does not repeat it.
"""
from __future__ import annotations

from typing import Any

from src.gemini_client import generate_with_image

# ── Prompt ────────────────────────────────────────────────────────────────────
BILL_PROMPT = """\
Analizza questa bolletta energetica italiana.
1. Estrai i KPI unitari variabili (€/kWh o €/smc).
2. Estrai la Quota Fissa mensile.
3. IDENTIFICA lo STORICO CONSUMI: cerca il grafico o la tabella dei consumi mensili dell'ultimo anno.
4. Per ogni mese dello storico, estrai se possibile il dettaglio per FASCE (F1, F2, F3). Se vedi solo il totale, metti F1/F2/F3 a 0.
5. Normalizza tutti i dati su base annua (12 mesi).
6. Calcola la spesa annua totale stimata."""


def extract_bill(model: Any, image_bytes: bytes, mime_type: str) -> str:
    """
    Ask Gemini for the structured figures of the bill in *image_bytes*.

    Parameters
    ----------
    model:
        ``GenerativeModel`` built by ``gemini_client.build_model``.
    image_bytes:
        Decoded image content.
    mime_type:
        MIME type of *image_bytes*.

    Returns
    -------
    str
        The raw JSON text returned by the model ("" if it returned nothing).
    """
    return generate_with_image(model, BILL_PROMPT, mime_type, image_bytes)
