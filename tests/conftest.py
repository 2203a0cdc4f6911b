"""Shared test fixtures."""
import copy
import io
import json
from unittest.mock import MagicMock

import pytest
from PIL import Image


_BILL = {
    "fornitore": "Enel Energia",
    "periodo_fatturazione": "Gen-Feb 2024",
    "is_gas": False,
    "giorni_periodo": 59,
    "prezzo_materia_prima_unitario": 0.1234,
    "quota_fissa_mensile": 12.5,
    "quota_potenza_mensile": 1.85,
    "oneri_generali_unitario": 0.0311,
    "spese_rete_unitario": 0.0098,
    "prezzo_energia_unitario": 0.1643,
    "potenza_impegnata": 3,
    "consumo_annuo_totale": 2700,
    "consumo_annuo_fasce": {"f1": 900, "f2": 850, "f3": 950},
    "quota_fissa_annua": 150,
    "oneri_generali_annui": 83.97,
    "spese_rete_annui": 26.46,
    "storico_consumi": [
        {"mese": "Gen 24", "valore": 240, "f1": 80, "f2": 75, "f3": 85},
        {"mese": "Feb 24", "valore": 210, "f1": 70, "f3": 72},
    ],
    "spesa_totale_annua_stima": 712.4,
    "spesa_bolletta_attuale": 118.9,
}


@pytest.fixture
def bill_payload():
    """A schema-conforming Gemini answer for an electricity bill."""
    return copy.deepcopy(_BILL)


@pytest.fixture
def make_image():
    """Factory: encoded image bytes of the given size, mode and format."""

    def _make(width, height, mode="RGB", fmt="PNG"):
        color = (255, 255, 255, 255) if mode == "RGBA" else "white"
        img = Image.new(mode, (width, height), color)
        buf = io.BytesIO()
        img.save(buf, format=fmt)
        return buf.getvalue()

    return _make


@pytest.fixture
def stub_model(bill_payload):
    """A GenerativeModel stand-in whose response text is *bill_payload* as JSON."""
    model = MagicMock()
    model.generate_content.return_value = MagicMock(text=json.dumps(bill_payload))
    return model
