"""
Unit tests for src/schemas.py

Covers the BillData invariants and the consistency check between the Gemini
response schema and the pydantic models.
"""
import copy

import pytest
from pydantic import ValidationError

from src.schemas import (
    BILL_ANALYSIS_SCHEMA,
    BillData,
    HistoryItem,
    SchemaMismatchError,
    check_schema_matches_model,
)


# ─────────────────────────────────────────────────────────────────────────────
# BillData
# ─────────────────────────────────────────────────────────────────────────────

class TestBillData:

    def test_valid_payload(self, bill_payload):
        bill = BillData.model_validate(bill_payload)
        assert bill.fornitore == "Enel Energia"
        assert len(bill.storico_consumi) == 2
        assert bill.consumo_annuo_fasce.f3 == 950

    def test_only_required_fields(self):
        bill = BillData.model_validate({
            "fornitore": "Hera",
            "is_gas": True,
            "storico_consumi": [{"mese": "Mar 24", "valore": 80}],
            "spesa_totale_annua_stima": 900,
        })
        assert bill.quota_fissa_mensile is None
        assert bill.consumo_annuo_fasce is None

    def test_empty_history_rejected(self, bill_payload):
        bill_payload["storico_consumi"] = []
        with pytest.raises(ValidationError):
            BillData.model_validate(bill_payload)

    def test_negative_history_value_rejected(self, bill_payload):
        bill_payload["storico_consumi"][0]["valore"] = -1
        with pytest.raises(ValidationError):
            BillData.model_validate(bill_payload)

    def test_is_gas_is_not_coerced(self, bill_payload):
        bill_payload["is_gas"] = "true"
        with pytest.raises(ValidationError):
            BillData.model_validate(bill_payload)

    def test_missing_supplier_rejected(self, bill_payload):
        del bill_payload["fornitore"]
        with pytest.raises(ValidationError):
            BillData.model_validate(bill_payload)

    def test_is_immutable(self, bill_payload):
        bill = BillData.model_validate(bill_payload)
        with pytest.raises(ValidationError):
            bill.fornitore = "Altro"

    def test_unit_labels_electricity(self, bill_payload):
        bill = BillData.model_validate(bill_payload)
        assert bill.unit_label == "kWh"
        assert bill.unit_price_label == "€/kWh"

    def test_unit_labels_gas(self, bill_payload):
        bill_payload["is_gas"] = True
        bill = BillData.model_validate(bill_payload)
        assert bill.unit_label == "smc"
        assert bill.unit_price_label == "€/smc"


class TestHistoryItem:

    def test_bands_default_to_absent(self):
        item = HistoryItem(mese="Gen 24", valore=100)
        assert (item.f1, item.f2, item.f3) == (None, None, None)
        assert not item.has_band_detail

    def test_zero_bands_count_as_no_detail(self):
        assert not HistoryItem(mese="Gen 24", valore=100, f1=0, f2=0, f3=0).has_band_detail

    def test_band_detail(self):
        assert HistoryItem(mese="Gen 24", valore=100, f1=40).has_band_detail


# ─────────────────────────────────────────────────────────────────────────────
# Schema ↔ model
# ─────────────────────────────────────────────────────────────────────────────

class TestSchemaMatchesModel:

    def test_shipped_schema_matches(self):
        check_schema_matches_model(BILL_ANALYSIS_SCHEMA, BillData)

    def test_top_level_required_fields(self):
        assert set(BILL_ANALYSIS_SCHEMA["required"]) == {
            "fornitore", "is_gas", "storico_consumi", "spesa_totale_annua_stima",
        }

    def test_missing_property_detected(self):
        schema = copy.deepcopy(BILL_ANALYSIS_SCHEMA)
        del schema["properties"]["potenza_impegnata"]
        with pytest.raises(SchemaMismatchError, match="potenza_impegnata"):
            check_schema_matches_model(schema, BillData)

    def test_unexpected_property_detected(self):
        schema = copy.deepcopy(BILL_ANALYSIS_SCHEMA)
        schema["properties"]["pod"] = {"type": "STRING"}
        with pytest.raises(SchemaMismatchError, match="pod"):
            check_schema_matches_model(schema, BillData)

    def test_required_drift_detected(self):
        schema = copy.deepcopy(BILL_ANALYSIS_SCHEMA)
        schema["required"].remove("is_gas")
        with pytest.raises(SchemaMismatchError, match="required"):
            check_schema_matches_model(schema, BillData)

    def test_scalar_type_drift_detected(self):
        schema = copy.deepcopy(BILL_ANALYSIS_SCHEMA)
        schema["properties"]["is_gas"] = {"type": "STRING"}
        with pytest.raises(SchemaMismatchError, match="is_gas"):
            check_schema_matches_model(schema, BillData)

    def test_nested_item_drift_detected(self):
        schema = copy.deepcopy(BILL_ANALYSIS_SCHEMA)
        schema["properties"]["storico_consumi"]["items"]["required"] = ["mese"]
        with pytest.raises(SchemaMismatchError, match="storico_consumi"):
            check_schema_matches_model(schema, BillData)

    def test_array_type_drift_detected(self):
        schema = copy.deepcopy(BILL_ANALYSIS_SCHEMA)
        schema["properties"]["storico_consumi"] = {"type": "STRING"}
        with pytest.raises(SchemaMismatchError):
            check_schema_matches_model(schema, BillData)
