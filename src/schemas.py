"""
schemas.py – BillData models and the response schema handed to Gemini.

Field names are Italian because they are the wire contract shared with the
front-end and with the model prompt.  Optional numeric fields are None when
the model did not return them.

``BILL_ANALYSIS_SCHEMA`` is the static output schema passed to Gemini as
``response_schema``.  It is checked once at start-up against ``BillData``
with ``check_schema_matches_model`` so the two cannot drift apart silently.
"""
from __future__ import annotations

import types
import typing
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.constants import UNIT_ELECTRICITY, UNIT_GAS


# ─────────────────────────────────────────────────────────────
# Sub-models
# ─────────────────────────────────────────────────────────────

class ConsumptionByBand(BaseModel):
    """Annual consumption split over the F1/F2/F3 time-of-use bands."""

    model_config = ConfigDict(frozen=True)

    f1: float = Field(..., ge=0, description="Consumo in fascia F1 (picco)")
    f2: float = Field(..., ge=0, description="Consumo in fascia F2 (intermedia)")
    f3: float = Field(..., ge=0, description="Consumo in fascia F3 (fuori picco)")


class HistoryItem(BaseModel):
    """One month of the consumption history printed on the bill."""

    model_config = ConfigDict(frozen=True)

    mese: str = Field(..., description="Mese e anno, es: Gen 24")
    valore: float = Field(..., ge=0, description="Valore totale consumato nel mese")
    # 0 from the model usually means "band not shown", not a real zero reading.
    f1: Optional[float] = Field(None, ge=0, description="Consumo in fascia F1")
    f2: Optional[float] = Field(None, ge=0, description="Consumo in fascia F2")
    f3: Optional[float] = Field(None, ge=0, description="Consumo in fascia F3")

    @property
    def has_band_detail(self) -> bool:
        """True when at least one band carries a non-zero value."""
        return any(v for v in (self.f1, self.f2, self.f3))


# ─────────────────────────────────────────────────────────────
# Bill
# ─────────────────────────────────────────────────────────────

class BillData(BaseModel):
    """Structured figures extracted from one electricity or gas bill."""

    model_config = ConfigDict(frozen=True)

    fornitore: str = Field(..., description="Nome del fornitore")
    periodo_fatturazione: Optional[str] = Field(None, description="Esempio: Gen-Feb 2024")
    is_gas: bool = Field(..., strict=True, description="True se GAS, False se LUCE")
    giorni_periodo: Optional[float] = Field(None, ge=0, description="Giorni coperti dalla bolletta")

    # Unit rates
    prezzo_materia_prima_unitario: Optional[float] = Field(None, ge=0, description="€/kWh o €/smc")
    quota_fissa_mensile: Optional[float] = Field(None, ge=0, description="€/mese")
    quota_potenza_mensile: Optional[float] = Field(None, ge=0, description="€/kW/mese")
    oneri_generali_unitario: Optional[float] = Field(None, ge=0, description="Quota variabile oneri")
    spese_rete_unitario: Optional[float] = Field(None, ge=0, description="Quota variabile rete")
    prezzo_energia_unitario: Optional[float] = Field(None, ge=0, description="Somma componenti variabili")
    potenza_impegnata: Optional[float] = Field(None, ge=0, description="kW")

    # Normalised to 12 months
    consumo_annuo_totale: Optional[float] = Field(None, ge=0, description="Consumo annuo 12 mesi")
    consumo_annuo_fasce: Optional[ConsumptionByBand] = None
    quota_fissa_annua: Optional[float] = Field(None, ge=0)
    oneri_generali_annui: Optional[float] = Field(None, ge=0)
    spese_rete_annui: Optional[float] = Field(None, ge=0)

    storico_consumi: list[HistoryItem] = Field(..., min_length=1)

    spesa_totale_annua_stima: float = Field(..., ge=0)
    spesa_bolletta_attuale: Optional[float] = Field(None, ge=0)

    @property
    def unit_label(self) -> str:
        """Consumption unit for every figure of this bill."""
        return UNIT_GAS if self.is_gas else UNIT_ELECTRICITY

    @property
    def unit_price_label(self) -> str:
        return f"€/{self.unit_label}"


# ─────────────────────────────────────────────────────────────
# Gemini response schema
# ─────────────────────────────────────────────────────────────

_NUMBER = {"type": "NUMBER"}
_STRING = {"type": "STRING"}

_BANDS_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "f1": _NUMBER,
        "f2": _NUMBER,
        "f3": _NUMBER,
    },
    "required": ["f1", "f2", "f3"],
}

BILL_ANALYSIS_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "fornitore": {"type": "STRING", "description": "Nome del fornitore"},
        "periodo_fatturazione": {"type": "STRING", "description": "Esempio: Gen-Feb 2024"},
        "is_gas": {"type": "BOOLEAN", "description": "True se GAS, False se LUCE"},
        "giorni_periodo": {"type": "NUMBER", "description": "Giorni coperti dalla bolletta"},
        "prezzo_materia_prima_unitario": {"type": "NUMBER", "description": "€/kWh o €/smc"},
        "quota_fissa_mensile": {"type": "NUMBER", "description": "€/mese"},
        "quota_potenza_mensile": {"type": "NUMBER", "description": "€/kW/mese"},
        "oneri_generali_unitario": {
            "type": "NUMBER",
            "description": "Quota variabile oneri (€/kWh o €/smc)",
        },
        "spese_rete_unitario": {
            "type": "NUMBER",
            "description": "Quota variabile rete (€/kWh o €/smc)",
        },
        "prezzo_energia_unitario": {"type": "NUMBER", "description": "Somma componenti variabili"},
        "potenza_impegnata": {"type": "NUMBER", "description": "kW"},
        "consumo_annuo_totale": {"type": "NUMBER", "description": "Consumo annuo 12 mesi"},
        "consumo_annuo_fasce": _BANDS_SCHEMA,
        "quota_fissa_annua": _NUMBER,
        "oneri_generali_annui": _NUMBER,
        "spese_rete_annui": _NUMBER,
        "storico_consumi": {
            "type": "ARRAY",
            "description": "Andamento storico consumi ultimi 12 mesi con dettaglio fasce F1/F2/F3",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "mese": {"type": "STRING", "description": "Mese e anno, es: Gen 24"},
                    "valore": {"type": "NUMBER", "description": "Valore totale consumato nel mese"},
                    "f1": {
                        "type": "NUMBER",
                        "description": "Consumo in fascia F1 (se disponibile, altrimenti 0)",
                    },
                    "f2": {
                        "type": "NUMBER",
                        "description": "Consumo in fascia F2 (se disponibile, altrimenti 0)",
                    },
                    "f3": {
                        "type": "NUMBER",
                        "description": "Consumo in fascia F3 (se disponibile, altrimenti 0)",
                    },
                },
                "required": ["mese", "valore"],
            },
        },
        "spesa_totale_annua_stima": _NUMBER,
        "spesa_bolletta_attuale": _NUMBER,
    },
    "required": ["fornitore", "is_gas", "storico_consumi", "spesa_totale_annua_stima"],
}


# ─────────────────────────────────────────────────────────────
# Schema ↔ model consistency
# ─────────────────────────────────────────────────────────────

_SCALAR_TYPES: dict[str, type] = {
    "STRING": str,
    "NUMBER": float,
    "INTEGER": int,
    "BOOLEAN": bool,
}


class SchemaMismatchError(ValueError):
    """Raised when the Gemini response schema and a pydantic model disagree."""


def _strip_optional(annotation: Any) -> Any:
    """Return ``X`` for ``Optional[X]`` / ``X | None``; other annotations unchanged."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _check_node(schema: dict[str, Any], annotation: Any, path: str) -> None:
    annotation = _strip_optional(annotation)
    kind = str(schema.get("type", "")).upper()

    if kind == "OBJECT":
        if not (isinstance(annotation, type) and issubclass(annotation, BaseModel)):
            raise SchemaMismatchError(f"{path}: schema is OBJECT but model has {annotation!r}")
        check_schema_matches_model(schema, annotation, path=path)
    elif kind == "ARRAY":
        if typing.get_origin(annotation) is not list:
            raise SchemaMismatchError(f"{path}: schema is ARRAY but model has {annotation!r}")
        (item_annotation,) = typing.get_args(annotation)
        _check_node(schema.get("items", {}), item_annotation, f"{path}[]")
    elif kind in _SCALAR_TYPES:
        expected = _SCALAR_TYPES[kind]
        if annotation is not expected:
            raise SchemaMismatchError(
                f"{path}: schema is {kind} but model has {getattr(annotation, '__name__', annotation)}"
            )
    else:
        raise SchemaMismatchError(f"{path}: unsupported schema type {schema.get('type')!r}")


def check_schema_matches_model(
    schema: dict[str, Any],
    model: type[BaseModel],
    path: str = "$",
) -> None:
    """
    Verify that an OBJECT *schema* describes exactly the fields of *model*.

    Checks, recursively:
    * the property names equal the model's field names;
    * each property's type matches the field annotation;
    * the ``required`` list equals the set of fields without a default.

    Raises
    ------
    SchemaMismatchError
        On the first difference found.
    """
    properties: dict[str, Any] = schema.get("properties", {})
    fields = model.model_fields

    missing = sorted(set(fields) - set(properties))
    extra = sorted(set(properties) - set(fields))
    if missing or extra:
        raise SchemaMismatchError(
            f"{path}: properties differ from {model.__name__} "
            f"(missing={missing}, unexpected={extra})"
        )

    required_in_schema = set(schema.get("required", []))
    required_in_model = {name for name, info in fields.items() if info.is_required()}
    if required_in_schema != required_in_model:
        raise SchemaMismatchError(
            f"{path}: required {sorted(required_in_schema)} "
            f"!= {model.__name__} required {sorted(required_in_model)}"
        )

    for name, info in fields.items():
        _check_node(properties[name], info.annotation, f"{path}.{name}")
