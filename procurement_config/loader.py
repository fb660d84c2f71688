"""
Configuration Loader (``procurement_config.loader``).

Responsibility
--------------
Loads a procurement YAML file and parses it into the typed
``procurement_config.schema`` dataclasses.  The single public entry point
for runtime config is ``procurement_config.get_active_config()``; tests and
tooling may call ``load_config`` directly.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  It has no dependency on the
kernel or the engines; ``procurement_config.bridges`` does that translation.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Numeric weights and thresholds are parsed with ``Decimal(str(value))`` so
  a YAML float never leaks binary rounding into a weight.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  document for configuration identity.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys (``config_id``, criterion ``name`` ...)  -> ``KeyError``.
* Non-numeric weights or thresholds  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from procurement_config.schema import (
    ClassThresholdDef,
    ComplianceConfig,
    CriterionDef,
    EvaluationConfig,
    ProcurementConfig,
    QualificationConfig,
    SlaConfig,
    VendorTypeOverrideDef,
    VocabularyConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _decimal(value: Any, label: str) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{label} must be numeric, got {value!r}") from None


def parse_evaluation(data: dict[str, Any]) -> EvaluationConfig:
    defaults = EvaluationConfig()
    return EvaluationConfig(
        technical_weight=_decimal(
            data.get("technical_weight", defaults.technical_weight), "technical_weight"
        ),
        commercial_weight=_decimal(
            data.get("commercial_weight", defaults.commercial_weight), "commercial_weight"
        ),
    )


def parse_qualification(data: dict[str, Any]) -> QualificationConfig:
    criteria = tuple(
        CriterionDef(name=c["name"], weight=_decimal(c["weight"], f"weight of {c['name']}"))
        for c in data.get("criteria", [])
    )
    thresholds = tuple(
        ClassThresholdDef(
            vendor_class=str(t["class"]),
            minimum=_decimal(t["minimum"], f"minimum of class {t['class']}"),
        )
        for t in data.get("thresholds", [])
    )
    return QualificationConfig(
        criteria=criteria,
        thresholds=thresholds,
        fallback_class=str(data.get("fallback_class", "D")),
    )


def parse_compliance(data: dict[str, Any]) -> ComplianceConfig:
    overrides = tuple(
        VendorTypeOverrideDef(
            vendor_type=vendor_type,
            add=tuple(spec.get("add", ()) or ()),
            remove=tuple(spec.get("remove", ()) or ()),
        )
        for vendor_type, spec in (data.get("vendor_type_overrides") or {}).items()
    )
    return ComplianceConfig(
        warning_days=int(data.get("warning_days", 30)),
        baseline_documents=tuple(data.get("baseline_documents", ())),
        overrides=overrides,
        high_risk_threshold=_decimal(
            data.get("high_risk_threshold", "0.20"), "high_risk_threshold"
        ),
    )


def parse_sla(data: dict[str, Any]) -> SlaConfig:
    return SlaConfig(
        reminder_lead_hours=int(data.get("reminder_lead_hours", 24)),
        default_sla_hours=int(data.get("default_sla_hours", 72)),
    )


def _pairs(tables: dict[str, dict[str, str]] | None) -> dict[str, tuple[tuple[str, str], ...]]:
    return {
        str(kind).upper(): tuple(
            (str(external).upper(), str(canonical).upper())
            for external, canonical in (table or {}).items()
        )
        for kind, table in (tables or {}).items()
    }


def parse_vocabulary(data: dict[str, Any]) -> VocabularyConfig:
    return VocabularyConfig(
        mappings=_pairs(data.get("mappings")),
        aliases=_pairs(data.get("aliases")),
    )


def parse_config(data: dict[str, Any]) -> ProcurementConfig:
    return ProcurementConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        evaluation=parse_evaluation(data.get("evaluation") or {}),
        qualification=parse_qualification(data.get("qualification") or {}),
        compliance=parse_compliance(data.get("compliance") or {}),
        sla=parse_sla(data.get("sla") or {}),
        vocabulary=parse_vocabulary(data.get("vocabulary") or {}),
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> ProcurementConfig:
    """Load and parse one configuration file."""
    return parse_config(load_yaml_file(Path(path)))
