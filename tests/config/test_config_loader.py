"""
Tests for YAML configuration loading and the config -> engine bridges.

The packaged defaults must reproduce the engines' built-in rules exactly,
so running with or without configuration behaves the same.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
import yaml

from procurement_config import DEFAULT_CONFIG_PATH, get_active_config
from procurement_config.bridges import (
    build_compliance_rules,
    build_evaluation_weights,
    build_orchestrator_settings,
    build_qualification_rules,
    build_vocabulary,
)
from procurement_config.loader import compute_checksum, load_config, parse_config
from procurement_engines.compliance import DEFAULT_COMPLIANCE_RULES
from procurement_engines.evaluation import EvaluationWeights
from procurement_engines.qualification import DEFAULT_QUALIFICATION_RULES
from procurement_kernel.domain.compliance import DocType, VendorType
from procurement_kernel.domain.lifecycles import RecordKind
from procurement_kernel.domain.vocabulary import DEFAULT_VOCABULARY
from procurement_kernel.exceptions import InvalidWeightsError, UnknownVendorTypeError
from procurement_kernel.services.orchestrator import OrchestratorSettings


def _write(tmp_path, data: dict):
    path = tmp_path / "procurement.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:

    def test_defaults_match_engine_builtins(self):
        config = get_active_config()

        assert build_evaluation_weights(config) == EvaluationWeights()
        assert build_qualification_rules(config) == DEFAULT_QUALIFICATION_RULES
        assert build_compliance_rules(config) == DEFAULT_COMPLIANCE_RULES
        assert build_vocabulary(config) == DEFAULT_VOCABULARY

    def test_orchestrator_settings_match(self):
        assert build_orchestrator_settings(get_active_config()) == OrchestratorSettings()

    def test_identity(self):
        config = get_active_config()
        assert config.config_id == "procurement-defaults"
        assert config.version == 1
        assert len(config.checksum) == 64

    def test_weights_parsed_as_decimal(self):
        config = get_active_config()
        assert config.evaluation.technical_weight == Decimal("40")
        assert isinstance(config.evaluation.commercial_weight, Decimal)

    def test_trace_logged(self, captured_logs):
        config = get_active_config()

        traces = [r for r in captured_logs() if r["message"] == "PROCUREMENT_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["checksum"] == config.checksum
        assert traces[0]["config_path"] == str(DEFAULT_CONFIG_PATH)


class TestLoader:

    def test_minimal_file_uses_defaults(self, tmp_path):
        config = load_config(_write(tmp_path, {"config_id": "minimal"}))

        assert config.version == 1
        assert config.sla.default_sla_hours == 72
        assert config.compliance.warning_days == 30
        assert build_qualification_rules(config) == DEFAULT_QUALIFICATION_RULES

    def test_missing_config_id(self, tmp_path):
        with pytest.raises(KeyError):
            load_config(_write(tmp_path, {"version": 2}))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_non_numeric_weight(self, tmp_path):
        data = {"config_id": "x", "evaluation": {"technical_weight": "forty"}}
        with pytest.raises(ValueError):
            load_config(_write(tmp_path, data))

    def test_checksum_is_order_independent(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})

    def test_vocabulary_words_upper_cased(self):
        config = parse_config(
            {"config_id": "x", "vocabulary": {"mappings": {"ipc": {"settled": "paid"}}}}
        )
        vocabulary = build_vocabulary(config)
        assert vocabulary.to_canonical(RecordKind.IPC, "Settled") == "PAID"


class TestBridges:

    def test_weights_not_totalling_100(self, tmp_path):
        data = {"config_id": "x", "evaluation": {"technical_weight": "50", "commercial_weight": "60"}}
        config = load_config(_write(tmp_path, data))
        with pytest.raises(InvalidWeightsError):
            build_evaluation_weights(config)
        with pytest.raises(InvalidWeightsError):
            build_orchestrator_settings(config)

    def test_custom_compliance(self, tmp_path):
        data = {
            "config_id": "x",
            "compliance": {
                "warning_days": 14,
                "baseline_documents": ["VAT_CERTIFICATE"],
                "vendor_type_overrides": {"Service Provider": {"add": ["BANK_LETTER"]}},
            },
        }
        rules = build_compliance_rules(load_config(_write(tmp_path, data)))

        assert rules.warning_days == 14
        assert rules.baseline == frozenset({DocType.VAT_CERTIFICATE})
        assert rules.overrides[VendorType.SERVICE_PROVIDER].add == frozenset({DocType.BANK_LETTER})

    def test_unknown_vendor_type(self, tmp_path):
        data = {"config_id": "x", "compliance": {"vendor_type_overrides": {"Wizard": {"add": []}}}}
        with pytest.raises(UnknownVendorTypeError):
            build_compliance_rules(load_config(_write(tmp_path, data)))

    def test_unknown_document(self, tmp_path):
        data = {"config_id": "x", "compliance": {"baseline_documents": ["PASSPORT"]}}
        with pytest.raises(ValueError):
            build_compliance_rules(load_config(_write(tmp_path, data)))

    def test_sla_hours(self, tmp_path):
        data = {"config_id": "x", "sla": {"reminder_lead_hours": 6, "default_sla_hours": 48}}
        settings = build_orchestrator_settings(load_config(_write(tmp_path, data)))
        assert settings.reminder_lead == timedelta(hours=6)
        assert settings.default_sla == timedelta(hours=48)

    def test_custom_qualification(self, tmp_path):
        data = {
            "config_id": "x",
            "qualification": {
                "fallback_class": "NONE",
                "criteria": [{"name": "quality", "weight": 100}],
                "thresholds": [{"class": "GOLD", "minimum": 90}],
            },
        }
        rules = build_qualification_rules(load_config(_write(tmp_path, data)))
        assert [c.name for c in rules.criteria] == ["quality"]
        assert rules.fallback_class == "NONE"
