import pytest

from insight_backend.config import DEFAULT_GROUPING_RULES, load_grouping_rules
from insight_backend.grouping import default_detector
from insight_backend.report_gate import SchemaValidationError
from insight_backend.report_models import VisualizationSpec


def test_defaults_when_unset(monkeypatch) -> None:
    monkeypatch.delenv("REPORT_GROUPING_RULES", raising=False)
    assert load_grouping_rules() == DEFAULT_GROUPING_RULES


def test_rules_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("REPORT_GROUPING_RULES", '[{"field": "Region", "label": "By Region"}]')
    rules = load_grouping_rules()
    assert rules == [{"field": "Region", "label": "By Region"}]

    viz = VisualizationSpec(type="table", data=[{"Region": "East", "sales": 3}])
    assert [g.label for g in default_detector().detect([viz])] == ["By Region"]


def test_invalid_json_is_rejected() -> None:
    with pytest.raises(ValueError):
        load_grouping_rules("{not json")


def test_rules_must_match_schema() -> None:
    with pytest.raises(SchemaValidationError):
        load_grouping_rules('[{"label": "no field"}]')
