from __future__ import annotations

import copy
from datetime import datetime

import pytest

from report_engine.core.errors import TemplateValidationError
from report_engine.engine.templates import (
    DEFAULT_TEMPLATES,
    default_template_document,
    evaluate_condition,
    increment_version,
    resolve_sections,
    resolve_variables,
    validate,
)


def _template(**overrides: object) -> dict[str, object]:
    template: dict[str, object] = {
        "name": "Quarterly",
        "template_type": "project_progress",
        "format": "pdf",
        "sections": [
            {"id": "intro", "name": "Intro", "type": "text", "order": 2, "required": True, "content": {}},
            {"id": "head", "name": "Header", "type": "header", "order": 1, "required": True, "content": {}},
        ],
        "variables": [],
    }
    template.update(overrides)
    return template


def test_valid_template_passes() -> None:
    result = validate(_template())

    assert result.is_valid is True
    assert result.errors == []


def test_missing_sections_fail_with_at_least_one_section_message() -> None:
    template = _template()
    del template["sections"]

    result = validate(template)

    assert result.is_valid is False
    assert any("at least one section" in error.lower() for error in result.errors)


def test_field_level_messages_are_listed() -> None:
    template = _template(
        name="",
        format=None,
        sections=[{"id": "a", "type": "text"}],
        variables=[{"key": "x"}],
    )

    result = validate(template)

    assert result.errors == [
        "Template name is required",
        "Template format is required",
        "Section 1: Name is required",
        "Section 1: Order is required",
        "Variable 1: Name is required",
        "Variable 1: Type is required",
    ]


@pytest.mark.parametrize("sections", ["not-a-list", {"id": "a", "name": "A", "type": "text", "order": 1}])
def test_non_list_sections_count_as_missing(sections: object) -> None:
    result = validate(_template(sections=sections))

    assert result.is_valid is False
    assert result.errors == ["At least one section is required"]


def test_non_list_variables_are_reported() -> None:
    result = validate(_template(variables={"key": "x", "name": "X", "type": "string"}))

    assert result.is_valid is False
    assert result.errors == ["Template variables must be a list"]


def test_order_zero_counts_as_present() -> None:
    template = _template(sections=[{"id": "a", "name": "A", "type": "text", "order": 0}])

    assert validate(template).is_valid is True


def test_duplicate_section_ids_are_currently_accepted() -> None:
    section = {"id": "dup", "name": "Dup", "type": "text", "order": 1, "required": False}
    template = _template(sections=[section, dict(section, order=2)])

    assert validate(template).is_valid is True


def test_validate_is_pure_and_repeatable() -> None:
    template = _template(name="", variables=[{"name": "No key"}])
    snapshot = copy.deepcopy(template)

    first = validate(template)
    second = validate(template)

    assert first == second
    assert template == snapshot


def test_default_templates_are_valid() -> None:
    for definition in DEFAULT_TEMPLATES:
        assert validate(definition).is_valid is True


@pytest.mark.parametrize(
    ("logic", "expected"),
    [
        ({"field": "summary.overall_progress", "operator": "greater_than", "value": 50}, True),
        ({"field": "summary.overall_progress", "operator": "less_than", "value": 50}, False),
        ({"field": "summary.timeline_status", "operator": "equals", "value": "delayed"}, True),
        ({"field": "summary.timeline_status", "operator": "not_equals", "value": "delayed"}, False),
        ({"field": "challenges", "operator": "contains", "value": "flood"}, True),
        ({"field": "summary.timeline_status", "operator": "contains", "value": "lay"}, True),
        ({"field": "photos", "operator": "exists", "value": None}, True),
        ({"field": "financials", "operator": "exists", "value": None}, False),
        ({"field": "missing.path", "operator": "equals", "value": 1}, False),
        ({"field": "missing.path", "operator": "not_equals", "value": 1}, True),
        ({"field": "missing.path", "operator": "exists", "value": None}, False),
        ({"field": "summary.timeline_status", "operator": "greater_than", "value": 3}, False),
        ({"field": "summary", "operator": "unknown", "value": 3}, False),
        ({"operator": "equals", "value": 3}, False),
    ],
)
def test_evaluate_condition(logic: dict[str, object], expected: bool) -> None:
    context = {
        "summary": {"overall_progress": 72.5, "timeline_status": "delayed"},
        "challenges": ["flood", "permits"],
        "photos": [],
        "financials": None,
    }

    assert evaluate_condition(logic, context) is expected


def test_resolve_variables_applies_defaults_and_collects_errors() -> None:
    template = _template(
        variables=[
            {"key": "region", "name": "Region", "type": "string", "required": False, "default_value": "EU"},
            {"key": "quarter", "name": "Quarter", "type": "number", "required": True, "validation": {"min": 1, "max": 4}},
            {"key": "owner", "name": "Owner", "type": "string", "required": True},
            {"key": "tier", "name": "Tier", "type": "string", "required": False, "validation": {"options": ["a", "b"]}},
        ]
    )

    resolved = resolve_variables(template, {"quarter": 2, "owner": "Ana", "extra": True})
    assert resolved == {"region": "EU", "quarter": 2, "owner": "Ana", "extra": True}

    with pytest.raises(TemplateValidationError) as raised:
        resolve_variables(template, {"quarter": 7, "tier": "z"})

    assert raised.value.status_code == 422
    assert raised.value.errors == [
        "Variable 'quarter' must be at most 4",
        "Variable 'owner' is required",
        "Variable 'tier' must be one of: a, b",
    ]


def test_explicit_null_falls_back_to_default() -> None:
    template = _template(
        variables=[
            {"key": "region", "name": "Region", "type": "string", "required": True, "default_value": "EU"},
        ]
    )

    assert resolve_variables(template, {"region": None}) == {"region": "EU"}


def test_resolve_variables_checks_types_and_patterns() -> None:
    template = _template(
        variables=[
            {"key": "code", "name": "Code", "type": "string", "required": True, "validation": {"pattern": "[A-Z]{3}"}},
            {"key": "when", "name": "When", "type": "date", "required": True},
            {"key": "count", "name": "Count", "type": "number", "required": True},
        ]
    )

    with pytest.raises(TemplateValidationError) as raised:
        resolve_variables(template, {"code": "abc", "when": "not a date", "count": True})

    assert raised.value.errors == [
        "Variable 'code' does not match pattern [A-Z]{3}",
        "Variable 'when' must be of type date",
        "Variable 'count' must be of type number",
    ]


def test_resolve_sections_orders_filters_and_substitutes() -> None:
    template = _template(
        sections=[
            {
                "id": "chart",
                "name": "Chart",
                "type": "chart",
                "order": 3,
                "required": False,
                "content": {"title": "Progress for {{project_name}}"},
                "conditional": {"field": "summary.overall_progress", "operator": "greater_than", "value": 90},
            },
            {
                "id": "risks",
                "name": "Risks",
                "type": "text",
                "order": 2,
                "required": True,
                "content": {"title": "Risks in {{ report_period }}", "notes": ["{{unknown}}"]},
                "conditional": {"field": "challenges", "operator": "exists", "value": None},
            },
            {"id": "head", "name": "Header", "type": "header", "order": 1, "required": True, "content": {}},
            {"id": "extra", "name": "Extra", "type": "text", "order": 4, "required": False, "content": {}},
        ]
    )
    variables = {"project_name": "Mangroves", "report_period": "Q1"}

    layout = resolve_sections(template, {"summary": {"overall_progress": 40}}, variables, exclude_sections=["extra", "head"])

    assert [section["id"] for section in layout] == ["head", "risks"]
    risks = layout[1]
    assert risks["condition_met"] is False
    assert risks["content"] == {"title": "Risks in Q1", "notes": ["{{unknown}}"]}
    assert template["sections"][1]["content"]["title"] == "Risks in {{ report_period }}"


def test_increment_version_bumps_patch() -> None:
    assert increment_version("1.0.0") == "1.0.1"
    assert increment_version("2.3.9") == "2.3.10"
    assert increment_version("4") == "4.0.1"
    assert increment_version(None) == "1.0.1"


def test_default_template_document_is_public_and_frozen() -> None:
    document = default_template_document(DEFAULT_TEMPLATES[0], now=datetime(2026, 1, 1))

    permissions = document["metadata"]["permissions"]
    assert permissions["public"] is True
    assert permissions["editable"] is False
    assert document["metadata"]["author"] == "System"
    assert document["metadata"]["version"] == "1.0.0"
    assert "default_key" not in document
    assert document["styling"]["primary_color"] == "#22c55e"
