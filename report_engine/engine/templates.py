"""Declarative report templates.

A template is a plain JSON-compatible document::

    {
        "name": ..., "description": ..., "template_type": ..., "format": ...,
        "sections": [{"id", "name", "order", "type", "required", "content", "conditional"?}],
        "variables": [{"key", "name", "type", "required", "description", "default_value"?, "validation"?}],
        "styling": {...},
        "metadata": {"version", "author", "created_at", "updated_at", "category", "tags",
                     "permissions": {"roles", "users", "public", "editable"}, "usage": {...}},
    }

Sections are discriminated by ``type``; ``content`` carries the keys relevant
to that type (``chart_config`` for charts, ``table_config`` for tables, ...).
"""

from __future__ import annotations

import copy
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime

from report_engine.core.errors import TemplateValidationError

TEMPLATE_TYPES = (
    "project_progress",
    "buyer_impact",
    "portfolio_overview",
    "analytics_dashboard",
    "compliance",
    "custom",
)
TEMPLATE_FORMATS = ("pdf", "html", "csv", "xlsx")
SECTION_TYPES = ("header", "summary", "chart", "table", "text", "image", "metrics", "timeline")
VARIABLE_TYPES = ("string", "number", "date", "boolean", "array", "object")
CONDITION_OPERATORS = ("equals", "not_equals", "greater_than", "less_than", "contains", "exists")

INITIAL_VERSION = "1.0.0"

_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")
_MISSING = object()


# ---------- Validation ----------
@dataclass(frozen=True, slots=True)
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, object]:
        return {"is_valid": self.is_valid, "errors": list(self.errors)}


def _entries(value: object) -> list[Mapping]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item if isinstance(item, Mapping) else {} for item in value]


def validate(template: Mapping) -> ValidationResult:
    """Structural check of a template document. Pure; never mutates input.

    Duplicate section ids are not rejected.
    """

    errors: list[str] = []

    if not template.get("name"):
        errors.append("Template name is required")
    if not template.get("template_type"):
        errors.append("Template type is required")
    if not template.get("format"):
        errors.append("Template format is required")
    sections = template.get("sections")
    if not isinstance(sections, (list, tuple)) or not sections:
        errors.append("At least one section is required")

    for index, section in enumerate(_entries(sections), start=1):
        if not section.get("id"):
            errors.append(f"Section {index}: ID is required")
        if not section.get("name"):
            errors.append(f"Section {index}: Name is required")
        if not section.get("type"):
            errors.append(f"Section {index}: Type is required")
        if section.get("order") is None:
            errors.append(f"Section {index}: Order is required")

    variables = template.get("variables")
    if variables is not None and not isinstance(variables, (list, tuple)):
        errors.append("Template variables must be a list")

    for index, variable in enumerate(_entries(variables), start=1):
        if not variable.get("key"):
            errors.append(f"Variable {index}: Key is required")
        if not variable.get("name"):
            errors.append(f"Variable {index}: Name is required")
        if not variable.get("type"):
            errors.append(f"Variable {index}: Type is required")

    return ValidationResult(is_valid=not errors, errors=errors)


def ensure_valid(template: Mapping) -> None:
    result = validate(template)
    if not result.is_valid:
        raise TemplateValidationError(result.errors)


# ---------- Conditional logic ----------
def lookup(context: object, path: str) -> object:
    """Resolve a dotted path against nested mappings/objects; ``_MISSING`` if absent."""

    current = context
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return _MISSING
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.isdigit():
            position = int(part)
            if position >= len(current):
                return _MISSING
            current = current[position]
        elif hasattr(current, part):
            current = getattr(current, part)
        else:
            return _MISSING
    return current


def _compare(actual: object, expected: object, operator: str) -> bool:
    try:
        left, right = float(actual), float(expected)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return False
    return left > right if operator == "greater_than" else left < right


def evaluate_condition(logic: Mapping | None, context: object) -> bool:
    """Evaluate a ``ConditionalLogic`` document. Never raises.

    A missing field is false for every operator except ``not_equals``.
    """

    if not logic:
        return True
    operator = logic.get("operator")
    path = logic.get("field")
    if not isinstance(path, str) or not path:
        return False

    actual = lookup(context, path)
    if actual is _MISSING:
        return operator == "not_equals"

    expected = logic.get("value")
    if operator == "exists":
        return actual is not None
    if operator == "equals":
        return actual == expected
    if operator == "not_equals":
        return actual != expected
    if operator in ("greater_than", "less_than"):
        return _compare(actual, expected, operator)
    if operator == "contains":
        if isinstance(actual, str):
            return str(expected) in actual
        if isinstance(actual, (list, tuple, set, frozenset, Mapping)):
            try:
                return expected in actual
            except TypeError:
                return False
        return False
    return False


# ---------- Variables ----------
def _type_matches(value: object, expected_type: str) -> bool:
    if expected_type == "string":
        return isinstance(value, str)
    if expected_type == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected_type == "boolean":
        return isinstance(value, bool)
    if expected_type == "array":
        return isinstance(value, list)
    if expected_type == "object":
        return isinstance(value, dict)
    if expected_type == "date":
        if isinstance(value, (date, datetime)):
            return True
        if isinstance(value, str):
            try:
                datetime.fromisoformat(value)
            except ValueError:
                return False
            return True
        return False
    # Unknown declared types are not enforced.
    return True


def _rule_errors(key: str, value: object, rule: Mapping) -> list[str]:
    errors: list[str] = []
    measured: float | None = None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        measured = float(value)
    elif isinstance(value, (str, list)):
        measured = float(len(value))

    minimum = rule.get("min")
    if minimum is not None and measured is not None and measured < minimum:
        errors.append(f"Variable '{key}' must be at least {minimum}")
    maximum = rule.get("max")
    if maximum is not None and measured is not None and measured > maximum:
        errors.append(f"Variable '{key}' must be at most {maximum}")

    pattern = rule.get("pattern")
    if pattern and isinstance(value, str):
        try:
            if re.fullmatch(pattern, value) is None:
                errors.append(f"Variable '{key}' does not match pattern {pattern}")
        except re.error:
            errors.append(f"Variable '{key}' has an invalid pattern {pattern}")

    options = rule.get("options")
    if options and value not in options:
        errors.append(f"Variable '{key}' must be one of: {', '.join(str(item) for item in options)}")
    return errors


def resolve_variables(template: Mapping, supplied: Mapping | None = None) -> dict[str, object]:
    """Apply defaults and check supplied values against declared variables.

    Undeclared supplied keys pass through unchanged. Every problem is collected
    into one ``TemplateValidationError``.
    """

    supplied = dict(supplied or {})
    resolved = dict(supplied)
    errors: list[str] = []

    for variable in _entries(template.get("variables")):
        key = variable.get("key")
        if not key:
            continue
        value = supplied.get(key)
        if value is None:
            value = variable.get("default_value")
        if value is None:
            if variable.get("required"):
                errors.append(f"Variable '{key}' is required")
            continue

        expected_type = variable.get("type") or "string"
        if not _type_matches(value, expected_type):
            errors.append(f"Variable '{key}' must be of type {expected_type}")
            continue

        rule = variable.get("validation")
        if isinstance(rule, Mapping):
            errors.extend(_rule_errors(key, value, rule))
        resolved[key] = value

    if errors:
        raise TemplateValidationError(errors, message="Template variables are invalid.")
    return resolved


# ---------- Sections ----------
def substitute(value: object, variables: Mapping[str, object]) -> object:
    """Replace ``{{key}}`` placeholders in every string; unknown keys are kept."""

    if isinstance(value, str):
        return _PLACEHOLDER.sub(
            lambda match: str(variables[match.group(1)]) if match.group(1) in variables else match.group(0),
            value,
        )
    if isinstance(value, Mapping):
        return {key: substitute(item, variables) for key, item in value.items()}
    if isinstance(value, list):
        return [substitute(item, variables) for item in value]
    return value


def _order_key(section: Mapping) -> tuple[float, str]:
    try:
        order = float(section.get("order"))
    except (TypeError, ValueError):
        order = float("inf")
    return order, str(section.get("id") or "")


def resolve_sections(
    template: Mapping,
    context: object,
    variables: Mapping[str, object],
    exclude_sections: Iterable[str] = (),
) -> list[dict[str, object]]:
    """Ordered layout of the sections that apply to ``context``.

    Optional sections are dropped when excluded or when their condition is
    false. Required sections are always kept; ``condition_met`` records the
    outcome so the renderer can pick a content variant.
    """

    excluded = set(exclude_sections)
    layout: list[dict[str, object]] = []
    for section in sorted(_entries(template.get("sections")), key=_order_key):
        conditional = section.get("conditional")
        condition_met = evaluate_condition(conditional, context) if conditional else True
        required = bool(section.get("required"))
        if not required and (section.get("id") in excluded or not condition_met):
            continue
        layout.append(
            {
                "id": section.get("id"),
                "name": section.get("name"),
                "type": section.get("type"),
                "order": section.get("order"),
                "required": required,
                "condition_met": condition_met,
                "content": substitute(copy.deepcopy(section.get("content") or {}), variables),
            }
        )
    return layout


# ---------- Versioning and metadata ----------
def increment_version(version: str | None) -> str:
    """Bump the patch component of a ``major.minor.patch`` string."""

    parts = (version or INITIAL_VERSION).split(".")
    major = parts[0] or "1"
    minor = parts[1] if len(parts) > 1 and parts[1] else "0"
    try:
        patch = int(parts[2]) if len(parts) > 2 else 0
    except ValueError:
        patch = 0
    return f"{major}.{minor}.{patch + 1}"


def default_styling() -> dict[str, object]:
    return {
        "theme": "light",
        "primary_color": "#22c55e",
        "secondary_color": "#3b82f6",
        "accent_color": "#f59e0b",
        "font_family": "Inter, sans-serif",
        "font_size": 12,
        "header_style": {
            "background_color": "#f8fafc",
            "text_color": "#1e293b",
            "font_size": 18,
            "font_weight": "bold",
            "padding": "16px",
            "border_radius": "8px",
        },
        "body_style": {
            "background_color": "#ffffff",
            "text_color": "#334155",
            "font_size": 12,
            "padding": "12px",
        },
        "table_style": {
            "border_color": "#e2e8f0",
            "background_color": "#f8fafc",
            "text_color": "#1e293b",
            "font_size": 11,
        },
        "chart_style": {
            "background_color": "#ffffff",
            "text_color": "#334155",
            "font_size": 10,
        },
    }


def template_metadata(
    *,
    category: str,
    author: str,
    now: datetime,
    roles: list[str],
    users: list[str],
    public: bool,
    editable: bool,
    tags: list[str] | None = None,
) -> dict[str, object]:
    stamp = now.isoformat()
    return {
        "version": INITIAL_VERSION,
        "author": author,
        "created_at": stamp,
        "updated_at": stamp,
        "category": category,
        "tags": list(tags or []),
        "permissions": {"roles": list(roles), "users": list(users), "public": public, "editable": editable},
        "usage": {"total_generations": 0, "average_generation_time": 0, "popular_sections": []},
    }


# ---------- Built-in templates ----------
DEFAULT_TEMPLATES: tuple[dict[str, object], ...] = (
    {
        "default_key": "default_project_progress",
        "name": "Standard Project Progress Report",
        "description": "Comprehensive project progress report with timeline and metrics",
        "template_type": "project_progress",
        "format": "pdf",
        "sections": [
            {
                "id": "header",
                "name": "Report Header",
                "order": 1,
                "type": "header",
                "required": True,
                "content": {
                    "title": "Project Progress Report",
                    "subtitle": "{{project_name}} - {{report_period}}",
                },
            },
            {
                "id": "executive_summary",
                "name": "Executive Summary",
                "order": 2,
                "type": "summary",
                "required": True,
                "content": {
                    "title": "Executive Summary",
                    "description": "Key project metrics and progress overview",
                },
            },
            {
                "id": "progress_timeline",
                "name": "Progress Timeline",
                "order": 3,
                "type": "timeline",
                "required": True,
                "content": {
                    "title": "Project Timeline",
                    "description": "Milestone progress and key achievements",
                },
            },
            {
                "id": "impact_metrics",
                "name": "Environmental Impact",
                "order": 4,
                "type": "metrics",
                "required": True,
                "content": {
                    "title": "Environmental Impact Metrics",
                    "metric_keys": ["carbon_impact_to_date", "trees_planted", "energy_generated"],
                },
            },
            {
                "id": "progress_chart",
                "name": "Progress Chart",
                "order": 5,
                "type": "chart",
                "required": False,
                "content": {
                    "title": "Progress Over Time",
                    "chart_config": {
                        "type": "line",
                        "x_axis": "date",
                        "y_axis": ["progress_percentage", "carbon_impact"],
                        "colors": ["#22c55e", "#3b82f6"],
                        "show_legend": True,
                        "show_grid": True,
                    },
                },
            },
        ],
        "variables": [
            {
                "key": "project_name",
                "name": "Project Name",
                "type": "string",
                "required": True,
                "description": "Name of the project being reported on",
            },
            {
                "key": "report_period",
                "name": "Report Period",
                "type": "string",
                "required": True,
                "description": "Time period covered by this report",
            },
        ],
    },
    {
        "default_key": "default_buyer_impact",
        "name": "Buyer Impact Portfolio Report",
        "description": "Comprehensive report showing buyer's carbon credit portfolio impact",
        "template_type": "buyer_impact",
        "format": "pdf",
        "sections": [
            {
                "id": "portfolio_header",
                "name": "Portfolio Header",
                "order": 1,
                "type": "header",
                "required": True,
                "content": {
                    "title": "Carbon Credit Portfolio Report",
                    "subtitle": "{{buyer_name}} - Portfolio Overview",
                },
            },
            {
                "id": "portfolio_summary",
                "name": "Portfolio Summary",
                "order": 2,
                "type": "summary",
                "required": True,
                "content": {
                    "title": "Portfolio Summary",
                    "description": "Total carbon credits and environmental impact",
                },
            },
            {
                "id": "project_breakdown",
                "name": "Project Breakdown",
                "order": 3,
                "type": "table",
                "required": True,
                "content": {
                    "title": "Project Breakdown",
                    "table_config": {
                        "columns": [
                            {"key": "project_name", "label": "Project Name", "type": "text"},
                            {"key": "project_type", "label": "Type", "type": "text"},
                            {"key": "credits_owned", "label": "Credits Owned", "type": "number"},
                            {"key": "carbon_impact", "label": "CO2 Impact (tons)", "type": "number"},
                            {"key": "status", "label": "Status", "type": "status"},
                        ],
                        "sortable": True,
                        "pagination": False,
                        "show_headers": True,
                        "exportable": True,
                        "rows_per_page": 20,
                        "filterable": False,
                    },
                },
            },
            {
                "id": "impact_visualization",
                "name": "Impact Visualization",
                "order": 4,
                "type": "chart",
                "required": True,
                "content": {
                    "title": "Carbon Impact Distribution",
                    "chart_config": {
                        "type": "pie",
                        "x_axis": "project_type",
                        "y_axis": ["carbon_impact"],
                        "colors": ["#22c55e", "#3b82f6", "#f59e0b", "#ef4444", "#8b5cf6"],
                        "show_legend": True,
                        "show_grid": False,
                    },
                },
            },
        ],
        "variables": [
            {
                "key": "buyer_name",
                "name": "Buyer Name",
                "type": "string",
                "required": True,
                "description": "Name of the carbon credit buyer",
            },
        ],
    },
)

DEFAULT_TEMPLATE_ROLES = ["admin", "verifier", "project_creator", "credit_buyer"]


def default_template_document(definition: Mapping, *, now: datetime) -> dict[str, object]:
    """Full template document for a built-in definition (public, non-editable)."""

    document = {key: copy.deepcopy(value) for key, value in definition.items() if key != "default_key"}
    document["styling"] = default_styling()
    document["metadata"] = template_metadata(
        category=str(definition["template_type"]),
        author="System",
        now=now,
        roles=DEFAULT_TEMPLATE_ROLES,
        users=[],
        public=True,
        editable=False,
        tags=["default", "system"],
    )
    return document


def count_by_type(layout: Iterable[Mapping], section_type: str) -> int:
    return sum(1 for section in layout if section.get("type") == section_type)
