"""
Conditional field visibility and dependency resolution for config schemas.

Config schemas are flat mappings of field name to field schema:

    {
        "use_ssl": {"type": "boolean"},
        "certificate": {
            "type": "file",
            "conditional": {"field": "use_ssl", "operator": "equals", "value": true},
            "dependsOn": ["use_ssl"]
        }
    }
"""

import logging
from typing import Any, Dict, List, Optional, Set

from configflow.flow_engine.conditional_steps import (
    MISSING,
    contains_strict,
    strict_equals,
    to_number,
)
from configflow.flow_engine.types import ConditionOperator

logger = logging.getLogger(__name__)


def _as_text(value: Any) -> str:
    if not value:
        return ""
    if isinstance(value, bool):
        return "true"
    return str(value)


def evaluate_field_condition(condition: Dict[str, Any], form_values: Dict[str, Any]) -> bool:
    """
    Evaluate a field "conditional" block against the current form values.

    Unlike step conditions, unknown operators keep the field visible.
    """
    raw_value = form_values.get(condition.get('field'), MISSING)
    field_value = None if raw_value is MISSING else raw_value
    compare_value = condition.get('value')
    operator = condition.get('operator')

    if operator == ConditionOperator.EQUALS.value:
        return strict_equals(field_value, compare_value)

    elif operator == ConditionOperator.NOT_EQUALS.value:
        return not strict_equals(field_value, compare_value)

    elif operator == ConditionOperator.CONTAINS.value:
        if isinstance(compare_value, list):
            return contains_strict(compare_value, field_value)
        return _as_text(compare_value) in _as_text(field_value)

    elif operator == ConditionOperator.GREATER_THAN.value:
        return to_number(raw_value) > to_number(compare_value)

    elif operator == ConditionOperator.LESS_THAN.value:
        return to_number(raw_value) < to_number(compare_value)

    elif operator == ConditionOperator.IN.value:
        if not isinstance(compare_value, list):
            return False
        return contains_strict(compare_value, field_value)

    elif operator == ConditionOperator.NOT_IN.value:
        if not isinstance(compare_value, list):
            return True
        return not contains_strict(compare_value, field_value)

    return True


def should_show_field(field_name: str, field_schema: Dict[str, Any], form_values: Dict[str, Any]) -> bool:
    conditional = field_schema.get('conditional')
    if not conditional:
        return True
    return evaluate_field_condition(conditional, form_values)


def get_visible_fields(schema: Dict[str, Dict[str, Any]], form_values: Dict[str, Any]) -> List[str]:
    return [
        name for name, field_schema in schema.items()
        if should_show_field(name, field_schema, form_values)
    ]


def get_field_dependencies(field_name: str, schema: Dict[str, Dict[str, Any]]) -> List[str]:
    """Fields that directly depend on field_name (dependsOn or conditional.field)"""
    dependents = []
    for name, field_schema in schema.items():
        conditional = field_schema.get('conditional') or {}
        if field_name in (field_schema.get('dependsOn') or []) or conditional.get('field') == field_name:
            dependents.append(name)
    return dependents


def get_field_dependency_chain(
    field_name: str,
    schema: Dict[str, Dict[str, Any]],
    visited: Optional[Set[str]] = None
) -> List[str]:
    """
    All fields field_name depends on, transitively.

    Direct dependsOn entries come first, then the conditional field, then
    whatever those pull in. A cycle stops at the first revisited field and
    the chain found so far is returned. The starting field is never part of
    its own chain.
    """
    top_level = visited is None
    if visited is None:
        visited = set()

    if field_name in visited:
        return []
    visited.add(field_name)

    field_schema = schema.get(field_name)
    if not field_schema:
        return []

    dependencies: List[str] = []
    for dep in field_schema.get('dependsOn') or []:
        if dep not in dependencies:
            dependencies.append(dep)

    conditional = field_schema.get('conditional') or {}
    condition_field = conditional.get('field')
    if condition_field and condition_field not in dependencies:
        dependencies.append(condition_field)

    for dep in list(dependencies):
        for chained in get_field_dependency_chain(dep, schema, visited):
            if chained not in dependencies:
                dependencies.append(chained)

    if top_level and field_name in dependencies:
        logger.debug(f"Circular field dependency detected for {field_name}")
        dependencies.remove(field_name)

    return dependencies
