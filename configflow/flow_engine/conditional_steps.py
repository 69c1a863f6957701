"""
Conditional Steps - step visibility and navigation over accumulated flow data

Supports:
- Simple conditions (equals, not_equals, contains, greater_than, ...)
- Nested conditions combined with "and" / "or"
- Explicit navigation overrides (navigation.next_step)
"""

import logging
import math
from typing import Any, Dict, List, Optional

from configflow.flow_engine.types import (
    ConditionOperator,
    LogicalOperator,
    wizard_step_tag,
)

logger = logging.getLogger(__name__)

# Marks a lookup that found no key, as opposed to an explicit None
MISSING = object()


def strict_equals(actual: Any, expected: Any) -> bool:
    """
    Equality without type coercion.

    "5" never equals 5, and booleans never equal numbers (True == 1 is
    True in Python, so bools are compared by type first).
    """
    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected
    return actual == expected


def to_number(value: Any) -> float:
    """
    Numeric coercion used by greater_than / less_than.

    An explicit None counts as 0; MISSING and unparseable values give NaN,
    so an absent field never satisfies an ordering comparison.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if text == "":
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def contains_strict(items: List[Any], value: Any) -> bool:
    return any(strict_equals(item, value) for item in items)


def resolve_path(data: Any, path: str, default: Any = None) -> Any:
    """Walk a dotted path through nested dicts; default when any hop is missing"""
    current = data
    for part in path.split('.'):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def check_operator(actual: Any, operator: str, expected: Any) -> bool:
    """
    Apply a condition operator.

    Args:
        actual: Value resolved from the flow data
        operator: ConditionOperator value
        expected: condition["value"]

    Returns:
        True if the condition holds; unknown operators never hold
    """
    if operator == ConditionOperator.GREATER_THAN.value:
        return to_number(actual) > to_number(expected)

    elif operator == ConditionOperator.LESS_THAN.value:
        return to_number(actual) < to_number(expected)

    if actual is MISSING:
        actual = None

    if operator == ConditionOperator.EQUALS.value:
        return strict_equals(actual, expected)

    elif operator == ConditionOperator.NOT_EQUALS.value:
        return not strict_equals(actual, expected)

    elif operator == ConditionOperator.CONTAINS.value:
        return isinstance(actual, list) and contains_strict(actual, expected)

    elif operator == ConditionOperator.EXISTS.value:
        return actual is not None

    elif operator == ConditionOperator.NOT_EXISTS.value:
        return actual is None

    elif operator == ConditionOperator.IN.value:
        return isinstance(expected, list) and contains_strict(expected, actual)

    elif operator == ConditionOperator.NOT_IN.value:
        return isinstance(expected, list) and not contains_strict(expected, actual)

    logger.warning(f"Unknown condition operator: {operator}")
    return False


def _resolve_condition_value(condition: Dict[str, Any], flow_data: Dict[str, Any]) -> Any:
    depends_on = condition.get('depends_on') or ''
    field_name = condition.get('field')

    if not field_name:
        return flow_data.get(depends_on, MISSING)

    # Step data may be stored under the step id or under its wizard tag
    step_data = flow_data.get(depends_on)
    if step_data is None:
        step_data = flow_data.get(wizard_step_tag(depends_on))

    if isinstance(step_data, dict):
        return step_data.get(field_name, MISSING)

    path = depends_on if '.' in depends_on else f"{depends_on}.{field_name}"
    return resolve_path(flow_data, path, MISSING)


def evaluate_condition(condition: Dict[str, Any], flow_data: Dict[str, Any]) -> bool:
    """
    Evaluate a step condition against accumulated flow data.

    Condition example:
    {
        "logic": "or",
        "conditions": [
            {"depends_on": "basic", "field": "mode", "operator": "equals", "value": "advanced"},
            {"depends_on": "basic", "field": "port", "operator": "greater_than", "value": 1024}
        ]
    }

    Args:
        condition: StepCondition document
        flow_data: Step id -> submitted values

    Returns:
        True if the condition matches
    """
    nested = condition.get('conditions') or []
    if nested:
        results = [evaluate_condition(c, flow_data) for c in nested]
        if condition.get('logic') == LogicalOperator.OR.value:
            return any(results)
        return all(results)

    actual = _resolve_condition_value(condition, flow_data)
    return check_operator(actual, condition.get('operator'), condition.get('value'))


def should_skip_step(step: Dict[str, Any], flow_data: Dict[str, Any]) -> bool:
    condition = step.get('condition')
    if not condition:
        return False
    return not evaluate_condition(condition, flow_data)


def find_step_index(definition: Dict[str, Any], step_id: str) -> int:
    for index, step in enumerate(definition.get('steps') or []):
        if step.get('step_id') == step_id:
            return index
    return -1


def determine_next_step(
    definition: Dict[str, Any],
    current_step_id: str,
    flow_data: Dict[str, Any]
) -> Optional[str]:
    """
    Next step id after current_step_id.

    An explicit navigation.next_step on the current step wins; otherwise the
    first following step whose condition holds is returned.

    Returns:
        Step id, or None when the current step is unknown or no step remains
    """
    steps = definition.get('steps') or []
    current_index = find_step_index(definition, current_step_id)
    if current_index == -1:
        return None

    navigation = steps[current_index].get('navigation') or {}
    if navigation.get('next_step'):
        return navigation['next_step']

    for step in steps[current_index + 1:]:
        if should_skip_step(step, flow_data):
            logger.debug(f"Skipping step {step.get('step_id')}: condition not met")
            continue
        return step.get('step_id')

    return None


def get_visible_steps(definition: Dict[str, Any], flow_data: Dict[str, Any]) -> List[str]:
    return [
        step.get('step_id')
        for step in definition.get('steps') or []
        if not should_skip_step(step, flow_data)
    ]
