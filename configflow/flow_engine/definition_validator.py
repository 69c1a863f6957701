"""
Structural validation of flow definitions.

Never raises: every problem is reported as a DefinitionError carrying the
path of the offending element (e.g. "steps[0].schema.properties[host].type")
and a machine readable code.
"""

from typing import Any, Dict, List

from configflow.flow_engine.types import (
    CONDITION_OPERATORS,
    FIELD_TYPES,
    FLOW_TYPES,
    OPERATORS_NEEDING_VALUE,
    STEP_TYPES,
    VALIDATOR_TYPES,
    DefinitionError,
    DefinitionValidationResult,
    FieldType,
    ValidatorType,
)

INVALID_FLOW_TYPE = 'INVALID_FLOW_TYPE'
REQUIRED_FIELD = 'REQUIRED_FIELD'
DUPLICATE_STEP_ID = 'DUPLICATE_STEP_ID'
INVALID_STEP_REFERENCE = 'INVALID_STEP_REFERENCE'
INVALID_STEP_TYPE = 'INVALID_STEP_TYPE'
INVALID_SCHEMA_TYPE = 'INVALID_SCHEMA_TYPE'
INVALID_SCHEMA_PROPERTIES = 'INVALID_SCHEMA_PROPERTIES'
INVALID_FIELD_TYPE = 'INVALID_FIELD_TYPE'
INVALID_RANGE = 'INVALID_RANGE'
INVALID_OPERATOR = 'INVALID_OPERATOR'
INVALID_VALIDATOR_TYPE = 'INVALID_VALIDATOR_TYPE'


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_flow_definition(definition: Dict[str, Any]) -> DefinitionValidationResult:
    """
    Validate a complete flow definition.

    Args:
        definition: FlowDefinition document

    Returns:
        DefinitionValidationResult with every error found
    """
    errors: List[DefinitionError] = []
    definition = definition if isinstance(definition, dict) else {}

    flow_type = definition.get('flow_type')
    if flow_type not in FLOW_TYPES:
        errors.append(DefinitionError(
            field='flow_type',
            message=f"Invalid flow_type: {flow_type}. Must be one of: {', '.join(FLOW_TYPES)}",
            code=INVALID_FLOW_TYPE,
        ))

    if _is_blank(definition.get('name')):
        errors.append(DefinitionError(
            field='name',
            message='Flow name is required and must be a non-empty string',
            code=REQUIRED_FIELD,
        ))

    steps = definition.get('steps')
    if not isinstance(steps, list) or not steps:
        errors.append(DefinitionError(
            field='steps',
            message='Flow must have at least one step',
            code=REQUIRED_FIELD,
        ))
        return DefinitionValidationResult(valid=False, errors=errors)

    for index, step in enumerate(steps):
        errors.extend(_validate_step(step if isinstance(step, dict) else {}, index))

    step_ids = [step.get('step_id') for step in steps if isinstance(step, dict)]
    duplicates = []
    for position, step_id in enumerate(step_ids):
        if step_id in step_ids[:position] and step_id not in duplicates:
            duplicates.append(step_id)
    if duplicates:
        errors.append(DefinitionError(
            field='steps',
            message=f"Duplicate step IDs found: {', '.join(str(d) for d in duplicates)}",
            code=DUPLICATE_STEP_ID,
        ))

    initial_step = definition.get('initial_step')
    if initial_step and initial_step not in step_ids:
        errors.append(DefinitionError(
            field='initial_step',
            message=f"Initial step '{initial_step}' not found in steps array",
            code=INVALID_STEP_REFERENCE,
        ))

    for index, step in enumerate(steps):
        navigation = step.get('navigation') if isinstance(step, dict) else None
        if navigation is None:
            continue
        if not isinstance(navigation, dict):
            errors.append(DefinitionError(
                field=f"steps[{index}].navigation",
                message='Step navigation must be an object',
                code=INVALID_STEP_REFERENCE,
            ))
            continue
        next_step = navigation.get('next_step')
        if next_step and next_step not in step_ids:
            errors.append(DefinitionError(
                field=f"steps[{index}].navigation.next_step",
                message=f"Next step '{next_step}' not found in steps array",
                code=INVALID_STEP_REFERENCE,
            ))
        skip_to = navigation.get('skip_to_step')
        if skip_to and skip_to not in step_ids:
            errors.append(DefinitionError(
                field=f"steps[{index}].navigation.skip_to_step",
                message=f"Skip to step '{skip_to}' not found in steps array",
                code=INVALID_STEP_REFERENCE,
            ))

    return DefinitionValidationResult(valid=not errors, errors=errors)


def _validate_step(step: Dict[str, Any], index: int) -> List[DefinitionError]:
    errors = []
    prefix = f"steps[{index}]"

    if _is_blank(step.get('step_id')):
        errors.append(DefinitionError(
            field=f"{prefix}.step_id",
            message='Step ID is required and must be a non-empty string',
            code=REQUIRED_FIELD,
        ))

    step_type = step.get('step_type')
    if step_type not in STEP_TYPES:
        errors.append(DefinitionError(
            field=f"{prefix}.step_type",
            message=f"Invalid step_type: {step_type}. Must be one of: {', '.join(STEP_TYPES)}",
            code=INVALID_STEP_TYPE,
        ))

    if _is_blank(step.get('title')):
        errors.append(DefinitionError(
            field=f"{prefix}.title",
            message='Step title is required and must be a non-empty string',
            code=REQUIRED_FIELD,
        ))

    schema = step.get('schema')
    if not isinstance(schema, dict):
        errors.append(DefinitionError(
            field=f"{prefix}.schema",
            message='Step schema is required and must be an object',
            code=REQUIRED_FIELD,
        ))
    else:
        if schema.get('type') != 'object':
            errors.append(DefinitionError(
                field=f"{prefix}.schema.type",
                message='Step schema type must be "object"',
                code=INVALID_SCHEMA_TYPE,
            ))

        properties = schema.get('properties')
        if properties is not None and not isinstance(properties, dict):
            errors.append(DefinitionError(
                field=f"{prefix}.schema.properties",
                message='Step schema properties must be an object',
                code=INVALID_SCHEMA_PROPERTIES,
            ))
        elif properties:
            for field_name, field_definition in properties.items():
                errors.extend(_validate_field(field_definition, index, field_name))

    if step.get('condition'):
        errors.extend(_validate_condition(step['condition'], f"{prefix}.condition"))

    validation = step.get('validation')
    if validation is not None and not isinstance(validation, dict):
        errors.append(DefinitionError(
            field=f"{prefix}.validation",
            message='Step validation must be an object',
            code=INVALID_VALIDATOR_TYPE,
        ))
        return errors

    validators = (validation or {}).get('validators') or []
    if not isinstance(validators, list):
        errors.append(DefinitionError(
            field=f"{prefix}.validation.validators",
            message='Step validators must be an array',
            code=INVALID_VALIDATOR_TYPE,
        ))
        return errors

    for validator_index, validator in enumerate(validators):
        errors.extend(_validate_validator(validator, index, validator_index))

    return errors


def _validate_field(field_definition: Any, step_index: int, field_name: str) -> List[DefinitionError]:
    errors = []
    prefix = f"steps[{step_index}].schema.properties[{field_name}]"

    if not isinstance(field_definition, dict):
        errors.append(DefinitionError(
            field=prefix,
            message='Field definition must be an object',
            code=INVALID_FIELD_TYPE,
        ))
        return errors

    field_type = field_definition.get('type')

    if field_type not in FIELD_TYPES:
        errors.append(DefinitionError(
            field=f"{prefix}.type",
            message=f"Invalid field type: {field_type}. Must be one of: {', '.join(FIELD_TYPES)}",
            code=INVALID_FIELD_TYPE,
        ))

    if _is_blank(field_definition.get('title')):
        errors.append(DefinitionError(
            field=f"{prefix}.title",
            message='Field title is required and must be a non-empty string',
            code=REQUIRED_FIELD,
        ))

    if field_type in (FieldType.SELECT.value, FieldType.MULTISELECT.value) and not field_definition.get('options'):
        errors.append(DefinitionError(
            field=f"{prefix}.options",
            message='Select and multiselect fields must have options defined',
            code=REQUIRED_FIELD,
        ))

    if field_type == FieldType.NUMBER.value:
        minimum = field_definition.get('min')
        maximum = field_definition.get('max')
        for bound_name, bound in (('min', minimum), ('max', maximum)):
            if bound is not None and not _is_number(bound):
                errors.append(DefinitionError(
                    field=f"{prefix}.{bound_name}",
                    message=f"Field {bound_name} value must be a number",
                    code=INVALID_RANGE,
                ))
        if _is_number(minimum) and _is_number(maximum) and minimum > maximum:
            errors.append(DefinitionError(
                field=f"{prefix}.min",
                message='Field min value must be less than or equal to max value',
                code=INVALID_RANGE,
            ))

    if field_type == FieldType.OBJECT.value and field_definition.get('properties'):
        nested_properties = field_definition['properties']
        if not isinstance(nested_properties, dict):
            errors.append(DefinitionError(
                field=f"{prefix}.properties",
                message='Object field properties must be an object',
                code=INVALID_SCHEMA_PROPERTIES,
            ))
        else:
            for nested_name, nested in nested_properties.items():
                errors.extend(_validate_field(nested, step_index, f"{field_name}.{nested_name}"))

    if field_type == FieldType.ARRAY.value and field_definition.get('items'):
        errors.extend(_validate_field(field_definition['items'], step_index, f"{field_name}[]"))

    return errors


def _validate_condition(condition: Any, path: str) -> List[DefinitionError]:
    errors = []
    if not isinstance(condition, dict):
        errors.append(DefinitionError(
            field=path,
            message='Condition must be an object with depends_on and operator',
            code=REQUIRED_FIELD,
        ))
        return errors

    nested = condition.get('conditions')

    # Groups only combine their children
    if isinstance(nested, list) and nested:
        for nested_index, nested_condition in enumerate(nested):
            errors.extend(_validate_condition(nested_condition, f"{path}.conditions[{nested_index}]"))
        return errors

    if _is_blank(condition.get('depends_on')):
        errors.append(DefinitionError(
            field=f"{path}.depends_on",
            message='Condition depends_on is required and must be a string',
            code=REQUIRED_FIELD,
        ))

    operator = condition.get('operator')
    if operator not in CONDITION_OPERATORS:
        errors.append(DefinitionError(
            field=f"{path}.operator",
            message=f"Invalid operator: {operator}. Must be one of: {', '.join(CONDITION_OPERATORS)}",
            code=INVALID_OPERATOR,
        ))

    if operator in OPERATORS_NEEDING_VALUE and 'value' not in condition:
        errors.append(DefinitionError(
            field=f"{path}.value",
            message=f"Operator '{operator}' requires a value",
            code=REQUIRED_FIELD,
        ))

    return errors


def _validate_validator(validator: Any, step_index: int, validator_index: int) -> List[DefinitionError]:
    errors = []
    prefix = f"steps[{step_index}].validation.validators[{validator_index}]"

    if not isinstance(validator, dict):
        errors.append(DefinitionError(
            field=prefix,
            message='Validator must be an object with a type',
            code=INVALID_VALIDATOR_TYPE,
        ))
        return errors

    validator_type = validator.get('type')

    if validator_type not in VALIDATOR_TYPES:
        errors.append(DefinitionError(
            field=f"{prefix}.type",
            message=f"Invalid validator type: {validator_type}. Must be one of: {', '.join(VALIDATOR_TYPES)}",
            code=INVALID_VALIDATOR_TYPE,
        ))

    if validator_type == ValidatorType.CUSTOM.value and not validator.get('validator_function'):
        errors.append(DefinitionError(
            field=f"{prefix}.validator_function",
            message='Custom validators must specify a validator_function',
            code=REQUIRED_FIELD,
        ))

    if validator_type in (ValidatorType.MIN.value, ValidatorType.MAX.value) and not _is_number(validator.get('value')):
        errors.append(DefinitionError(
            field=f"{prefix}.value",
            message=f"Validator '{validator_type}' requires a numeric value",
            code=INVALID_RANGE,
        ))

    return errors


def validate_flow_definition_structure(definition: Any) -> bool:
    """Quick shape check: flow_type, name and a non-empty steps list"""
    if not isinstance(definition, dict):
        return False
    if not isinstance(definition.get('flow_type'), str) or not definition['flow_type']:
        return False
    if not isinstance(definition.get('name'), str) or not definition['name']:
        return False
    steps = definition.get('steps')
    return isinstance(steps, list) and len(steps) > 0
