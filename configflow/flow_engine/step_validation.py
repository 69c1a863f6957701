"""
Step Validation - validates submitted step data against a StepDefinition.

Validates:
- Required fields from schema.required
- Field types (string, number, boolean)
- Min/max lengths and values
- Patterns (regex) and formats (email, url)
- Step-level validators (validation.validators)
- Custom validators (built-in or registered at runtime)
"""

import logging
import math
import re
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse

from configflow.flow_engine.conditional_steps import resolve_path, strict_equals, to_number
from configflow.flow_engine.types import (
    ConditionOperator,
    FieldType,
    FieldValidationResult,
    ValidationResult,
    ValidatorType,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
IPV4_PATTERN = re.compile(r'^(\d{1,3}\.){3}\d{1,3}$')
IPV6_PATTERN = re.compile(r'^[0-9a-fA-F:]+$')

ROOT_FIELD = 'root'
CUSTOM_ERROR_KEY = '_custom'

CustomValidator = Callable[[Any], FieldValidationResult]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _bound(value: Any) -> Optional[float]:
    """Numeric min/max limit; None when absent or not a number"""
    if value is None:
        return None
    number = to_number(value)
    return None if math.isnan(number) else number


def _is_empty(value: Any) -> bool:
    return value is None or value == ''


def is_valid_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return bool(parsed.scheme) and bool(parsed.netloc or parsed.path)


def validate_ip_address(value: Any) -> FieldValidationResult:
    if not isinstance(value, str):
        return FieldValidationResult(valid=False, error='Must be a string')
    if not IPV4_PATTERN.match(value) and not IPV6_PATTERN.match(value):
        return FieldValidationResult(valid=False, error='Invalid IP address')
    return FieldValidationResult(valid=True)


def validate_port(value: Any) -> FieldValidationResult:
    try:
        port = float(value)
    except (TypeError, ValueError):
        port = None
    if port is None or port != port or port < 1 or port > 65535:
        return FieldValidationResult(valid=False, error='Port must be between 1 and 65535')
    return FieldValidationResult(valid=True)


def validate_url(value: Any) -> FieldValidationResult:
    if not is_valid_url(value):
        return FieldValidationResult(valid=False, error='Invalid URL')
    return FieldValidationResult(valid=True)


BUILT_IN_VALIDATORS: Dict[str, CustomValidator] = {
    'ip_address': validate_ip_address,
    'port': validate_port,
    'url': validate_url,
}


def _dependency_met(value: Any, operator: str, expected: Any) -> bool:
    if operator == ConditionOperator.EQUALS.value:
        return strict_equals(value, expected)
    elif operator == ConditionOperator.NOT_EQUALS.value:
        return not strict_equals(value, expected)
    elif operator == ConditionOperator.CONTAINS.value:
        return isinstance(value, list) and any(strict_equals(v, expected) for v in value)
    elif operator == ConditionOperator.EXISTS.value:
        return value is not None
    elif operator == ConditionOperator.NOT_EXISTS.value:
        return value is None
    return False


class StepValidator:
    """
    Validation engine for step data.

    Custom validators are looked up by name. A name of the form
    "<validator>:<field>" runs the validator on that single field; a plain
    name runs it on the whole step data. Unknown names pass with a warning
    unless strict_custom_validators is set.
    """

    def __init__(self, strict_custom_validators: bool = False):
        self.strict_custom_validators = strict_custom_validators
        self._custom_validators: Dict[str, CustomValidator] = dict(BUILT_IN_VALIDATORS)

    def register_custom_validator(self, name: str, func: CustomValidator) -> None:
        self._custom_validators[name] = func
        logger.debug(f"Registered custom validator: {name}")

    def unregister_custom_validator(self, name: str) -> None:
        self._custom_validators.pop(name, None)

    def get_custom_validator(self, name: str) -> Optional[CustomValidator]:
        return self._custom_validators.get(name)

    def validate_step_data(self, step_definition: Dict[str, Any], step_data: Dict[str, Any]) -> ValidationResult:
        """
        Validate step data against step definition.

        Args:
            step_definition: StepDefinition document
            step_data: Values submitted for this step

        Returns:
            ValidationResult; errors keyed by field name, 'root' or '_custom'
        """
        step_data = step_data or {}
        errors: Dict[str, str] = {}
        warnings: Dict[str, str] = {}

        schema = step_definition.get('schema') or {}
        properties = schema.get('properties')
        if properties:
            for field_name in schema.get('required') or []:
                if _is_empty(step_data.get(field_name)):
                    errors[field_name] = f"{field_name} is required"

            for field_name, field_definition in properties.items():
                value = step_data.get(field_name)
                if value is None:
                    continue
                result = self.validate_field(field_definition, value, step_data)
                if not result.valid:
                    errors[field_name] = result.error or f"{field_name} is invalid"
                if result.warning:
                    warnings[field_name] = result.warning

        validation = step_definition.get('validation') or {}
        for validator in validation.get('validators') or []:
            field_name = validator.get('field') or ROOT_FIELD
            result = self._execute_validator(validator, step_data, field_name)
            if not result.valid:
                errors[field_name] = result.error or validator.get('message') or 'Validation failed'
            if result.warning:
                warnings[field_name] = result.warning

        custom_validator = validation.get('custom_validator')
        if custom_validator:
            result = self._execute_custom_validator(custom_validator, step_data)
            if not result.valid:
                errors[CUSTOM_ERROR_KEY] = result.error or 'Custom validation failed'

        return ValidationResult(
            valid=not errors,
            errors=errors,
            warnings=warnings or None
        )

    def validate_field(self, field_definition: Dict[str, Any], value: Any, all_data: Dict[str, Any]) -> FieldValidationResult:
        field_type = field_definition.get('type')
        minimum = _bound(field_definition.get('min'))
        maximum = _bound(field_definition.get('max'))

        if field_type == FieldType.STRING.value and not isinstance(value, str):
            return FieldValidationResult(valid=False, error='Must be a string')
        if field_type == FieldType.NUMBER.value and not _is_number(value):
            return FieldValidationResult(valid=False, error='Must be a number')
        if field_type == FieldType.BOOLEAN.value and not isinstance(value, bool):
            return FieldValidationResult(valid=False, error='Must be a boolean')

        if field_type == FieldType.STRING.value:
            if minimum is not None and len(value) < minimum:
                return FieldValidationResult(valid=False, error=f"Must be at least {field_definition['min']} characters")
            if maximum is not None and len(value) > maximum:
                return FieldValidationResult(valid=False, error=f"Must be at most {field_definition['max']} characters")

            pattern = field_definition.get('pattern')
            if pattern:
                try:
                    matched = re.search(pattern, value) is not None
                except re.error:
                    logger.warning(f"Invalid regex pattern: {pattern}")
                    matched = True
                if not matched:
                    return FieldValidationResult(
                        valid=False,
                        error=field_definition.get('description') or 'Invalid format'
                    )

            field_format = field_definition.get('format')
            if field_format == 'email' and not EMAIL_PATTERN.match(value):
                return FieldValidationResult(valid=False, error='Invalid email format')
            if field_format == 'url' and not is_valid_url(value):
                return FieldValidationResult(valid=False, error='Invalid URL format')

        if field_type == FieldType.NUMBER.value:
            if minimum is not None and value < minimum:
                return FieldValidationResult(valid=False, error=f"Must be at least {field_definition['min']}")
            if maximum is not None and value > maximum:
                return FieldValidationResult(valid=False, error=f"Must be at most {field_definition['max']}")

        depends_on = field_definition.get('depends_on')
        if depends_on:
            dependent_value = resolve_path(all_data, depends_on.get('field') or '')
            if not _dependency_met(dependent_value, depends_on.get('operator'), depends_on.get('value')):
                return FieldValidationResult(valid=True, warning='Field should be empty based on dependencies')

        return FieldValidationResult(valid=True)

    def _execute_validator(self, validator: Dict[str, Any], all_data: Dict[str, Any], field_name: str) -> FieldValidationResult:
        value = all_data if field_name == ROOT_FIELD else resolve_path(all_data, field_name)
        validator_type = validator.get('type')
        message = validator.get('message')
        limit = validator.get('value')

        if validator_type == ValidatorType.REQUIRED.value:
            if _is_empty(value):
                return FieldValidationResult(valid=False, error=message or f"{field_name} is required")

        elif validator_type == ValidatorType.MIN.value:
            minimum = _bound(limit) or 0
            if isinstance(value, str) and len(value) < minimum:
                return FieldValidationResult(valid=False, error=message or f"Must be at least {limit} characters")
            if _is_number(value) and value < minimum:
                return FieldValidationResult(valid=False, error=message or f"Must be at least {limit}")

        elif validator_type == ValidatorType.MAX.value:
            maximum = _bound(limit) or float('inf')
            if isinstance(value, str) and len(value) > maximum:
                return FieldValidationResult(valid=False, error=message or f"Must be at most {limit} characters")
            if _is_number(value) and value > maximum:
                return FieldValidationResult(valid=False, error=message or f"Must be at most {limit}")

        elif validator_type == ValidatorType.PATTERN.value:
            if isinstance(value, str) and limit:
                try:
                    if re.search(limit, value) is None:
                        return FieldValidationResult(valid=False, error=message or 'Invalid format')
                except re.error:
                    logger.warning(f"Invalid regex pattern for {field_name}: {limit}")

        elif validator_type == ValidatorType.EMAIL.value:
            if isinstance(value, str) and not EMAIL_PATTERN.match(value):
                return FieldValidationResult(valid=False, error=message or 'Invalid email format')

        elif validator_type == ValidatorType.URL.value:
            if isinstance(value, str) and not is_valid_url(value):
                return FieldValidationResult(valid=False, error=message or 'Invalid URL format')

        elif validator_type == ValidatorType.CUSTOM.value:
            if validator.get('validator_function'):
                return self._execute_custom_validator(validator['validator_function'], all_data)

        return FieldValidationResult(valid=True)

    def _execute_custom_validator(self, validator_name: str, all_data: Dict[str, Any]) -> FieldValidationResult:
        if ':' in validator_name:
            func_name, field_name = validator_name.split(':', 1)
            func = self._custom_validators.get(func_name)
            if func:
                return func(all_data.get(field_name))
        else:
            func = self._custom_validators.get(validator_name)
            if func:
                return func(all_data)

        if self.strict_custom_validators:
            return FieldValidationResult(valid=False, error=f"Unknown custom validator: {validator_name}")

        logger.warning(f"Custom validator '{validator_name}' not found, skipping")
        return FieldValidationResult(valid=True)


step_validator = StepValidator()


def validate_step_data(step_definition: Dict[str, Any], step_data: Dict[str, Any]) -> ValidationResult:
    return step_validator.validate_step_data(step_definition, step_data)


def validate_field(field_definition: Dict[str, Any], value: Any, all_data: Dict[str, Any]) -> FieldValidationResult:
    return step_validator.validate_field(field_definition, value, all_data)


def register_custom_validator(name: str, func: CustomValidator) -> None:
    step_validator.register_custom_validator(name, func)
