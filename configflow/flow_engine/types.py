"""
Shared vocabulary of the configuration flow engine.

Flow definitions travel as plain JSON documents (dicts), exactly as they are
stored in integration_flow_definitions.definition. The enums below name the
allowed values; results produced by the engine are small dataclasses with
to_dict() for the API layer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class FlowType(str, Enum):
    """Handler strategy selected for an integration domain"""
    NONE = "none"
    MANUAL = "manual"
    DISCOVERY = "discovery"
    OAUTH = "oauth"
    WIZARD = "wizard"
    HYBRID = "hybrid"


class StepType(str, Enum):
    MANUAL = "manual"
    DISCOVERY = "discovery"
    OAUTH = "oauth"
    WIZARD = "wizard"
    CONFIRM = "confirm"


class FieldType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"
    MULTISELECT = "multiselect"
    PASSWORD = "password"
    URL = "url"
    EMAIL = "email"
    FILE = "file"
    OBJECT = "object"
    ARRAY = "array"


class ConditionOperator(str, Enum):
    """Operators usable in step and field conditions"""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    IN = "in"
    NOT_IN = "not_in"


class LogicalOperator(str, Enum):
    AND = "and"
    OR = "or"


class ValidatorType(str, Enum):
    REQUIRED = "required"
    MIN = "min"
    MAX = "max"
    PATTERN = "pattern"
    EMAIL = "email"
    URL = "url"
    CUSTOM = "custom"


FLOW_TYPES = [t.value for t in FlowType]
STEP_TYPES = [t.value for t in StepType]
FIELD_TYPES = [t.value for t in FieldType]
CONDITION_OPERATORS = [o.value for o in ConditionOperator]
VALIDATOR_TYPES = [v.value for v in ValidatorType]

# Operators that compare against condition["value"]
OPERATORS_NEEDING_VALUE = [
    ConditionOperator.EQUALS.value,
    ConditionOperator.NOT_EQUALS.value,
    ConditionOperator.CONTAINS.value,
    ConditionOperator.GREATER_THAN.value,
    ConditionOperator.LESS_THAN.value,
    ConditionOperator.IN.value,
    ConditionOperator.NOT_IN.value,
]

# Well-known step ids used by the handlers
STEP_PICK_INTEGRATION = "pick_integration"
STEP_DISCOVER = "discover"
STEP_CONFIGURE = "configure"
STEP_CONFIRM = "confirm"
STEP_OAUTH_AUTHORIZE = "oauth_authorize"
STEP_OAUTH_CALLBACK = "oauth_callback"
WIZARD_STEP_PREFIX = "wizard_step_"

# Prefixes stripped when mapping a presentation step tag back to a step_id
STEP_ID_PREFIXES = (WIZARD_STEP_PREFIX, "discovery_", "oauth_")

# Domains known to use OAuth even when the catalog says otherwise
FORCED_OAUTH_DOMAINS = [
    'google_assistant',
    'google_calendar',
    'google',
    'spotify',
    'nest',
    'withings',
    'fitbit',
    'netatmo',
    'todoist',
    'somfy_mylink',
    'smartthings',
]

DEFAULT_OAUTH_SCOPES = {
    'google_assistant': ['https://www.googleapis.com/auth/assistant-sdk-prototype'],
    'google_calendar': ['https://www.googleapis.com/auth/calendar'],
    'google': [
        'https://www.googleapis.com/auth/userinfo.profile',
        'https://www.googleapis.com/auth/userinfo.email',
    ],
    'nest': ['https://www.googleapis.com/auth/sdm.service'],
    'spotify': ['user-read-private', 'user-read-email'],
}


def is_forced_oauth_domain(domain: str) -> bool:
    return domain in FORCED_OAUTH_DOMAINS


def default_oauth_provider(domain: str) -> str:
    """Provider name assumed for an OAuth domain without explicit config"""
    return 'google' if domain.startswith('google') else domain


def wizard_step_tag(step_id: str) -> str:
    return f"{WIZARD_STEP_PREFIX}{step_id}"


@dataclass
class ValidationResult:
    """Outcome of validating submitted step data"""
    valid: bool
    errors: Dict[str, str] = field(default_factory=dict)
    warnings: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {'valid': self.valid, 'errors': self.errors}
        if self.warnings:
            data['warnings'] = self.warnings
        return data


@dataclass
class FieldValidationResult:
    valid: bool
    error: Optional[str] = None
    warning: Optional[str] = None


@dataclass
class DefinitionError:
    """One structural problem found in a flow definition"""
    field: str
    message: str
    code: str

    def to_dict(self) -> Dict[str, str]:
        return {'field': self.field, 'message': self.message, 'code': self.code}


@dataclass
class DefinitionValidationResult:
    valid: bool
    errors: List[DefinitionError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'valid': self.valid,
            'errors': [e.to_dict() for e in self.errors],
        }
