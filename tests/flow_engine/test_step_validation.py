"""
Tests for configflow/flow_engine/step_validation.py
"""

import pytest


STEP = {
    'step_id': 'connection',
    'title': 'Connection',
    'schema': {
        'type': 'object',
        'properties': {
            'host': {'type': 'string', 'title': 'Host', 'min': 3},
            'port': {'type': 'number', 'title': 'Port', 'min': 1, 'max': 65535},
            'email': {'type': 'string', 'title': 'Email', 'format': 'email'},
            'use_ssl': {'type': 'boolean', 'title': 'SSL'},
        },
        'required': ['host'],
    },
}


@pytest.fixture
def validator():
    from configflow.flow_engine.step_validation import StepValidator
    return StepValidator()


class TestSchemaValidation:
    """Tests for StepValidator.validate_step_data() schema checks"""

    def test_valid_data(self, validator):
        """Well-formed data passes"""
        result = validator.validate_step_data(STEP, {'host': 'hub.local', 'port': 8123, 'use_ssl': True})
        assert result.valid is True
        assert result.errors == {}

    def test_required_field(self, validator):
        """Missing and empty required fields fail"""
        assert validator.validate_step_data(STEP, {}).errors == {'host': 'host is required'}
        assert validator.validate_step_data(STEP, {'host': ''}).errors == {'host': 'host is required'}

    def test_type_mismatch(self, validator):
        """Values of the wrong type fail with a type message"""
        result = validator.validate_step_data(STEP, {'host': 'hub', 'port': '8123', 'use_ssl': 'yes'})
        assert result.errors['port'] == 'Must be a number'
        assert result.errors['use_ssl'] == 'Must be a boolean'

    def test_ranges(self, validator):
        """String length and number bounds"""
        result = validator.validate_step_data(STEP, {'host': 'ab', 'port': 70000})
        assert result.errors['host'] == 'Must be at least 3 characters'
        assert result.errors['port'] == 'Must be at most 65535'

    def test_email_format(self, validator):
        """format=email is enforced"""
        result = validator.validate_step_data(STEP, {'host': 'hub', 'email': 'not-an-email'})
        assert result.errors == {'email': 'Invalid email format'}

    def test_pattern_uses_description_as_message(self, validator):
        """A failed pattern reports the field description"""
        step = {'schema': {'type': 'object', 'properties': {
            'code': {'type': 'string', 'pattern': '^[0-9]{4}$', 'description': 'Four digits'},
        }}}
        assert validator.validate_step_data(step, {'code': '12a4'}).errors == {'code': 'Four digits'}

    def test_to_dict(self, validator):
        """to_dict omits empty warnings"""
        result = validator.validate_step_data(STEP, {'host': 'hub'})
        assert result.to_dict() == {'valid': True, 'errors': {}}


class TestStepValidators:
    """Tests for validation.validators entries"""

    def test_required_validator_with_message(self, validator):
        """Validator message overrides the default"""
        step = {'validation': {'validators': [
            {'type': 'required', 'field': 'token', 'message': 'Token needed'},
        ]}}
        assert validator.validate_step_data(step, {}).errors == {'token': 'Token needed'}

    def test_min_max_validators(self, validator):
        """min/max apply to lengths and numbers"""
        step = {'validation': {'validators': [
            {'type': 'min', 'field': 'name', 'value': 2},
            {'type': 'max', 'field': 'count', 'value': 10},
        ]}}
        result = validator.validate_step_data(step, {'name': 'a', 'count': 11})
        assert result.errors == {'name': 'Must be at least 2 characters', 'count': 'Must be at most 10'}

    def test_string_limits_are_coerced(self, validator):
        """Numeric strings work as limits and unparseable ones are ignored"""
        step = {
            'schema': {'type': 'object', 'properties': {
                'host': {'type': 'string', 'min': '3'},
                'port': {'type': 'number', 'max': 'lots'},
            }},
            'validation': {'validators': [
                {'type': 'min', 'field': 'count', 'value': '5'},
                {'type': 'max', 'field': 'name', 'value': 'many'},
            ]},
        }
        result = validator.validate_step_data(step, {'host': 'ab', 'port': 70000, 'count': 4, 'name': 'x' * 50})
        assert result.errors == {'host': 'Must be at least 3 characters', 'count': 'Must be at least 5'}

    def test_nested_field_path(self, validator):
        """Validator fields may be dotted paths"""
        step = {'validation': {'validators': [{'type': 'url', 'field': 'server.url'}]}}
        result = validator.validate_step_data(step, {'server': {'url': 'nope'}})
        assert result.errors == {'server.url': 'Invalid URL format'}


class TestCustomValidators:
    """Tests for built-in and registered custom validators"""

    def test_builtin_port_on_field(self, validator):
        """port:<field> validates a single field"""
        step = {'validation': {'validators': [
            {'type': 'custom', 'field': 'port', 'validator_function': 'port:port'},
        ]}}
        result = validator.validate_step_data(step, {'port': 70000})
        assert result.errors == {'port': 'Port must be between 1 and 65535'}
        assert validator.validate_step_data(step, {'port': 443}).valid is True

    def test_builtin_ip_address(self, validator):
        """ip_address accepts IPv4 and rejects garbage"""
        step = {'validation': {'custom_validator': 'ip_address:host'}}
        assert validator.validate_step_data(step, {'host': '192.168.1.10'}).valid is True
        assert validator.validate_step_data(step, {'host': 'my host'}).errors == {'_custom': 'Invalid IP address'}

    def test_registered_validator_gets_whole_data(self, validator):
        """A plain name receives the whole step data"""
        from configflow.flow_engine.types import FieldValidationResult

        def passwords_match(data):
            if data.get('password') != data.get('confirm'):
                return FieldValidationResult(valid=False, error='Passwords differ')
            return FieldValidationResult(valid=True)

        validator.register_custom_validator('passwords_match', passwords_match)
        step = {'validation': {'custom_validator': 'passwords_match'}}
        result = validator.validate_step_data(step, {'password': 'a', 'confirm': 'b'})
        assert result.errors == {'_custom': 'Passwords differ'}

        validator.unregister_custom_validator('passwords_match')
        assert validator.get_custom_validator('passwords_match') is None

    def test_unknown_validator_fails_open(self, validator, caplog):
        """Unknown names pass with a warning by default"""
        step = {'validation': {'custom_validator': 'does_not_exist'}}
        with caplog.at_level('WARNING'):
            result = validator.validate_step_data(step, {})
        assert result.valid is True
        assert 'does_not_exist' in caplog.text

    def test_unknown_validator_strict_mode(self):
        """Strict mode fails closed"""
        from configflow.flow_engine.step_validation import StepValidator

        strict = StepValidator(strict_custom_validators=True)
        step = {'validation': {'custom_validator': 'does_not_exist'}}
        result = strict.validate_step_data(step, {})
        assert result.errors == {'_custom': 'Unknown custom validator: does_not_exist'}


class TestDependsOnWarning:
    """Tests for field depends_on warnings"""

    def test_unmet_dependency_warns(self, validator):
        """A value set while its dependency is unmet gives a warning, not an error"""
        step = {'schema': {'type': 'object', 'properties': {
            'mode': {'type': 'string'},
            'advanced_port': {'type': 'number',
                              'depends_on': {'field': 'mode', 'operator': 'equals', 'value': 'advanced'}},
        }}}
        result = validator.validate_step_data(step, {'mode': 'simple', 'advanced_port': 99})
        assert result.valid is True
        assert result.warnings == {'advanced_port': 'Field should be empty based on dependencies'}
