"""
Tests for configflow/flow_engine/conditional_steps.py
"""

import pytest


def _cond(operator, value=None, depends_on='basic', field='mode'):
    condition = {'depends_on': depends_on, 'field': field, 'operator': operator}
    if value is not None:
        condition['value'] = value
    return condition


class TestOperators:
    """Tests for evaluate_condition() leaf operators"""

    def test_equals_is_strict(self):
        """A string never equals a number"""
        from configflow.flow_engine.conditional_steps import evaluate_condition

        data = {'basic': {'port': '8080'}}
        assert evaluate_condition(_cond('equals', 8080, field='port'), data) is False
        assert evaluate_condition(_cond('equals', '8080', field='port'), data) is True

    def test_booleans_never_equal_numbers(self):
        """True and 1 are different values"""
        from configflow.flow_engine.conditional_steps import evaluate_condition

        data = {'basic': {'enabled': True}}
        assert evaluate_condition(_cond('equals', 1, field='enabled'), data) is False
        assert evaluate_condition(_cond('not_equals', 1, field='enabled'), data) is True
        assert evaluate_condition(_cond('equals', True, field='enabled'), data) is True

    def test_greater_and_less_than_coerce(self):
        """Numeric strings are compared as numbers"""
        from configflow.flow_engine.conditional_steps import evaluate_condition

        data = {'basic': {'port': '8080'}}
        assert evaluate_condition(_cond('greater_than', 1024, field='port'), data) is True
        assert evaluate_condition(_cond('less_than', '9000', field='port'), data) is True
        assert evaluate_condition(_cond('less_than', 80, field='port'), data) is False

    def test_greater_than_with_missing_value_is_false(self):
        """Missing values coerce to NaN and never compare"""
        from configflow.flow_engine.conditional_steps import evaluate_condition

        assert evaluate_condition(_cond('greater_than', 0, field='port'), {'basic': {}}) is False
        assert evaluate_condition(_cond('less_than', 0, field='port'), {'basic': {}}) is False

    def test_explicit_null_counts_as_zero(self):
        """An explicit None compares as 0, unlike an absent field"""
        from configflow.flow_engine.conditional_steps import evaluate_condition

        assert evaluate_condition(_cond('less_than', 5, field='port'), {'basic': {'port': None}}) is True
        assert evaluate_condition(_cond('less_than', 5, field='port'), {'basic': {}}) is False
        assert evaluate_condition(_cond('exists', None, field='port'), {'basic': {}}) is False
        assert evaluate_condition(_cond('not_exists', None, field='port'), {'basic': {}}) is True

    def test_contains_requires_list(self):
        """contains is list membership only"""
        from configflow.flow_engine.conditional_steps import evaluate_condition

        assert evaluate_condition(_cond('contains', 'zigbee', field='protocols'),
                                  {'basic': {'protocols': ['zigbee', 'zwave']}}) is True
        assert evaluate_condition(_cond('contains', 'zig', field='protocols'),
                                  {'basic': {'protocols': 'zigbee'}}) is False

    def test_exists_and_not_exists(self):
        """exists means defined and non-null"""
        from configflow.flow_engine.conditional_steps import evaluate_condition

        assert evaluate_condition(_cond('exists'), {'basic': {'mode': 'x'}}) is True
        assert evaluate_condition(_cond('exists'), {'basic': {'mode': None}}) is False
        assert evaluate_condition(_cond('not_exists'), {'basic': {}}) is True

    def test_in_and_not_in_need_list_value(self):
        """in/not_in are false when the condition value is not a list"""
        from configflow.flow_engine.conditional_steps import evaluate_condition

        data = {'basic': {'mode': 'advanced'}}
        assert evaluate_condition(_cond('in', ['simple', 'advanced']), data) is True
        assert evaluate_condition(_cond('not_in', ['simple']), data) is True
        assert evaluate_condition(_cond('in', 'advanced'), data) is False
        assert evaluate_condition(_cond('not_in', 'simple'), data) is False

    def test_unknown_operator_is_false(self):
        """Unknown operators never hold"""
        from configflow.flow_engine.conditional_steps import evaluate_condition

        assert evaluate_condition(_cond('matches', 'advanced'), {'basic': {'mode': 'advanced'}}) is False


class TestValueLookup:
    """Tests for how condition values are resolved from flow data"""

    def test_wizard_tag_fallback(self):
        """Step data stored under wizard_step_<id> is found"""
        from configflow.flow_engine.conditional_steps import evaluate_condition

        data = {'wizard_step_basic': {'mode': 'advanced'}}
        assert evaluate_condition(_cond('equals', 'advanced'), data) is True

    def test_dotted_depends_on_path(self):
        """Without step data a dotted depends_on is walked as a path"""
        from configflow.flow_engine.conditional_steps import evaluate_condition

        data = {'network': {'wifi': {'ssid': 'home'}}}
        condition = _cond('equals', 'home', depends_on='network.wifi.ssid', field='ssid')
        assert evaluate_condition(condition, data) is True

    def test_lookup_without_field(self):
        """Without field the whole data[depends_on] is compared"""
        from configflow.flow_engine.conditional_steps import evaluate_condition

        condition = {'depends_on': 'discovered', 'operator': 'equals', 'value': True}
        assert evaluate_condition(condition, {'discovered': True}) is True
        assert evaluate_condition(condition, {}) is False


class TestNestedConditions:
    """Tests for and/or groups"""

    def test_or_group(self):
        """or holds when any member holds"""
        from configflow.flow_engine.conditional_steps import evaluate_condition

        condition = {
            'logic': 'or',
            'conditions': [_cond('equals', 'advanced'), _cond('greater_than', 1024, field='port')],
        }
        assert evaluate_condition(condition, {'basic': {'mode': 'simple', 'port': 8080}}) is True
        assert evaluate_condition(condition, {'basic': {'mode': 'simple', 'port': 80}}) is False

    def test_group_defaults_to_and(self):
        """Without logic every member must hold"""
        from configflow.flow_engine.conditional_steps import evaluate_condition

        condition = {'conditions': [_cond('equals', 'advanced'), _cond('exists', field='port')]}
        assert evaluate_condition(condition, {'basic': {'mode': 'advanced'}}) is False
        assert evaluate_condition(condition, {'basic': {'mode': 'advanced', 'port': 1}}) is True

    def test_deep_nesting(self):
        """Groups nest to any depth"""
        from configflow.flow_engine.conditional_steps import evaluate_condition

        condition = {
            'logic': 'and',
            'conditions': [
                {'logic': 'or', 'conditions': [
                    {'conditions': [_cond('equals', 'advanced')]},
                    _cond('equals', 'expert'),
                ]},
                _cond('exists', field='host'),
            ],
        }
        assert evaluate_condition(condition, {'basic': {'mode': 'advanced', 'host': 'h'}}) is True


class TestNavigation:
    """Tests for determine_next_step() and get_visible_steps()"""

    def test_hidden_step_is_skipped(self):
        """[s1, s2(cond s1.enable == true), s3] goes from s1 to s3"""
        from configflow.flow_engine.conditional_steps import determine_next_step

        definition = {'steps': [
            {'step_id': 's1'},
            {'step_id': 's2', 'condition': {'depends_on': 's1', 'field': 'enable',
                                            'operator': 'equals', 'value': True}},
            {'step_id': 's3'},
        ]}
        assert determine_next_step(definition, 's1', {'s1': {'enable': False}}) == 's3'
        assert determine_next_step(definition, 's1', {'s1': {'enable': True}}) == 's2'

    def test_navigation_override_wins(self):
        """navigation.next_step short-circuits the scan"""
        from configflow.flow_engine.conditional_steps import determine_next_step

        definition = {'steps': [
            {'step_id': 'a', 'navigation': {'next_step': 'c'}},
            {'step_id': 'b'},
            {'step_id': 'c'},
        ]}
        assert determine_next_step(definition, 'a', {}) == 'c'

    def test_unknown_and_last_step_give_none(self):
        """No next step for an unknown step or the last one"""
        from configflow.flow_engine.conditional_steps import determine_next_step

        definition = {'steps': [{'step_id': 'a'}, {'step_id': 'b'}]}
        assert determine_next_step(definition, 'missing', {}) is None
        assert determine_next_step(definition, 'b', {}) is None

    def test_visible_steps(self):
        """Only steps whose condition holds are listed"""
        from configflow.flow_engine.conditional_steps import get_visible_steps

        definition = {'steps': [
            {'step_id': 'basic'},
            {'step_id': 'advanced', 'condition': _cond('equals', True, field='enable_advanced')},
        ]}
        assert get_visible_steps(definition, {'basic': {'enable_advanced': False}}) == ['basic']

    @pytest.mark.parametrize('value,expected', [
        ('', 0.0),
        ('  12 ', 12.0),
        (None, 0.0),
        (True, 1.0),
    ])
    def test_to_number(self, value, expected):
        """Numeric coercion of strings and booleans"""
        from configflow.flow_engine.conditional_steps import to_number

        assert to_number(value) == expected
