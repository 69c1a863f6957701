"""
Tests for configflow/flow_engine/definition_registry.py
"""

import copy
from unittest.mock import Mock

import pytest


DEFINITION = {
    'flow_type': 'wizard',
    'name': 'Hue Setup',
    'steps': [
        {
            'step_id': 'basic',
            'step_type': 'wizard',
            'title': 'Basic',
            'schema': {'type': 'object', 'properties': {'host': {'type': 'string', 'title': 'Host'}}},
        },
        {
            'step_id': 'confirm',
            'step_type': 'confirm',
            'title': 'Confirm',
            'schema': {'type': 'object', 'properties': {}},
        },
    ],
}


@pytest.fixture
def registry(app):
    from configflow.flow_engine.definition_registry import FlowDefinitionRegistry
    return FlowDefinitionRegistry()


def _create(registry, domain='hue', **kwargs):
    return registry.create(domain, 'wizard', copy.deepcopy(DEFINITION), **kwargs)


class TestCreate:
    """Tests for FlowDefinitionRegistry.create()"""

    def test_versions_increment(self, registry):
        """Each create adds the next version"""
        first = _create(registry)
        second = _create(registry)
        assert first.version == 1
        assert second.version == 2
        assert second.created_by == 'system'

    def test_new_active_version_deactivates_previous(self, registry):
        """Only the newest active version stays active"""
        first = _create(registry)
        second = _create(registry)
        assert registry.get_by_id(first.id).is_active is False
        assert registry.get_active('hue').id == second.id

    def test_inactive_create_keeps_current_active(self, registry):
        """Creating an inactive version leaves the active one alone"""
        first = _create(registry)
        _create(registry, is_active=False)
        assert registry.get_active('hue').id == first.id

    def test_invalid_definition_raises(self, registry):
        """Validation errors are raised with their messages"""
        from configflow.flow_engine.definition_registry import InvalidFlowDefinitionError

        with pytest.raises(InvalidFlowDefinitionError) as exc_info:
            registry.create('hue', 'wizard', {'flow_type': 'bogus', 'name': 'x', 'steps': []})

        assert str(exc_info.value).startswith('Invalid flow definition: ')
        assert {e.code for e in exc_info.value.errors} == {'INVALID_FLOW_TYPE', 'REQUIRED_FIELD'}

    def test_malformed_shapes_raise_invalid_definition(self, registry):
        """Non-object fields and navigation surface as InvalidFlowDefinitionError"""
        from configflow.flow_engine.definition_registry import InvalidFlowDefinitionError

        definition = copy.deepcopy(DEFINITION)
        definition['steps'][0]['schema']['properties'] = {'host': 'string'}
        definition['steps'][0]['navigation'] = ['confirm']

        with pytest.raises(InvalidFlowDefinitionError) as exc_info:
            registry.create('hue', 'wizard', definition)

        assert {e.field for e in exc_info.value.errors} == {
            'steps[0].schema.properties[host]',
            'steps[0].navigation',
        }

    def test_listeners_notified(self, registry):
        """Listeners receive the domain after a write"""
        listener = Mock()
        registry.add_listener(listener)
        _create(registry)
        listener.assert_called_once_with('hue')

    def test_failing_listener_does_not_break_write(self, registry):
        """Listener errors are logged only"""
        registry.add_listener(Mock(side_effect=RuntimeError('boom')))
        record = _create(registry)
        assert registry.get_by_id(record.id) is not None


class TestUpdateAndActivation:
    """Tests for update(), activate(), deactivate() and delete()"""

    def test_activate_leaves_exactly_one_active(self, registry):
        """Activating an old version deactivates the current one"""
        from configflow.models import IntegrationFlowDefinition

        first = _create(registry)
        _create(registry)
        _create(registry)

        registry.activate(first.id)

        active = IntegrationFlowDefinition.query.filter_by(integration_domain='hue', is_active=True).all()
        assert [r.id for r in active] == [first.id]

    def test_other_domains_untouched(self, registry):
        """Activation is scoped to the domain"""
        hue = _create(registry, 'hue')
        nest = _create(registry, 'nest')
        registry.activate(hue.id)
        assert registry.get_by_id(nest.id).is_active is True

    def test_deactivate(self, registry):
        """Deactivated records are not returned as active"""
        record = _create(registry)
        registry.deactivate(record.id)
        assert registry.get_active('hue') is None

    def test_update_revalidates_definition(self, registry):
        """A patched definition must still be valid"""
        from configflow.flow_engine.definition_registry import InvalidFlowDefinitionError

        record = _create(registry)
        with pytest.raises(InvalidFlowDefinitionError):
            registry.update(record.id, definition={'flow_type': 'wizard', 'name': '', 'steps': []})

    def test_update_description(self, registry):
        """Whitelisted fields are patched"""
        record = _create(registry)
        updated = registry.update(record.id, description='New text', version=99)
        assert updated.description == 'New text'
        assert updated.version == 1

    def test_empty_patch_returns_record(self, registry):
        """Nothing to change returns the record as is"""
        listener = Mock()
        record = _create(registry)
        registry.add_listener(listener)
        assert registry.update(record.id).id == record.id
        listener.assert_not_called()

    def test_update_unknown_id(self, registry):
        """Unknown ids raise FlowDefinitionNotFoundError"""
        from configflow.flow_engine.definition_registry import FlowDefinitionNotFoundError

        with pytest.raises(FlowDefinitionNotFoundError) as exc_info:
            registry.update('missing-id', description='x')
        assert str(exc_info.value) == 'Flow definition not found: missing-id'

    def test_delete(self, registry):
        """Deleting twice fails the second time"""
        from configflow.flow_engine.definition_registry import FlowDefinitionNotFoundError

        record = _create(registry)
        record_id = record.id
        registry.delete(record_id)
        assert registry.get_by_id(record_id) is None
        with pytest.raises(FlowDefinitionNotFoundError):
            registry.delete(record_id)


class TestQueries:
    """Tests for get_flow_definition(), get_versions() and list()"""

    def test_get_flow_definition_by_version(self, registry):
        """Exact version lookup"""
        _create(registry)
        _create(registry)
        assert registry.get_flow_definition('hue', version=1).version == 1
        assert registry.get_flow_definition('hue').version == 2

    def test_falls_back_to_default(self, registry):
        """Without an active record the default one is used"""
        record = _create(registry, is_active=False, is_default=True)
        assert registry.get_flow_definition('hue').id == record.id

    def test_get_versions_desc(self, registry):
        """Versions come newest first"""
        for _ in range(3):
            _create(registry)
        assert [r.version for r in registry.get_versions('hue')] == [3, 2, 1]

    def test_list_filters_and_pagination(self, registry):
        """Filters, sorting and page maths"""
        for _ in range(3):
            _create(registry, 'hue')
        _create(registry, 'nest')

        page = registry.list(filters={'domain': 'hue'}, page=1, limit=2, sort='version', order='asc')
        assert page['total'] == 3
        assert page['total_pages'] == 2
        assert [r.version for r in page['definitions']] == [1, 2]

        active = registry.list(filters={'is_active': True})
        assert active['total'] == 2

    def test_list_ignores_unknown_sort_and_filter(self, registry):
        """Non-whitelisted columns are ignored"""
        _create(registry)
        page = registry.list(filters={'definition': 'x'}, sort='definition; drop table')
        assert page['total'] == 1
