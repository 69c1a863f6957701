"""
Tests for configflow/flow_engine/dynamic_options.py
"""

from unittest.mock import AsyncMock, Mock

import pytest


STATIC = [{'label': 'Default', 'value': 'default'}]


def _http_client(payload):
    response = Mock()
    response.json.return_value = payload
    client = Mock()
    client.get = AsyncMock(return_value=response)
    return client


def _context(**form_values):
    from configflow.flow_engine.dynamic_options import DynamicOptionsContext
    return DynamicOptionsContext(integration_id='hue', field_name='bridge', form_values=form_values)


class TestMapResponse:
    """Tests for map_response_to_options()"""

    def test_list_with_paths(self):
        """Dot paths pick label and value"""
        from configflow.flow_engine.dynamic_options import map_response_to_options

        data = [{'info': {'name': 'Living room'}, 'id': 1}, {'info': {'name': None}, 'id': 2}]
        options = map_response_to_options(data, {'label': 'info.name', 'value': 'id'})
        assert options == [
            {'label': 'Living room', 'value': 1},
            {'label': 'undefined', 'value': 2},
        ]

    def test_single_list_wrapper_unwrapped(self):
        """{"bridges": [...]} is treated as the list"""
        from configflow.flow_engine.dynamic_options import map_response_to_options

        options = map_response_to_options({'bridges': [{'label': 'A', 'value': 'a'}]}, {'label': 'label', 'value': 'value'})
        assert options == [{'label': 'A', 'value': 'a'}]

    def test_scalar_payload(self):
        """Unsupported payloads give no options"""
        from configflow.flow_engine.dynamic_options import map_response_to_options

        assert map_response_to_options('nope', {'label': 'label', 'value': 'value'}) == []


class TestResolveOptions:
    """Tests for DynamicOptionsResolver.resolve_options()"""

    @pytest.mark.asyncio
    async def test_static_without_dynamic_config(self):
        """Plain fields return their static options"""
        from configflow.flow_engine.dynamic_options import DynamicOptionsResolver

        resolver = DynamicOptionsResolver(http_client=_http_client([]))
        assert await resolver.resolve_options({'options': STATIC}, _context()) == STATIC

    @pytest.mark.asyncio
    async def test_api_source_and_cache(self):
        """API results are mapped and cached per endpoint and form values"""
        from configflow.flow_engine.dynamic_options import DynamicOptionsResolver

        client = _http_client([{'name': 'Bridge 1', 'id': 'b1'}])
        resolver = DynamicOptionsResolver(base_url='http://hub.local/', http_client=client)
        schema = {'dynamicOptions': {
            'source': 'api',
            'endpoint': '/api/bridges',
            'mapping': {'label': 'name', 'value': 'id'},
        }}

        first = await resolver.resolve_options(schema, _context(region='eu', legacy=True))
        second = await resolver.resolve_options(schema, _context(region='eu', legacy=True))

        assert first == second == [{'label': 'Bridge 1', 'value': 'b1'}]
        client.get.assert_awaited_once_with(
            'http://hub.local/api/bridges', params={'region': 'eu', 'legacy': 'true'}
        )

        resolver.invalidate('/api/bridges')
        await resolver.resolve_options(schema, _context(region='eu', legacy=True))
        assert client.get.await_count == 2

    @pytest.mark.asyncio
    async def test_expired_entry_evicted(self):
        """Stale entries are dropped when they are looked up again"""
        from unittest.mock import patch

        from configflow.flow_engine.dynamic_options import DynamicOptionsResolver

        client = _http_client([{'label': 'Bridge 1', 'value': 'b1'}])
        resolver = DynamicOptionsResolver(cache_ttl=60, http_client=client)
        schema = {'options': STATIC, 'dynamicOptions': {'source': 'api', 'endpoint': '/api/bridges'}}

        with patch('configflow.flow_engine.dynamic_options.time.monotonic', return_value=100.0):
            await resolver.resolve_options(schema, _context())
        assert len(resolver._cache) == 1

        client.get.side_effect = RuntimeError('connection refused')
        with patch('configflow.flow_engine.dynamic_options.time.monotonic', return_value=500.0):
            assert await resolver.resolve_options(schema, _context()) == STATIC
        assert resolver._cache == {}

    @pytest.mark.asyncio
    async def test_api_error_falls_back_to_static(self):
        """HTTP failures return the static options"""
        from configflow.flow_engine.dynamic_options import DynamicOptionsResolver

        client = Mock()
        client.get = AsyncMock(side_effect=RuntimeError('connection refused'))
        resolver = DynamicOptionsResolver(http_client=client)
        schema = {'options': STATIC, 'dynamicOptions': {'source': 'api', 'endpoint': '/api/bridges'}}

        assert await resolver.resolve_options(schema, _context()) == STATIC

    @pytest.mark.asyncio
    async def test_api_without_endpoint(self):
        """A missing endpoint falls back to static options"""
        from configflow.flow_engine.dynamic_options import DynamicOptionsResolver

        resolver = DynamicOptionsResolver(http_client=_http_client([]))
        schema = {'options': STATIC, 'dynamicOptions': {'source': 'api'}}
        assert await resolver.resolve_options(schema, _context()) == STATIC

    @pytest.mark.asyncio
    async def test_field_source(self):
        """Options can come from another form value"""
        from configflow.flow_engine.dynamic_options import DynamicOptionsResolver

        resolver = DynamicOptionsResolver(http_client=_http_client([]))
        schema = {'dynamicOptions': {'source': 'field', 'field': 'found', 'mapping': {'label': 'name', 'value': 'id'}}}

        ready = [{'label': 'X', 'value': 'x'}]
        assert await resolver.resolve_options(schema, _context(found=ready)) == ready
        assert await resolver.resolve_options(schema, _context(found=[{'name': 'Y', 'id': 'y'}])) == [
            {'label': 'Y', 'value': 'y'}
        ]
        assert await resolver.resolve_options(schema, _context()) == []
