"""
Config Flow Engine - drives "add integration" wizards.

Resolves the flow type of an integration domain, loads its versioned flow
definition and decides the first step, the next step, step visibility and
step data validity.
"""

from configflow.flow_engine.definition_registry import (
    FlowDefinitionRegistry,
    FlowDefinitionNotFoundError,
    InvalidFlowDefinitionError,
    flow_definition_registry,
)
from configflow.flow_engine.flow_type_resolver import FlowTypeResolver, flow_type_resolver
from configflow.flow_engine.definition_loader import FlowDefinitionLoader, flow_definition_loader
from configflow.flow_engine.step_validation import StepValidator, step_validator, register_custom_validator
from configflow.flow_engine.dynamic_options import dynamic_options_resolver
from configflow.flow_engine.handlers import (
    FlowTransitionError,
    OAuthFlowError,
    get_handler,
    handler_registry,
    register_handler,
)
from configflow.flow_engine.service import ConfigFlowService, get_config_flow_service
from configflow.flow_engine.step_resolver import StepResolver, StepResolutionError

# Writes to the registry drop the cached views of that domain
flow_definition_registry.add_listener(flow_definition_loader.clear_cache_for_domain)
flow_definition_registry.add_listener(flow_type_resolver.clear_cache_for_domain)


def clear_flow_caches():
    """Drop every cached flow type and flow definition"""
    flow_type_resolver.clear_cache()
    flow_definition_loader.clear_cache()


def configure_flow_engine(app):
    """Apply Flask config to the engine singletons"""
    step_validator.strict_custom_validators = app.config.get('STRICT_CUSTOM_VALIDATORS', False)

    base_url = app.config.get('BASE_URL', 'http://localhost:3000')
    handler_registry.services.base_url = base_url
    dynamic_options_resolver.base_url = base_url
    dynamic_options_resolver.cache_ttl = app.config.get('DYNAMIC_OPTIONS_CACHE_TTL', 300)
    dynamic_options_resolver.timeout = app.config.get('DYNAMIC_OPTIONS_TIMEOUT', 10.0)


__all__ = [
    'FlowDefinitionRegistry',
    'FlowDefinitionNotFoundError',
    'InvalidFlowDefinitionError',
    'flow_definition_registry',
    'FlowTypeResolver',
    'flow_type_resolver',
    'FlowDefinitionLoader',
    'flow_definition_loader',
    'StepValidator',
    'step_validator',
    'register_custom_validator',
    'FlowTransitionError',
    'OAuthFlowError',
    'get_handler',
    'register_handler',
    'handler_registry',
    'ConfigFlowService',
    'get_config_flow_service',
    'StepResolver',
    'StepResolutionError',
    'clear_flow_caches',
    'configure_flow_engine',
]
