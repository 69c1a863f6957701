"""
Config Flow Service - entry point used by the flow API layer.

Resolves the flow type and legacy flow config of a domain and dispatches to
the matching handler.
"""

import logging
from typing import Dict, Any, Optional

from configflow.flow_engine.collaborators import Flow
from configflow.flow_engine.flow_type_resolver import FlowTypeResolver, flow_type_resolver
from configflow.flow_engine.handlers import FlowHandlerRegistry, handler_registry
from configflow.flow_engine.handlers.base import BaseFlowHandler
from configflow.flow_engine.types import ValidationResult

logger = logging.getLogger(__name__)


class ConfigFlowService:
    """
    Usage:
        service = get_config_flow_service()
        step = await service.get_initial_step('hue')
        step = await service.get_next_step(flow)
    """

    def __init__(
        self,
        resolver: Optional[FlowTypeResolver] = None,
        handlers: Optional[FlowHandlerRegistry] = None
    ):
        self.resolver = resolver or flow_type_resolver
        self.handlers = handlers or handler_registry

    def _resolve(self, domain: str):
        flow_type = self.resolver.get_flow_type(domain)
        flow_config = self.resolver.get_flow_config(domain)
        handler: BaseFlowHandler = self.handlers.get(flow_type)
        return handler, flow_config

    async def get_initial_step(self, domain: str) -> str:
        handler, flow_config = self._resolve(domain)
        return await handler.get_initial_step(domain, flow_config)

    async def get_next_step(self, flow: Flow, current_step: Optional[str] = None) -> str:
        """
        Step that follows current_step (defaults to flow.current_step).

        Raises:
            FlowTransitionError: current step is terminal or unknown
            ValueError: flow has no integration domain
        """
        domain = flow.integration_domain
        if not domain:
            raise ValueError(f"Flow {flow.flow_id} has no integration domain")

        step = current_step or flow.current_step
        handler, flow_config = self._resolve(domain)
        next_step = await handler.get_next_step(step, flow.data or {}, domain, flow_config)

        logger.debug(f"Flow {flow.flow_id} ({handler.flow_type}): {step} -> {next_step}")
        return next_step

    async def should_skip_step(self, domain: str, step: str, flow_data: Dict[str, Any]) -> bool:
        handler, flow_config = self._resolve(domain)
        return await handler.should_skip_step(step, flow_data or {}, domain, flow_config)

    async def validate_step_data(self, domain: str, step: str, step_data: Dict[str, Any]) -> ValidationResult:
        handler, flow_config = self._resolve(domain)
        return await handler.validate_step_data(step, step_data or {}, domain, flow_config)


# Global instance
_service_instance = None


def get_config_flow_service() -> ConfigFlowService:
    """
    Get singleton instance of ConfigFlowService.

    Returns:
        ConfigFlowService instance
    """
    global _service_instance
    if _service_instance is None:
        _service_instance = ConfigFlowService()
    return _service_instance
