"""
Flow handler registry: one handler per flow type.

Usage:
    handler = get_handler('wizard')
    next_step = await handler.get_next_step(current, data, domain, flow_config)
"""
import logging
from typing import Dict, List, Optional

from configflow.flow_engine.handlers.base import (
    BaseFlowHandler,
    FlowServices,
    FlowTransitionError,
    OAuthFlowError,
)
from configflow.flow_engine.handlers.discovery import DiscoveryFlowHandler
from configflow.flow_engine.handlers.hybrid import HybridFlowHandler
from configflow.flow_engine.handlers.manual import ManualFlowHandler
from configflow.flow_engine.handlers.none import NoneFlowHandler
from configflow.flow_engine.handlers.oauth import OAuthFlowHandler
from configflow.flow_engine.handlers.wizard import WizardFlowHandler
from configflow.flow_engine.types import FlowType

logger = logging.getLogger(__name__)

DEFAULT_HANDLER_CLASSES = {
    FlowType.NONE.value: NoneFlowHandler,
    FlowType.MANUAL.value: ManualFlowHandler,
    FlowType.DISCOVERY.value: DiscoveryFlowHandler,
    FlowType.OAUTH.value: OAuthFlowHandler,
    FlowType.WIZARD.value: WizardFlowHandler,
    FlowType.HYBRID.value: HybridFlowHandler,
}


class FlowHandlerRegistry:
    """Lookup table of flow type -> handler instance"""

    def __init__(self, services: Optional[FlowServices] = None):
        self.services = services or FlowServices()
        self._handlers: Dict[str, BaseFlowHandler] = {
            flow_type: handler_class(self.services)
            for flow_type, handler_class in DEFAULT_HANDLER_CLASSES.items()
        }

    def register(self, flow_type: str, handler: BaseFlowHandler) -> None:
        self._handlers[flow_type] = handler

    def get(self, flow_type: str) -> BaseFlowHandler:
        handler = self._handlers.get(flow_type)
        if handler is None:
            logger.warning(f"No handler found for flow type: {flow_type}, using manual handler")
            return self._handlers[FlowType.MANUAL.value]
        return handler

    def get_flow_types(self) -> List[str]:
        return list(self._handlers.keys())


handler_registry = FlowHandlerRegistry()


def get_handler(flow_type: str) -> BaseFlowHandler:
    return handler_registry.get(flow_type)


def register_handler(flow_type: str, handler: BaseFlowHandler) -> None:
    handler_registry.register(flow_type, handler)


def get_registered_flow_types() -> List[str]:
    return handler_registry.get_flow_types()


__all__ = [
    'BaseFlowHandler',
    'FlowServices',
    'FlowTransitionError',
    'OAuthFlowError',
    'NoneFlowHandler',
    'ManualFlowHandler',
    'DiscoveryFlowHandler',
    'OAuthFlowHandler',
    'WizardFlowHandler',
    'HybridFlowHandler',
    'FlowHandlerRegistry',
    'handler_registry',
    'get_handler',
    'register_handler',
    'get_registered_flow_types',
]
