"""
Discovery flow: the device is found on the network first.

Flow: discover -> configure (optional) -> confirm
Without a selected device the user falls back to pick_integration.
"""
from typing import Dict, Any, List, Optional

from configflow.flow_engine.handlers.base import BaseFlowHandler
from configflow.flow_engine.types import (
    FlowType,
    STEP_CONFIGURE,
    STEP_CONFIRM,
    STEP_DISCOVER,
    STEP_PICK_INTEGRATION,
)


class DiscoveryFlowHandler(BaseFlowHandler):
    flow_type = FlowType.DISCOVERY.value

    async def get_initial_step(self, domain: str, flow_config: Optional[Dict[str, Any]] = None) -> str:
        return STEP_DISCOVER

    async def get_next_step(
        self,
        current_step: str,
        flow_data: Dict[str, Any],
        domain: str,
        flow_config: Optional[Dict[str, Any]] = None
    ) -> str:
        if current_step == STEP_DISCOVER:
            if flow_data.get('selectedDeviceId'):
                return await self.configure_or_confirm(domain)
            return STEP_PICK_INTEGRATION
        elif current_step == STEP_PICK_INTEGRATION:
            return await self.configure_or_confirm(domain)
        elif current_step == STEP_CONFIGURE:
            return STEP_CONFIRM
        elif current_step == STEP_CONFIRM:
            raise self.completed_error(current_step)
        raise self.invalid_step_error(current_step)

    async def discover_devices(self, domain: str, flow_config: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return await self._discovery().discover_devices(domain, flow_config)

    async def refresh_discovery(self, domain: str, flow_config: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return await self._discovery().refresh_discovery(domain, flow_config)

    def _discovery(self):
        if self.services.discovery_service is None:
            raise RuntimeError("Discovery service not configured")
        return self.services.discovery_service
