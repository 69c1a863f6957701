"""
Manual flow: standard form-based configuration.

Flow: pick_integration -> configure -> confirm
The configure step is skipped when the integration has no config schema.
"""
from typing import Dict, Any, Optional

from configflow.flow_engine.handlers.base import BaseFlowHandler
from configflow.flow_engine.types import (
    FlowType,
    STEP_CONFIGURE,
    STEP_CONFIRM,
    STEP_PICK_INTEGRATION,
)


class ManualFlowHandler(BaseFlowHandler):
    flow_type = FlowType.MANUAL.value

    async def get_initial_step(self, domain: str, flow_config: Optional[Dict[str, Any]] = None) -> str:
        return STEP_PICK_INTEGRATION

    async def get_next_step(
        self,
        current_step: str,
        flow_data: Dict[str, Any],
        domain: str,
        flow_config: Optional[Dict[str, Any]] = None
    ) -> str:
        if current_step == STEP_PICK_INTEGRATION:
            return await self.configure_or_confirm(domain)
        elif current_step == STEP_CONFIGURE:
            return STEP_CONFIRM
        elif current_step == STEP_CONFIRM:
            raise self.completed_error(current_step)
        raise self.invalid_step_error(current_step)

    async def should_skip_step(
        self,
        step: str,
        flow_data: Dict[str, Any],
        domain: str,
        flow_config: Optional[Dict[str, Any]] = None
    ) -> bool:
        if step == STEP_CONFIGURE:
            return not await self.has_config_fields(domain)
        return False
