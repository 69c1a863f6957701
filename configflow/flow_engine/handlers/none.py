"""
None flow: the integration needs no configuration.

Flow: pick_integration -> confirm
"""
from typing import Dict, Any, Optional

from configflow.flow_engine.handlers.base import BaseFlowHandler
from configflow.flow_engine.types import FlowType, STEP_CONFIRM, STEP_PICK_INTEGRATION


class NoneFlowHandler(BaseFlowHandler):
    flow_type = FlowType.NONE.value

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
            return STEP_CONFIRM
        if current_step == STEP_CONFIRM:
            raise self.completed_error(current_step)
        raise self.invalid_step_error(current_step)
