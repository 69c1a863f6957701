"""
Hybrid flow: discovery, OAuth and wizard steps combined by flow_config.

- discover is the entry point when discovery protocols are configured
- pick_integration continues with OAuth when an oauth_provider is set,
  otherwise with the first visible wizard step, otherwise configure/confirm
- each stage runs the logic of the matching single-purpose handler, so the
  OAuth callback checks stored tokens and hidden wizard steps are skipped
"""
from typing import Dict, Any, Optional

from configflow.flow_engine.conditional_steps import should_skip_step
from configflow.flow_engine.handlers.base import BaseFlowHandler, FlowServices, OAuthFlowError
from configflow.flow_engine.handlers.discovery import DiscoveryFlowHandler
from configflow.flow_engine.handlers.oauth import OAuthFlowHandler
from configflow.flow_engine.handlers.wizard import WizardFlowHandler, strip_wizard_prefix
from configflow.flow_engine.types import (
    FlowType,
    STEP_CONFIGURE,
    STEP_CONFIRM,
    STEP_DISCOVER,
    STEP_OAUTH_AUTHORIZE,
    STEP_OAUTH_CALLBACK,
    STEP_PICK_INTEGRATION,
    wizard_step_tag,
)


class HybridFlowHandler(BaseFlowHandler):
    flow_type = FlowType.HYBRID.value

    def __init__(self, services: Optional[FlowServices] = None):
        super().__init__(services)
        self.discovery = DiscoveryFlowHandler(self.services)
        self.oauth = OAuthFlowHandler(self.services)
        self.wizard = WizardFlowHandler(self.services)

    async def get_initial_step(self, domain: str, flow_config: Optional[Dict[str, Any]] = None) -> str:
        protocols = (flow_config or {}).get('discovery_protocols')
        if protocols:
            return STEP_DISCOVER
        return STEP_PICK_INTEGRATION

    async def get_next_step(
        self,
        current_step: str,
        flow_data: Dict[str, Any],
        domain: str,
        flow_config: Optional[Dict[str, Any]] = None
    ) -> str:
        flow_config = flow_config or {}
        steps = self.wizard.get_wizard_steps(flow_config)

        if current_step == STEP_DISCOVER:
            return await self.discovery.get_next_step(current_step, flow_data, domain, flow_config)

        elif current_step == STEP_PICK_INTEGRATION:
            if flow_config.get('oauth_provider'):
                return STEP_OAUTH_AUTHORIZE
            if steps:
                first = self.wizard.find_next_available_step(steps, 0, flow_data)
                return wizard_step_tag(first['step_id']) if first else STEP_CONFIRM
            return await self.configure_or_confirm(domain)

        elif current_step in (STEP_OAUTH_AUTHORIZE, STEP_OAUTH_CALLBACK):
            try:
                return await self.oauth.get_next_step(current_step, flow_data, domain, flow_config)
            except OAuthFlowError as e:
                e.flow_type = self.flow_type
                raise

        elif current_step == STEP_CONFIGURE:
            return STEP_CONFIRM

        elif current_step == STEP_CONFIRM:
            raise self.completed_error(current_step)

        step_id = strip_wizard_prefix(current_step)
        if step_id is not None:
            ids = [step['step_id'] for step in steps]
            if step_id not in ids:
                return STEP_CONFIRM
            following = self.wizard.find_next_available_step(steps, ids.index(step_id) + 1, flow_data)
            return wizard_step_tag(following['step_id']) if following else STEP_CONFIRM

        raise self.invalid_step_error(current_step)

    async def should_skip_step(
        self,
        step: str,
        flow_data: Dict[str, Any],
        domain: str,
        flow_config: Optional[Dict[str, Any]] = None
    ) -> bool:
        step_id = strip_wizard_prefix(step)
        if step_id is None:
            return False
        legacy_step = next((s for s in self.wizard.get_wizard_steps(flow_config) if s['step_id'] == step_id), None)
        if not legacy_step:
            return False
        return should_skip_step(legacy_step, flow_data)
