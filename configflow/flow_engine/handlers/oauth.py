"""
OAuth flow: the user authorizes the platform with an external provider.

Flow: pick_integration -> oauth_authorize -> oauth_callback -> configure (optional) -> confirm
"""
import logging
from typing import Dict, Any, Optional

from configflow.flow_engine.handlers.base import BaseFlowHandler, OAuthFlowError
from configflow.flow_engine.types import (
    FlowType,
    STEP_CONFIGURE,
    STEP_CONFIRM,
    STEP_OAUTH_AUTHORIZE,
    STEP_OAUTH_CALLBACK,
    STEP_PICK_INTEGRATION,
)

logger = logging.getLogger(__name__)

OAUTH_CALLBACK_PATH = '/api/oauth/callback'


class OAuthFlowHandler(BaseFlowHandler):
    flow_type = FlowType.OAUTH.value

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
            return STEP_OAUTH_AUTHORIZE

        elif current_step == STEP_OAUTH_AUTHORIZE:
            # The callback itself is handled by the OAuth subsystem
            return STEP_OAUTH_CALLBACK

        elif current_step == STEP_OAUTH_CALLBACK:
            config_entry_id = flow_data.get('configEntryId')
            if not config_entry_id:
                raise OAuthFlowError("OAuth tokens not stored", step=current_step, flow_type=self.flow_type)

            tokens = await self._oauth().get_tokens(config_entry_id)
            if not tokens:
                raise OAuthFlowError("OAuth tokens not found", step=current_step, flow_type=self.flow_type)

            return await self.configure_or_confirm(domain)

        elif current_step == STEP_CONFIGURE:
            return STEP_CONFIRM

        elif current_step == STEP_CONFIRM:
            raise self.completed_error(current_step)

        raise self.invalid_step_error(current_step)

    def redirect_uri(self) -> str:
        return f"{self.services.base_url.rstrip('/')}{OAUTH_CALLBACK_PATH}"

    async def generate_authorization_url(
        self,
        flow_id: str,
        domain: str,
        flow_config: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Authorization URL the user is sent to on oauth_authorize.

        Raises:
            OAuthFlowError: flow_config has no oauth_provider
        """
        if not flow_config or not flow_config.get('oauth_provider'):
            raise OAuthFlowError("OAuth provider not configured", step=STEP_OAUTH_AUTHORIZE, flow_type=self.flow_type)

        provider = flow_config['oauth_provider']
        logger.info(f"Generating authorization URL for flow {flow_id} ({domain} via {provider})")

        result = await self._oauth().generate_authorization_url(
            provider,
            flow_id,
            flow_config.get('scopes') or [],
            self.redirect_uri(),
            flow_config
        )
        return result['url']

    def _oauth(self):
        if self.services.oauth_service is None:
            raise OAuthFlowError("OAuth service not configured", flow_type=self.flow_type)
        return self.services.oauth_service
