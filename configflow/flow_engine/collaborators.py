"""
Contracts of the subsystems the flow engine talks to but does not own.

Implementations are injected at startup (see handlers.FlowServices). The
engine only needs the narrow surface defined here.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional
import abc


class ConfigSchemaProvider(abc.ABC):
    """Source of the flat config schema shown on the "configure" step"""

    @abc.abstractmethod
    async def get_config_schema(self, domain: str) -> Dict[str, Any]:
        """Field name -> field schema; empty dict when nothing to configure"""


class StaticConfigSchemaProvider(ConfigSchemaProvider):
    """Config schemas from an in-memory mapping of domain -> schema"""

    def __init__(self, schemas: Optional[Dict[str, Dict[str, Any]]] = None):
        self.schemas = schemas or {}

    async def get_config_schema(self, domain: str) -> Dict[str, Any]:
        return self.schemas.get(domain) or {}


class DiscoveryService(abc.ABC):
    """Device discovery subsystem (zeroconf, ssdp, dhcp, ...)"""

    @abc.abstractmethod
    async def discover_devices(self, domain: str, flow_config: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        pass

    @abc.abstractmethod
    async def refresh_discovery(self, domain: str, flow_config: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        pass


class OAuthService(abc.ABC):
    """OAuth authorization and token storage subsystem"""

    @abc.abstractmethod
    async def generate_authorization_url(
        self,
        provider: str,
        flow_id: str,
        scopes: List[str],
        redirect_uri: str,
        config: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Returns at least {'url': ...}"""

    @abc.abstractmethod
    async def get_tokens(self, config_entry_id: str) -> Optional[Dict[str, Any]]:
        pass


@dataclass
class Flow:
    """A configuration flow in progress, owned by the flow store"""
    flow_id: str
    integration_domain: Optional[str]
    current_step: Optional[str] = None
    # step id -> submitted values
    data: Dict[str, Any] = field(default_factory=dict)


class FlowStore(abc.ABC):
    """Read access to persisted flows"""

    @abc.abstractmethod
    def get_flow_by_id(self, flow_id: str) -> Optional[Flow]:
        pass
