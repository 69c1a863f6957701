"""
Base classes for flow handlers.

A flow handler decides the step sequence of one flow type. Handlers never
touch flow state themselves: they receive the current step and the
accumulated flow data and answer with the next step id.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, Optional
import abc

from configflow.flow_engine.collaborators import (
    ConfigSchemaProvider,
    DiscoveryService,
    OAuthService,
    StaticConfigSchemaProvider,
)
from configflow.flow_engine.definition_loader import FlowDefinitionLoader, flow_definition_loader
from configflow.flow_engine.step_validation import StepValidator, step_validator
from configflow.flow_engine.types import STEP_CONFIGURE, STEP_CONFIRM, ValidationResult


class FlowTransitionError(Exception):
    """Raised when a step has no valid successor"""
    def __init__(self, message: str, step: Optional[str] = None, flow_type: Optional[str] = None):
        self.step = step
        self.flow_type = flow_type
        super().__init__(message)


class OAuthFlowError(FlowTransitionError):
    """OAuth state missing or incomplete while advancing a flow"""
    pass


@dataclass
class FlowServices:
    """Collaborators shared by every handler"""
    config_schema_provider: ConfigSchemaProvider = field(default_factory=StaticConfigSchemaProvider)
    discovery_service: Optional[DiscoveryService] = None
    oauth_service: Optional[OAuthService] = None
    definition_loader: FlowDefinitionLoader = field(default_factory=lambda: flow_definition_loader)
    validator: StepValidator = field(default_factory=lambda: step_validator)
    base_url: str = 'http://localhost:3000'


class BaseFlowHandler(abc.ABC):
    """
    Common handler contract.

    Subclasses set flow_type and implement get_initial_step / get_next_step.
    should_skip_step and validate_step_data default to "never skip" and
    "always valid".
    """
    flow_type: str = ''

    def __init__(self, services: Optional[FlowServices] = None):
        self.services = services or FlowServices()

    @abc.abstractmethod
    async def get_initial_step(self, domain: str, flow_config: Optional[Dict[str, Any]] = None) -> str:
        pass

    @abc.abstractmethod
    async def get_next_step(
        self,
        current_step: str,
        flow_data: Dict[str, Any],
        domain: str,
        flow_config: Optional[Dict[str, Any]] = None
    ) -> str:
        pass

    async def should_skip_step(
        self,
        step: str,
        flow_data: Dict[str, Any],
        domain: str,
        flow_config: Optional[Dict[str, Any]] = None
    ) -> bool:
        return False

    async def validate_step_data(
        self,
        step: str,
        step_data: Dict[str, Any],
        domain: str,
        flow_config: Optional[Dict[str, Any]] = None
    ) -> ValidationResult:
        return ValidationResult(valid=True)

    async def has_config_fields(self, domain: str) -> bool:
        schema = await self.services.config_schema_provider.get_config_schema(domain)
        return bool(schema)

    async def configure_or_confirm(self, domain: str) -> str:
        return STEP_CONFIGURE if await self.has_config_fields(domain) else STEP_CONFIRM

    def completed_error(self, step: str) -> FlowTransitionError:
        return FlowTransitionError("Flow already completed", step=step, flow_type=self.flow_type)

    def invalid_step_error(self, step: str) -> FlowTransitionError:
        return FlowTransitionError(
            f"Invalid step for {self.flow_type} flow: {step}",
            step=step,
            flow_type=self.flow_type
        )
