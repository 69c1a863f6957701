"""
Step Resolver - tells the presentation layer what to render for a flow step.

For a (flow, step) pair it returns the component type, the StepDefinition,
display metadata (position among visible steps, navigation flags) and the
component props derived from the definition's ui block.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

from configflow.flow_engine.collaborators import Flow, FlowStore
from configflow.flow_engine.component_router import ComponentType
from configflow.flow_engine.conditional_steps import should_skip_step
from configflow.flow_engine.definition_loader import (
    FlowDefinitionLoader,
    flow_definition_loader,
    get_step_definition,
)
from configflow.flow_engine.types import STEP_ID_PREFIXES, STEP_TYPES

logger = logging.getLogger(__name__)


class StepResolutionError(Exception):
    """Raised when a flow step cannot be mapped to a step definition"""
    pass


@dataclass
class StepMetadata:
    step_id: str
    title: str
    description: Optional[str] = None
    icon: Optional[str] = None
    step_number: Optional[int] = None
    total_steps: int = 0
    can_go_back: bool = False
    can_skip: bool = False
    is_last_step: bool = False
    help_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'step_id': self.step_id,
            'title': self.title,
            'description': self.description,
            'icon': self.icon,
            'step_number': self.step_number,
            'total_steps': self.total_steps,
            'can_go_back': self.can_go_back,
            'can_skip': self.can_skip,
            'is_last_step': self.is_last_step,
            'help_text': self.help_text,
        }


@dataclass
class StepComponentInfo:
    component_type: str
    step_definition: Dict[str, Any]
    step_metadata: StepMetadata
    props: Dict[str, Any] = field(default_factory=dict)
    component_name: Optional[str] = None
    validation_rules: Optional[List[Dict[str, Any]]] = None
    conditional_logic: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'component_type': self.component_type,
            'component_name': self.component_name,
            'step_definition': self.step_definition,
            'step_metadata': self.step_metadata.to_dict(),
            'props': self.props,
            'validation_rules': self.validation_rules,
            'conditional_logic': self.conditional_logic,
        }


def normalize_step_id(step_id: str) -> str:
    """Strip the first presentation prefix (wizard_step_, discovery_, oauth_)"""
    for prefix in STEP_ID_PREFIXES:
        if step_id.startswith(prefix):
            return step_id[len(prefix):]
    return step_id


def map_step_type_to_component_type(step_definition: Dict[str, Any]) -> str:
    ui = step_definition.get('ui') or {}
    if ui.get('component'):
        return ComponentType.CUSTOM.value

    step_type = step_definition.get('step_type')
    if step_type in STEP_TYPES:
        return step_type
    return ComponentType.MANUAL.value


def extract_component_props(step_definition: Dict[str, Any], definition: Dict[str, Any]) -> Dict[str, Any]:
    flow_ui = definition.get('ui') or {}
    step_ui = step_definition.get('ui') or {}

    progress = flow_ui.get('progress_indicator')
    navigation = flow_ui.get('allow_step_navigation')
    props = {
        'show_progress': True if progress is None else progress,
        'allow_navigation': True if navigation is None else navigation,
    }
    if step_ui.get('layout'):
        props['layout'] = step_ui['layout']
    if step_ui.get('help_text'):
        props['help_text'] = step_ui['help_text']
    return props


class StepResolver:
    """
    Usage:
        resolver = StepResolver(flow_store)
        info = resolver.resolve_step_component(flow_id, 'wizard_step_network')
    """

    def __init__(self, flow_store: FlowStore, loader: Optional[FlowDefinitionLoader] = None):
        self.flow_store = flow_store
        self.loader = loader or flow_definition_loader

    def _find_step(self, definition: Dict[str, Any], step_id: str) -> Optional[Dict[str, Any]]:
        return (
            get_step_definition(definition, normalize_step_id(step_id))
            or get_step_definition(definition, step_id)
        )

    def _load_flow(self, flow_id: str) -> Optional[Flow]:
        return self.flow_store.get_flow_by_id(flow_id)

    def resolve_step_component(self, flow_id: str, step_id: str) -> StepComponentInfo:
        """
        Raises:
            StepResolutionError: flow missing, flow without domain, or unknown step
        """
        flow = self._load_flow(flow_id)
        if not flow:
            raise StepResolutionError(f"Flow not found: {flow_id}")
        if not flow.integration_domain:
            raise StepResolutionError("Flow has no integration domain")

        definition = self.loader.load(flow.integration_domain)
        normalized = normalize_step_id(step_id)
        step_definition = self._find_step(definition, step_id)
        if not step_definition:
            raise StepResolutionError(
                f"Step definition not found: {step_id} (tried normalized: {normalized})"
            )

        ui = step_definition.get('ui') or {}
        validation = step_definition.get('validation') or {}

        return StepComponentInfo(
            component_type=map_step_type_to_component_type(step_definition),
            component_name=ui.get('component'),
            step_definition=step_definition,
            step_metadata=self._build_metadata(step_id, definition, step_definition, flow.data or {}),
            props=extract_component_props(step_definition, definition),
            validation_rules=validation.get('validators'),
            conditional_logic=step_definition.get('condition'),
        )

    def _build_metadata(
        self,
        step_id: str,
        definition: Dict[str, Any],
        step_definition: Dict[str, Any],
        flow_data: Dict[str, Any]
    ) -> StepMetadata:
        normalized = normalize_step_id(step_id)
        visible = [s for s in definition.get('steps') or [] if not should_skip_step(s, flow_data)]
        index = next(
            (i for i, s in enumerate(visible) if s.get('step_id') in (normalized, step_id)),
            -1
        )
        navigation = step_definition.get('navigation') or {}
        ui = step_definition.get('ui') or {}

        return StepMetadata(
            step_id=step_definition.get('step_id'),
            title=step_definition.get('title'),
            description=step_definition.get('description'),
            icon=step_definition.get('icon'),
            step_number=index + 1 if index >= 0 else None,
            total_steps=len(visible),
            can_go_back=index > 0,
            can_skip=bool(navigation.get('can_skip')),
            is_last_step=index >= 0 and index == len(visible) - 1,
            help_text=ui.get('help_text'),
        )

    def get_step_definition_from_flow(self, flow_id: str, step_id: str) -> Optional[Dict[str, Any]]:
        flow = self._load_flow(flow_id)
        if not flow or not flow.integration_domain:
            return None
        return self._find_step(self.loader.load(flow.integration_domain), step_id)

    def evaluate_step_conditions(self, flow_id: str, step_id: str, flow_data: Dict[str, Any]) -> bool:
        """True when the step is visible for the given flow data"""
        step_definition = self.get_step_definition_from_flow(flow_id, step_id)
        if not step_definition:
            return False
        return not should_skip_step(step_definition, flow_data or {})
