"""
Wizard flow: multi-step configuration driven by the flow definition.

Flow: pick_integration -> wizard_step_<id> -> wizard_step_<id> -> ... -> confirm

Steps come from the loaded FlowDefinition; hidden steps (condition not met)
are skipped. When the definition carries no steps the legacy flow_config
steps are used instead.
"""
import logging
from typing import Dict, Any, List, Optional

from configflow.flow_engine.conditional_steps import (
    determine_next_step,
    evaluate_condition,
    find_step_index,
    should_skip_step,
)
from configflow.flow_engine.definition_loader import get_initial_step_id, get_step_definition
from configflow.flow_engine.handlers.base import BaseFlowHandler
from configflow.flow_engine.types import (
    FlowType,
    STEP_CONFIRM,
    STEP_PICK_INTEGRATION,
    WIZARD_STEP_PREFIX,
    ValidationResult,
    wizard_step_tag,
)

logger = logging.getLogger(__name__)


def strip_wizard_prefix(step: str) -> Optional[str]:
    if isinstance(step, str) and step.startswith(WIZARD_STEP_PREFIX):
        return step[len(WIZARD_STEP_PREFIX):]
    return None


def _presentation_step(step_id: Optional[str]) -> str:
    if not step_id or step_id == STEP_CONFIRM:
        return STEP_CONFIRM
    return wizard_step_tag(step_id)


class WizardFlowHandler(BaseFlowHandler):
    flow_type = FlowType.WIZARD.value

    def _definition(self, domain: str) -> Dict[str, Any]:
        return self.services.definition_loader.load(domain)

    async def get_initial_step(self, domain: str, flow_config: Optional[Dict[str, Any]] = None) -> str:
        return STEP_PICK_INTEGRATION

    async def get_next_step(
        self,
        current_step: str,
        flow_data: Dict[str, Any],
        domain: str,
        flow_config: Optional[Dict[str, Any]] = None
    ) -> str:
        if current_step == STEP_CONFIRM:
            raise self.completed_error(current_step)

        definition = self._definition(domain)
        has_steps = bool(definition.get('steps'))

        if current_step == STEP_PICK_INTEGRATION:
            if has_steps:
                return _presentation_step(self._first_visible_step(definition, flow_data))
            first = self.find_next_available_step(self.get_wizard_steps(flow_config), 0, flow_data)
            return _presentation_step(first['step_id'] if first else None)

        step_id = strip_wizard_prefix(current_step)
        if step_id is None:
            raise self.invalid_step_error(current_step)

        if has_steps:
            if find_step_index(definition, step_id) == -1:
                raise self.invalid_step_error(current_step)
            return _presentation_step(determine_next_step(definition, step_id, flow_data))

        steps = self.get_wizard_steps(flow_config)
        current_index = next((i for i, s in enumerate(steps) if s['step_id'] == step_id), -1)
        if current_index == -1:
            raise self.invalid_step_error(current_step)
        following = self.find_next_available_step(steps, current_index + 1, flow_data)
        return _presentation_step(following['step_id'] if following else None)

    def _first_visible_step(self, definition: Dict[str, Any], flow_data: Dict[str, Any]) -> Optional[str]:
        steps = definition.get('steps') or []
        start = find_step_index(definition, get_initial_step_id(definition))
        for step in steps[max(start, 0):]:
            if not should_skip_step(step, flow_data):
                return step.get('step_id')
        return None

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

        definition = self._definition(domain)
        if definition.get('steps'):
            step_definition = get_step_definition(definition, step_id)
        else:
            step_definition = next((s for s in self.get_wizard_steps(flow_config) if s['step_id'] == step_id), None)

        if not step_definition:
            return False
        return should_skip_step(step_definition, flow_data)

    async def validate_step_data(
        self,
        step: str,
        step_data: Dict[str, Any],
        domain: str,
        flow_config: Optional[Dict[str, Any]] = None
    ) -> ValidationResult:
        step_id = strip_wizard_prefix(step)
        if step_id is None:
            return ValidationResult(valid=True)

        definition = self._definition(domain)
        if definition.get('steps'):
            step_definition = get_step_definition(definition, step_id)
            if not step_definition:
                return ValidationResult(
                    valid=False,
                    errors={'_general': f"Step {step_id} not found in flow definition"}
                )
            return self.services.validator.validate_step_data(step_definition, step_data)

        legacy_step = next((s for s in self.get_wizard_steps(flow_config) if s['step_id'] == step_id), None)
        if not legacy_step:
            return ValidationResult(
                valid=False,
                errors={'_general': f"Step {step_id} not found in flow configuration"}
            )
        wrapped = {
            'step_id': step_id,
            'schema': {'type': 'object', 'properties': legacy_step.get('schema') or {}},
        }
        return self.services.validator.validate_step_data(wrapped, step_data)

    def get_wizard_steps(self, flow_config: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Legacy wizard steps from flow_config"""
        if not flow_config or not flow_config.get('steps'):
            return []
        return [
            {
                'step_id': step.get('step_id'),
                'title': step.get('title'),
                'description': step.get('description'),
                'schema': step.get('schema'),
                'condition': step.get('condition'),
            }
            for step in flow_config['steps']
        ]

    def find_next_available_step(
        self,
        steps: List[Dict[str, Any]],
        start_index: int,
        flow_data: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        for step in steps[start_index:]:
            if step.get('condition') and not evaluate_condition(step['condition'], flow_data):
                continue
            return step
        return None

    def get_step_metadata(self, step_id: str, flow_config: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        steps = self.get_wizard_steps(flow_config)
        for index, step in enumerate(steps):
            if step['step_id'] == step_id:
                return {
                    'step_id': step['step_id'],
                    'title': step['title'],
                    'description': step['description'],
                    'schema': step['schema'],
                    'step_number': index + 1,
                    'total_steps': len(steps),
                }
        return None

    def is_last_wizard_step(self, step: str, flow_config: Optional[Dict[str, Any]] = None) -> bool:
        step_id = strip_wizard_prefix(step)
        if step_id is None:
            return False
        steps = self.get_wizard_steps(flow_config)
        ids = [s['step_id'] for s in steps]
        return step_id in ids and ids.index(step_id) == len(ids) - 1

    def get_wizard_steps_with_status(
        self,
        flow_data: Dict[str, Any],
        flow_config: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Legacy steps annotated with completed (data submitted) and visible"""
        result = []
        for step in self.get_wizard_steps(flow_config):
            condition = step.get('condition')
            result.append({
                **step,
                'completed': bool(flow_data.get(wizard_step_tag(step['step_id']))),
                'visible': evaluate_condition(condition, flow_data) if condition else True,
            })
        return result
