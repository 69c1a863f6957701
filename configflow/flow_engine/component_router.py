"""
Step component router - maps component types to presentation components.

The engine does not render anything; it only names the component the UI
should load for a step and where to import it from.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class ComponentType(str, Enum):
    MANUAL = "manual"
    DISCOVERY = "discovery"
    OAUTH = "oauth"
    WIZARD = "wizard"
    CONFIRM = "confirm"
    CUSTOM = "custom"


CUSTOM_COMPONENT_ROOT = '@/components/custom'
STANDARD_COMPONENT_ROOT = '@/components/addDevice/client'

# component type -> component name
_components: Dict[str, str] = {
    ComponentType.MANUAL.value: 'ConfigureStep',
    ComponentType.DISCOVERY.value: 'DeviceDiscovery',
    ComponentType.OAUTH.value: 'OAuthStep',
    ComponentType.WIZARD.value: 'WizardStep',
    ComponentType.CONFIRM.value: 'DeviceConfirm',
}


def register_step_component(component_type: str, component_name: str) -> None:
    """Register (or override) the component rendered for a component type"""
    _components[component_type] = component_name


def get_registered_component_types() -> List[str]:
    return list(_components.keys())


def resolve_component_name(component_type: str) -> str:
    name = _components.get(component_type)
    if name is None:
        logger.warning(f"No component registered for type '{component_type}', falling back to manual")
        return _components[ComponentType.MANUAL.value]
    return name


def resolve_component_path(component_type: str, component_name: Optional[str] = None) -> str:
    """
    Import path of the component for a type.

    Custom components live under @/components/custom/<name>; everything
    else resolves to a standard step component, manual when unknown.
    """
    if component_type == ComponentType.CUSTOM.value and component_name:
        return f"{CUSTOM_COMPONENT_ROOT}/{component_name}"

    name = resolve_component_name(component_type)
    return f"{STANDARD_COMPONENT_ROOT}/{name}.client"
