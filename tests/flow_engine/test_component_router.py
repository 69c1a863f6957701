"""
Tests for configflow/flow_engine/component_router.py
"""


class TestResolveComponentPath:
    """Tests for resolve_component_path() and the component table"""

    def test_standard_components(self):
        """Known types map to the standard step components"""
        from configflow.flow_engine.component_router import resolve_component_path

        assert resolve_component_path('wizard') == '@/components/addDevice/client/WizardStep.client'
        assert resolve_component_path('confirm') == '@/components/addDevice/client/DeviceConfirm.client'

    def test_custom_component(self):
        """custom uses the component name from the step ui"""
        from configflow.flow_engine.component_router import resolve_component_path

        assert resolve_component_path('custom', 'HueBridgePicker') == '@/components/custom/HueBridgePicker'

    def test_unknown_falls_back_to_manual(self, caplog):
        """Unregistered types render the manual configure step"""
        from configflow.flow_engine.component_router import resolve_component_path

        with caplog.at_level('WARNING'):
            path = resolve_component_path('hologram')
        assert path == '@/components/addDevice/client/ConfigureStep.client'
        assert 'hologram' in caplog.text

    def test_register_component(self):
        """Registered types become resolvable"""
        from configflow.flow_engine.component_router import (
            get_registered_component_types,
            register_step_component,
            resolve_component_name,
        )

        register_step_component('qr_pairing', 'QrPairingStep')
        assert 'qr_pairing' in get_registered_component_types()
        assert resolve_component_name('qr_pairing') == 'QrPairingStep'
