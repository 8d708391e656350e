from __future__ import annotations

import json
from io import StringIO

from django.apps import apps
from django.core.exceptions import ImproperlyConfigured
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, override_settings

from capability_registry import runtime
from capability_registry.apps import (
    CapabilityRegistryConfig,
    check_capability_registry,
)
from capability_registry.registry.bindings import lazy
from capability_registry.registry.descriptors import TypeDescriptorRegistry
from capability_registry.registry.exceptions import RegistryInvariantError
from capability_registry.utils.testing import isolated_type_registry
from tests.example_shipping import ExpressCalculator, StandardCalculator

INCOMPLETE_SETTINGS = {
    "SLOTS": {
        "form": {"kind": "scalar", "required": True},
        "calculator": {"kind": "reference", "required": True},
    },
    "PROVIDERS": {},
    "REGISTRARS": ["tests.integration.test_app_startup.register_incomplete_types"],
}


def register_incomplete_types(registry: TypeDescriptorRegistry) -> None:
    registry.register_type("pickup", {"form": "PickupForm"})
    registry.register_type(
        "courier", {"form": "CourierForm", "calculator": lazy("shipping.courier")}
    )


class RuntimeRegistryTestCase(SimpleTestCase):
    def setUp(self) -> None:
        self._previous = runtime.get_type_registry()

    def tearDown(self) -> None:
        runtime.configure_type_registry(self._previous)


class AppStartupTests(RuntimeRegistryTestCase):
    def test_app_config_is_installed(self) -> None:
        config = apps.get_app_config("capability_registry")

        assert isinstance(config, CapabilityRegistryConfig)

    def test_registry_is_frozen_from_settings(self) -> None:
        registry = runtime.get_type_registry()

        assert registry.is_frozen
        assert registry.keys.all() == ("standard", "express")
        assert registry.descriptor("express").label == "Express"

    def test_dispatcher_serves_configured_types(self) -> None:
        dispatcher = runtime.get_dispatcher()

        calculator = dispatcher.resolve_capability("express", "calculator")
        assert isinstance(calculator, ExpressCalculator)
        assert dispatcher.resolve_capability("express", "calculator") is calculator
        assert isinstance(
            dispatcher.resolve_capability("standard", "calculator"), StandardCalculator
        )
        assert dispatcher.resolve_capability("standard", "tracking_url") is None
        assert dispatcher.resolve_capability("standard", "permitted_fields") == [
            "address",
            "weight_kg",
        ]

    def test_returned_lists_do_not_alias_registry_state(self) -> None:
        dispatcher = runtime.get_dispatcher()

        fields = dispatcher.resolve_capability("standard", "permitted_fields")
        fields.append("signature")

        assert "signature" not in dispatcher.resolve_capability(
            "standard", "permitted_fields"
        )

    def test_missing_required_binding_after_freeze_is_fatal(self) -> None:
        registry = TypeDescriptorRegistry()
        registry.declare_slot("form", required=True)
        registry.register_type("pickup", {"form": "PickupForm"})
        registry.freeze()
        registry._descriptors["pickup"] = type(registry.descriptor("pickup"))("pickup", {})

        with isolated_type_registry(registry):
            with self.assertRaises(RegistryInvariantError):
                runtime.get_dispatcher().resolve_capability("pickup", "form")


class SystemCheckTests(RuntimeRegistryTestCase):
    def test_frozen_registry_passes(self) -> None:
        runtime.get_type_registry()

        assert check_capability_registry() == []

    @override_settings(CAPABILITY_REGISTRY=INCOMPLETE_SETTINGS)
    def test_incomplete_registry_reports_every_violation(self) -> None:
        runtime.configure_type_registry(None)

        errors = check_capability_registry()

        assert [error.id for error in errors] == ["capability_registry.E001"] * 2
        assert [error.obj for error in errors] == ["pickup", "courier"]
        assert errors[0].msg == "pickup.calculator: missing"
        assert "shipping.courier" in errors[1].msg

    @override_settings(CAPABILITY_REGISTRY={"SLOTS": {"form": "widget"}})
    def test_invalid_configuration_is_reported(self) -> None:
        runtime.configure_type_registry(None)

        errors = check_capability_registry()

        assert [error.id for error in errors] == ["capability_registry.E002"]
        assert "Unknown slot kind 'widget'" in errors[0].msg
        assert errors[0].obj == "CAPABILITY_REGISTRY"

    @override_settings(
        CAPABILITY_REGISTRY={
            "SLOTS": {"form": "scalar"},
            "REGISTRARS": [
                "tests.integration.test_app_startup.register_undeclared_slot"
            ],
        }
    )
    def test_registration_errors_are_reported(self) -> None:
        runtime.configure_type_registry(None)

        errors = check_capability_registry()

        assert [error.id for error in errors] == ["capability_registry.E002"]
        assert "colour" in errors[0].msg


def register_undeclared_slot(registry: TypeDescriptorRegistry) -> None:
    registry.register_type("pickup", {"colour": "red"})


class InitializeRegistryTests(RuntimeRegistryTestCase):
    @override_settings(CAPABILITY_REGISTRY=INCOMPLETE_SETTINGS)
    def test_incomplete_registry_aborts_startup(self) -> None:
        previous = runtime.get_type_registry()

        with self.assertRaises(ImproperlyConfigured) as ctx:
            CapabilityRegistryConfig.initialize_registry()

        assert "2 violation(s)" in str(ctx.exception)
        assert runtime.get_type_registry() is previous

    @override_settings(CAPABILITY_REGISTRY={"SLOTS": {"form": "widget"}})
    def test_invalid_slot_kind_aborts_startup(self) -> None:
        previous = runtime.get_type_registry()

        with self.assertRaises(ImproperlyConfigured) as ctx:
            CapabilityRegistryConfig.initialize_registry()

        assert "Unknown slot kind 'widget'" in str(ctx.exception)
        assert isinstance(ctx.exception.__cause__, ValueError)
        assert runtime.get_type_registry() is previous

    @override_settings(
        CAPABILITY_REGISTRY={"REGISTRARS": ["tests.example_shipping.missing_registrar"]}
    )
    def test_unimportable_registrar_aborts_startup(self) -> None:
        with self.assertRaises(ImproperlyConfigured) as ctx:
            CapabilityRegistryConfig.initialize_registry()

        assert isinstance(ctx.exception.__cause__, ImportError)

    @override_settings(CAPABILITY_REGISTRY={"REGISTRARS": ["tests.settings.SECRET_KEY"]})
    def test_non_callable_registrar_aborts_startup(self) -> None:
        with self.assertRaises(ImproperlyConfigured) as ctx:
            CapabilityRegistryConfig.initialize_registry()

        assert isinstance(ctx.exception.__cause__, TypeError)

    def test_initialize_registry_installs_a_new_frozen_registry(self) -> None:
        previous = runtime.get_type_registry()

        CapabilityRegistryConfig.initialize_registry()

        assert runtime.get_type_registry() is not previous
        assert runtime.get_type_registry().is_frozen


class InspectCapabilitiesCommandTests(RuntimeRegistryTestCase):
    def test_text_output_lists_types_and_bindings(self) -> None:
        out = StringIO()

        call_command("inspect_capabilities", stdout=out)

        output = out.getvalue()
        assert "Registry state: frozen" in output
        assert "express (Express)" in output
        assert "  calculator: provider:shipping.express" in output
        assert "  form: 'StandardShippingForm'" in output

    def test_json_output_for_selected_type(self) -> None:
        out = StringIO()

        call_command("inspect_capabilities", "--json", "--type", "express", stdout=out)

        payload = json.loads(out.getvalue())
        assert payload["state"] == "frozen"
        assert list(payload["types"]) == ["express"]
        assert payload["slots"]["permitted_fields"] == {
            "kind": "list",
            "required": True,
        }
        assert payload["types"]["express"]["tracking_url"] == (
            "'https://track.example.com/{code}'"
        )

    def test_resolve_reports_success(self) -> None:
        out = StringIO()

        call_command("inspect_capabilities", "--resolve", stdout=out)

        assert "All providers resolved." in out.getvalue()

    def test_resolve_reports_failing_providers(self) -> None:
        registry = TypeDescriptorRegistry()
        registry.declare_slot("calculator", required=True, kind="reference")
        registry.register_provider("shipping.broken", _broken_factory)
        registry.register_type("broken", {"calculator": lazy("shipping.broken")})
        registry.freeze()
        err = StringIO()

        with isolated_type_registry(registry):
            with self.assertRaisesMessage(CommandError, "1 type(s) failed to resolve."):
                call_command(
                    "inspect_capabilities", "--resolve", stdout=StringIO(), stderr=err
                )

        assert "broken:" in err.getvalue()
        assert "shipping.broken" in err.getvalue()

    def test_unknown_type_is_rejected(self) -> None:
        with self.assertRaisesMessage(CommandError, "Unknown type keys: legacy"):
            call_command("inspect_capabilities", "--type", "legacy", stdout=StringIO())


def _broken_factory() -> object:
    raise RuntimeError("rate card unavailable")
