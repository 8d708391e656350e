"""List registered types and their capability bindings."""

from __future__ import annotations

import json
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from capability_registry.registry.exceptions import CapabilityRegistryError
from capability_registry.runtime import get_type_registry


class Command(BaseCommand):
    help = "Show the capability bindings of every registered type."

    def add_arguments(self, parser) -> None:  # type: ignore[override]
        parser.add_argument(
            "--type",
            nargs="+",
            dest="types",
            help="Type keys to show (space-separated). Defaults to all types.",
        )
        parser.add_argument(
            "--resolve",
            action="store_true",
            help="Resolve every lazy provider of the selected types and report failures.",
        )
        parser.add_argument(
            "--json",
            action="store_true",
            dest="as_json",
            help="Emit a JSON document instead of text.",
        )

    def handle(self, *_: Any, **options: Any) -> None:
        """
        Print bindings for the selected types, optionally resolving providers.

        Raises:
            CommandError: If the registry cannot be initialized, a requested type
                is unknown, or a provider fails to resolve with ``--resolve``.
        """
        try:
            registry = get_type_registry()
        except CapabilityRegistryError as exc:
            raise CommandError(str(exc)) from exc

        selected = list(options.get("types") or registry.keys.all())
        unknown = [key for key in selected if key not in registry]
        if unknown:
            raise CommandError(f"Unknown type keys: {', '.join(unknown)}")  # noqa: TRY003

        snapshot = registry.snapshot()
        report: dict[str, dict[str, str]] = {key: dict(snapshot[key]) for key in selected}

        failures: list[str] = []
        if options["resolve"]:
            for key in selected:
                try:
                    registry.lookup_all(key)
                except CapabilityRegistryError as exc:
                    failures.append(f"{key}: {exc}")

        if options["as_json"]:
            payload = {
                "state": registry.state.value,
                "slots": {
                    name: {"kind": slot.kind.value, "required": slot.required}
                    for name, slot in registry.schema.slots().items()
                },
                "types": report,
            }
            self.stdout.write(json.dumps(payload, indent=2, sort_keys=True))
        else:
            self.stdout.write(f"Registry state: {registry.state.value}")
            for key, bindings in report.items():
                label = registry.descriptor(key).label
                self.stdout.write(f"{key}" + (f" ({label})" if label else ""))
                for slot, description in bindings.items():
                    self.stdout.write(f"  {slot}: {description}")

        if failures:
            for failure in failures:
                self.stderr.write(failure)
            raise CommandError(f"{len(failures)} type(s) failed to resolve.")  # noqa: TRY003
        if options["resolve"]:
            self.stdout.write(self.style.SUCCESS("All providers resolved."))
