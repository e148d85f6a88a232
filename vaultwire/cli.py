from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from vaultwire.configuration import Configuration, EnvironmentSource, JsonFileSource
from vaultwire.exceptions import ConfigurationError
from vaultwire.layering import OVERRIDE_FILE, VAULT_LAYER, build_configuration, default_layers

MASK = "****"


@dataclass(frozen=True, slots=True)
class ResolvedEntry:
    key: str
    value: str
    layer: str | None


def resolve_entries(
    configuration: Configuration, show_secrets: bool = False
) -> list[ResolvedEntry]:
    entries: list[ResolvedEntry] = []
    for key, value in configuration.items():
        layer = configuration.origin_of(key)
        if layer == VAULT_LAYER and not show_secrets:
            value = MASK
        entries.append(ResolvedEntry(key=key, value=value, layer=layer))
    entries.sort(key=lambda entry: entry.key.casefold())
    return entries


def cli(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="vaultwire-config",
        description=(
            "Build the layered configuration (base, override file, Vault, override file) "
            "and print every resolved key with the layer that supplied it."
        ),
    )
    parser.add_argument(
        "--base-file",
        type=Path,
        default=Path("appsettings.json"),
        help="Base JSON settings file (default: appsettings.json, optional).",
    )
    parser.add_argument(
        "--override-file",
        type=Path,
        default=Path(OVERRIDE_FILE),
        help=f"Local override JSON file (default: {OVERRIDE_FILE}, optional).",
    )
    parser.add_argument(
        "--env-prefix",
        default=None,
        help="Only read environment variables with this prefix. Omit to skip the environment.",
    )
    parser.add_argument(
        "--show-secrets",
        action="store_true",
        help="Print values loaded from Vault instead of masking them.",
    )
    args = parser.parse_args(argv)

    base_sources = [JsonFileSource(path=args.base_file)]
    if args.env_prefix is not None:
        base_sources.append(EnvironmentSource(prefix=args.env_prefix))

    try:
        configuration = build_configuration(
            default_layers(base_sources=base_sources, override_file=args.override_file)
        )
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    for entry in resolve_entries(configuration, show_secrets=args.show_secrets):
        print(f"{entry.key}={entry.value}  [{entry.layer}]")
    return 0


def main() -> None:
    raise SystemExit(cli())
