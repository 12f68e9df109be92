"""Command line helpers for operating the endorsement distribution service.

Usage:
    eds-cli query rv --id 7f454c46...            # print a base64url query
    eds-cli query ta --id 0107060504... --profile tag:arm.com,2023:cca_platform#1.0.0
    eds-cli provision seed.json                  # write artifacts to the store
    eds-cli provision seed.json --dry-run        # print the keys only
    eds-cli decode-result result.cbor            # print a CoSERV result as JSON

Seed files are JSON arrays of entries:

    [{"artifact_type": "reference_values",
      "id": "7f454c46...",
      "artifacts": ["<base64>", ...]}]

Exit codes:
    0 - Success
    1 - Invalid input or store failure
"""

from __future__ import annotations

import argparse
import asyncio
import base64
import binascii
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from cbor2 import CBORTag

from endorsement_distribution.coserv.errors import CoservError
from endorsement_distribution.coserv.keys import DEFAULT_SCHEME, reference_value_key, trust_anchor_key
from endorsement_distribution.coserv.model import (
    TAG_IMPL_ID,
    TAG_UEID,
    ArtifactType,
    ClassSelector,
    EnvironmentSelector,
    InstanceSelector,
    Query,
    SelectorError,
)
from endorsement_distribution.coserv.query import encode_query
from endorsement_distribution.coserv.result import decode_result
from endorsement_distribution.core.log import configure_logging

if TYPE_CHECKING:
    from endorsement_distribution.services.store import EndorsementStore

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "tag:arm.com,2023:cca_platform#1.0.0"

QUERY_KINDS = {
    "rv": ArtifactType.REFERENCE_VALUES,
    "ta": ArtifactType.TRUST_ANCHORS,
}


class SeedError(ValueError):
    """Raised when a seed file entry cannot be turned into a store write."""


@dataclass(frozen=True)
class SeedEntry:
    """One store write taken from a seed file."""

    key: str
    artifacts: list[bytes]


def build_query(kind: str, identifier: bytes, profile: str = DEFAULT_PROFILE) -> Query:
    """Build a single-selector query with a tagged identifier."""
    artifact_type = QUERY_KINDS[kind]
    if artifact_type == ArtifactType.REFERENCE_VALUES:
        selector = EnvironmentSelector(classes=(ClassSelector(CBORTag(TAG_IMPL_ID, identifier)),))
    else:
        selector = EnvironmentSelector(instances=(InstanceSelector(CBORTag(TAG_UEID, identifier)),))
    return Query(profile=profile, artifact_type=artifact_type, environment_selector=selector)


def _parse_artifact_type(value: Any) -> ArtifactType:
    if isinstance(value, str):
        try:
            return ArtifactType[value.upper()]
        except KeyError:
            pass
    elif isinstance(value, int) and not isinstance(value, bool):
        try:
            return ArtifactType(value)
        except ValueError:
            pass
    msg = f"unknown artifact_type: {value!r}"
    raise SeedError(msg)


def load_seed(
    entries: Any,
    tenant_id: str = "0",
    scheme: str = DEFAULT_SCHEME,
) -> list[SeedEntry]:
    """Turn parsed seed JSON into store writes.

    Raises:
        SeedError: If an entry is malformed or targets an artifact type
            without a key namespace.
    """
    if not isinstance(entries, list):
        msg = "seed file must contain a JSON array"
        raise SeedError(msg)

    writes = []
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            msg = f"entry {i}: expected an object"
            raise SeedError(msg)
        try:
            artifact_type = _parse_artifact_type(entry.get("artifact_type"))
            identifier = bytes.fromhex(entry["id"])
            artifacts = [base64.b64decode(a, validate=True) for a in entry.get("artifacts", [])]
        except (KeyError, TypeError, ValueError, binascii.Error) as e:
            msg = f"entry {i}: {e}"
            raise SeedError(msg) from e

        try:
            if artifact_type == ArtifactType.REFERENCE_VALUES:
                key = reference_value_key(tenant_id, ClassSelector(identifier).implementation_id(), scheme)
            elif artifact_type == ArtifactType.TRUST_ANCHORS:
                key = trust_anchor_key(tenant_id, InstanceSelector(identifier).ueid(), scheme)
            else:
                msg = f"entry {i}: artifact type {artifact_type.name} cannot be provisioned"
                raise SeedError(msg)
        except SelectorError as e:
            msg = f"entry {i}: {e}"
            raise SeedError(msg) from e
        writes.append(SeedEntry(key=key, artifacts=artifacts))

    return writes


async def provision(store: EndorsementStore, writes: list[SeedEntry]) -> int:
    """Replace the artifacts under every seed key. Returns the count written."""
    for write in writes:
        await store.replace(write.key, write.artifacts)
    return len(writes)


async def _provision_sql(writes: list[SeedEntry]) -> int:
    from endorsement_distribution.core.settings import get_settings
    from endorsement_distribution.db import close_engine, init_engine
    from endorsement_distribution.services.store import SqlEndorsementStore

    store = SqlEndorsementStore(init_engine(get_settings().database))
    logger.info("Provisioning %d key(s) into the SQL store", len(writes))
    try:
        return await provision(store, writes)
    finally:
        await close_engine()


def result_to_json(data: bytes) -> dict[str, Any]:
    """Render an encoded CoSERV result as a JSON-friendly dict."""
    result = decode_result(data)
    return {
        "profile": result.profile,
        "artifact_type": result.artifact_type.name.lower(),
        "artifacts": [base64.b64encode(a).decode("ascii") for a in result.artifacts],
    }


def _cmd_query(args: argparse.Namespace) -> int:
    try:
        identifier = bytes.fromhex(args.id)
    except ValueError as e:
        print(f"ERROR: --id is not valid hex: {e}", file=sys.stderr)
        return 1
    print(encode_query(build_query(args.kind, identifier, args.profile)))
    return 0


def _seed_namespace(args: argparse.Namespace) -> tuple[str, str]:
    """Tenant and scheme for seed keys; omitted flags fall back to the service settings."""
    if args.tenant is not None and args.scheme is not None:
        return args.tenant, args.scheme

    from endorsement_distribution.core.settings import get_settings

    settings = get_settings()
    tenant_id = args.tenant if args.tenant is not None else settings.tenant_id
    scheme = args.scheme if args.scheme is not None else settings.resolver.key_scheme
    return tenant_id, scheme


def _cmd_provision(args: argparse.Namespace) -> int:
    try:
        entries = json.loads(Path(args.file).read_text())
        tenant_id, scheme = _seed_namespace(args)
        writes = load_seed(entries, tenant_id, scheme)
    except (OSError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if args.dry_run:
        for write in writes:
            print(f"{write.key} ({len(write.artifacts)} artifact(s))")
        return 0

    try:
        count = asyncio.run(_provision_sql(writes))
    except CoservError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        return 1

    print(f"Provisioned {count} key(s)")
    return 0


def _cmd_decode_result(args: argparse.Namespace) -> int:
    try:
        data = sys.stdin.buffer.read() if args.file == "-" else Path(args.file).read_bytes()
        rendered = result_to_json(data)
    except OSError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except CoservError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        return 1
    print(json.dumps(rendered, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="eds-cli", description="Endorsement distribution tools")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    query = subparsers.add_parser("query", help="Print a base64url CoSERV query")
    query.add_argument("kind", choices=sorted(QUERY_KINDS), help="rv: reference values, ta: trust anchors")
    query.add_argument("--id", required=True, help="Implementation ID (rv) or UEID (ta) as hex")
    query.add_argument("--profile", default=DEFAULT_PROFILE, help="Query profile")
    query.set_defaults(handler=_cmd_query)

    prov = subparsers.add_parser("provision", help="Write seed artifacts to the store")
    prov.add_argument("file", help="JSON seed file")
    prov.add_argument("--tenant", help="Tenant ID for the keys (default: EDS_TENANT_ID)")
    prov.add_argument("--scheme", help="Key scheme (default: EDS_RESOLVER__KEY_SCHEME)")
    prov.add_argument("--dry-run", action="store_true", help="Print the keys without writing")
    prov.set_defaults(handler=_cmd_provision)

    decode = subparsers.add_parser("decode-result", help="Print a CoSERV result as JSON")
    decode.add_argument("file", help="CBOR result file, or - for stdin")
    decode.set_defaults(handler=_cmd_decode_result)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
