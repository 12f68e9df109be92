"""CoSERV query codec.

Queries travel as a path segment: URL-safe base64 (padding optional) over a
CBOR document:

    { 0: profile,
      1: { 0: artifact-type,
           1: { 0: [ { 0: class-id }, ... ],
                1: [ { 1: instance-id }, ... ] } } }

Map keys other than the ones above are ignored so that newer clients can
add fields. Selector entries must be maps, but the identifiers inside them
are left to the key synthesizer to validate.

Example:
    query = decode(path_segment)
    assert decode(encode_query(query)) == query
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
from typing import Any

import cbor2

from endorsement_distribution.coserv.errors import DecodeError, DecodeErrorKind
from endorsement_distribution.coserv.model import (
    ArtifactType,
    ClassSelector,
    EnvironmentSelector,
    InstanceSelector,
    Query,
)

logger = logging.getLogger(__name__)

# Document field numbers
FIELD_PROFILE = 0
FIELD_QUERY = 1
FIELD_ARTIFACT_TYPE = 0
FIELD_ENVIRONMENT_SELECTOR = 1
FIELD_CLASSES = 0
FIELD_INSTANCES = 1
FIELD_CLASS_ID = 0
FIELD_INSTANCE_ID = 1


def _b64url_to_bytes(encoded: str) -> bytes:
    """Decode URL-safe base64 text that may lack padding."""
    if not encoded:
        raise DecodeError(DecodeErrorKind.MALFORMED_ENCODING, "empty query")

    normalized = encoded.replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)
    try:
        return base64.b64decode(normalized, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(
            DecodeErrorKind.MALFORMED_ENCODING,
            f"query is not valid base64url: {e}",
        ) from e


def _malformed(message: str) -> DecodeError:
    return DecodeError(DecodeErrorKind.MALFORMED_DOCUMENT, message)


def _expect_map(value: Any, what: str) -> dict[Any, Any]:
    if not isinstance(value, dict):
        raise _malformed(f"{what} must be a map, got {type(value).__name__}")
    return value


def _expect_array(value: Any, what: str) -> list[Any]:
    if not isinstance(value, list):
        raise _malformed(f"{what} must be an array, got {type(value).__name__}")
    return value


_MISSING = object()


def _field(mapping: dict[Any, Any], number: int, default: Any = _MISSING) -> Any:
    """Look up an integer map key, ignoring bool and float keys that compare equal."""
    for key, value in mapping.items():
        if type(key) is int and key == number:
            return value
    return default


def _parse_artifact_type(value: Any) -> ArtifactType:
    # bool is an int subclass; CBOR true/false is not an artifact type
    if isinstance(value, bool) or not isinstance(value, int):
        raise _malformed(f"artifact-type must be an integer, got {type(value).__name__}")
    try:
        return ArtifactType(value)
    except ValueError:
        raise _malformed(f"unknown artifact-type {value}") from None


def _parse_environment_selector(value: Any) -> EnvironmentSelector:
    selector = _expect_map(value, "environment-selector")

    classes: list[ClassSelector] = []
    class_entries = _field(selector, FIELD_CLASSES)
    if class_entries is not _MISSING:
        entries = _expect_array(class_entries, "class selector list")
        for i, entry in enumerate(entries):
            entry_map = _expect_map(entry, f"class selector {i}")
            classes.append(ClassSelector(class_id=_field(entry_map, FIELD_CLASS_ID, None)))

    instances: list[InstanceSelector] = []
    instance_entries = _field(selector, FIELD_INSTANCES)
    if instance_entries is not _MISSING:
        entries = _expect_array(instance_entries, "instance selector list")
        for i, entry in enumerate(entries):
            entry_map = _expect_map(entry, f"instance selector {i}")
            instances.append(
                InstanceSelector(instance_id=_field(entry_map, FIELD_INSTANCE_ID, None))
            )

    return EnvironmentSelector(classes=tuple(classes), instances=tuple(instances))


def parse_query_document(document: Any) -> Query:
    """Build a Query from an already CBOR-decoded document.

    Raises:
        DecodeError: If the document shape is wrong or the profile is missing.
    """
    top = _expect_map(document, "query document")

    profile = _field(top, FIELD_PROFILE, None)
    if profile is None or profile == "":
        raise DecodeError(DecodeErrorKind.MISSING_PROFILE, "profile not found in CoSERV query")
    if not isinstance(profile, str):
        raise _malformed(f"profile must be a text string, got {type(profile).__name__}")

    query_value = _field(top, FIELD_QUERY)
    if query_value is _MISSING:
        raise _malformed("query object is missing")
    query = _expect_map(query_value, "query object")

    artifact_value = _field(query, FIELD_ARTIFACT_TYPE)
    if artifact_value is _MISSING:
        raise _malformed("artifact-type is missing")
    artifact_type = _parse_artifact_type(artifact_value)

    selector_value = _field(query, FIELD_ENVIRONMENT_SELECTOR)
    if selector_value is _MISSING:
        raise _malformed("environment-selector is missing")
    environment_selector = _parse_environment_selector(selector_value)

    return Query(
        profile=profile,
        artifact_type=artifact_type,
        environment_selector=environment_selector,
    )


def decode(encoded: str) -> Query:
    """Decode a base64url CoSERV query.

    Args:
        encoded: URL-safe base64 text, padded or not.

    Returns:
        The decoded, immutable Query.

    Raises:
        DecodeError: MALFORMED_ENCODING, MALFORMED_DOCUMENT or MISSING_PROFILE.
    """
    data = _b64url_to_bytes(encoded)

    fp = io.BytesIO(data)
    try:
        document = cbor2.CBORDecoder(fp).decode()
    except (cbor2.CBORDecodeError, ValueError, TypeError) as e:
        raise _malformed(f"query is not valid CBOR: {e}") from e
    if fp.tell() != len(data):
        raise _malformed(f"{len(data) - fp.tell()} trailing byte(s) after CBOR query document")

    query = parse_query_document(document)
    logger.debug(
        "Decoded CoSERV query: profile=%s, artifact_type=%s, classes=%d, instances=%d",
        query.profile,
        query.artifact_type.name,
        len(query.environment_selector.classes),
        len(query.environment_selector.instances),
    )
    return query


def build_query_document(query: Query) -> dict[int, Any]:
    """Build the CBOR document for a Query (inverse of parse_query_document)."""
    selector: dict[int, Any] = {}
    env = query.environment_selector
    if env.classes:
        selector[FIELD_CLASSES] = [
            {FIELD_CLASS_ID: c.class_id} if c.class_id is not None else {} for c in env.classes
        ]
    if env.instances:
        selector[FIELD_INSTANCES] = [
            {FIELD_INSTANCE_ID: i.instance_id} if i.instance_id is not None else {}
            for i in env.instances
        ]
    return {
        FIELD_PROFILE: query.profile,
        FIELD_QUERY: {
            FIELD_ARTIFACT_TYPE: int(query.artifact_type),
            FIELD_ENVIRONMENT_SELECTOR: selector,
        },
    }


def encode_query(query: Query) -> str:
    """Encode a Query as unpadded base64url text, ready for a URL path."""
    data = cbor2.dumps(build_query_document(query))
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")
