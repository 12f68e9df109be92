"""CoSERV result codec.

The result envelope mirrors the query's shape:

    { 0: profile,
      1: { 0: artifact-type,
           1: [ { 0: artifact-bytes }, ... ] } }
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import cbor2

from endorsement_distribution.coserv.errors import (
    DecodeError,
    DecodeErrorKind,
    EncodeError,
    EncodeErrorKind,
)
from endorsement_distribution.coserv.model import ArtifactType, CoservResult

FIELD_PROFILE = 0
FIELD_RESULT = 1
FIELD_ARTIFACT_TYPE = 0
FIELD_ARTIFACTS = 1
FIELD_ARTIFACT_DATA = 0

MEDIA_TYPE = "application/coserv+cbor"


def encode(profile: str, artifact_type: ArtifactType, artifacts: Sequence[bytes]) -> bytes:
    """Serialize a CoSERV result envelope.

    Args:
        profile: Profile copied from the query.
        artifact_type: Artifact type copied from the query.
        artifacts: Artifacts in key order.

    Returns:
        The CBOR-encoded result.

    Raises:
        EncodeError: SERIALIZATION_FAILURE if the CBOR backend rejects the input.
    """
    try:
        document = {
            FIELD_PROFILE: profile,
            FIELD_RESULT: {
                FIELD_ARTIFACT_TYPE: int(artifact_type),
                FIELD_ARTIFACTS: [{FIELD_ARTIFACT_DATA: bytes(a)} for a in artifacts],
            },
        }
        return cbor2.dumps(document)
    except (cbor2.CBOREncodeError, TypeError, ValueError) as e:
        raise EncodeError(
            EncodeErrorKind.SERIALIZATION_FAILURE,
            f"failed to encode CoSERV result: {e}",
        ) from e


def decode_result(data: bytes) -> CoservResult:
    """Parse an encoded result envelope (client side of encode).

    Raises:
        DecodeError: MALFORMED_DOCUMENT if the bytes are not a result envelope.
    """
    try:
        document: Any = cbor2.loads(data)
        body = document[FIELD_RESULT]
        artifacts = tuple(entry[FIELD_ARTIFACT_DATA] for entry in body[FIELD_ARTIFACTS])
        result = CoservResult(
            profile=document[FIELD_PROFILE],
            artifact_type=ArtifactType(body[FIELD_ARTIFACT_TYPE]),
            artifacts=artifacts,
        )
    except (cbor2.CBORDecodeError, KeyError, IndexError, TypeError, ValueError) as e:
        raise DecodeError(
            DecodeErrorKind.MALFORMED_DOCUMENT,
            f"not a CoSERV result: {e}",
        ) from e

    if not isinstance(result.profile, str) or not all(isinstance(a, bytes) for a in artifacts):
        raise DecodeError(DecodeErrorKind.MALFORMED_DOCUMENT, "not a CoSERV result: bad field types")
    return result
