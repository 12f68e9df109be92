"""CoSERV query and result data model.

The model mirrors the CBOR document layout used on the wire:

    query  = { 0: profile, 1: { 0: artifact-type, 1: environment-selector } }
    result = { 0: profile, 1: { 0: artifact-type, 1: [ { 0: artifact } ] } }

All types are immutable once built. Selector entries keep the raw
identifier value found on the wire; identifier validation happens at key
synthesis so that failures can report the offending entry index.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from cbor2 import CBORTag

# CBOR tags wrapping the identifiers carried in selectors
TAG_IMPL_ID = 600
TAG_UEID = 550

IMPL_ID_SIZE = 32
UEID_MIN_SIZE = 7
UEID_MAX_SIZE = 33


class ArtifactType(enum.IntEnum):
    """CoSERV artifact type code points.

    Values:
        ENDORSED_VALUES: Endorsed values (not served by this service)
        TRUST_ANCHORS: Verification keys and certificates for device instances
        REFERENCE_VALUES: Known-good measurements for device classes
    """

    ENDORSED_VALUES = 0
    TRUST_ANCHORS = 1
    REFERENCE_VALUES = 2


class UEIDType(enum.IntEnum):
    """Leading type byte of a UEID (EAT, RFC 9711)."""

    RAND = 0x01
    EUI = 0x02
    IMEI = 0x03


class SelectorError(ValueError):
    """Raised when an identifier cannot be extracted from a selector entry."""


def _unwrap(value: Any, tag: int) -> Any:
    """Strip an optional CBOR tag from an identifier value."""
    if not isinstance(value, CBORTag):
        return value
    if value.tag != tag:
        msg = f"unexpected CBOR tag {value.tag} (want {tag})"
        raise SelectorError(msg)
    return value.value


@dataclass(frozen=True)
class ClassSelector:
    """Environment class selector (device class / product line).

    Attributes:
        class_id: Raw class identifier as decoded (None when absent).
    """

    class_id: Any = None

    def implementation_id(self) -> bytes:
        """Extract the implementation identifier.

        Accepts a bare byte string or one wrapped in the
        tagged-implementation-id CBOR tag.

        Raises:
            SelectorError: If the class identifier is absent or malformed.
        """
        if self.class_id is None:
            msg = "class-id is missing"
            raise SelectorError(msg)
        impl_id = _unwrap(self.class_id, TAG_IMPL_ID)
        if not isinstance(impl_id, bytes):
            msg = f"class-id must be a byte string, got {type(impl_id).__name__}"
            raise SelectorError(msg)
        if len(impl_id) != IMPL_ID_SIZE:
            msg = f"implementation id must be {IMPL_ID_SIZE} bytes, got {len(impl_id)}"
            raise SelectorError(msg)
        return impl_id


@dataclass(frozen=True)
class InstanceSelector:
    """Environment instance selector (one specific device).

    Attributes:
        instance_id: Raw instance identifier as decoded (None when absent).
    """

    instance_id: Any = None

    def ueid(self) -> bytes:
        """Extract the unique entity identifier.

        Accepts a bare byte string or one wrapped in the tagged-ueid CBOR tag.

        Raises:
            SelectorError: If the instance identifier is absent or malformed.
        """
        if self.instance_id is None:
            msg = "instance-id is missing"
            raise SelectorError(msg)
        ueid = _unwrap(self.instance_id, TAG_UEID)
        if not isinstance(ueid, bytes):
            msg = f"instance-id must be a byte string, got {type(ueid).__name__}"
            raise SelectorError(msg)
        if not UEID_MIN_SIZE <= len(ueid) <= UEID_MAX_SIZE:
            msg = f"UEID must be {UEID_MIN_SIZE}-{UEID_MAX_SIZE} bytes, got {len(ueid)}"
            raise SelectorError(msg)
        try:
            UEIDType(ueid[0])
        except ValueError:
            msg = f"unknown UEID type byte 0x{ueid[0]:02x}"
            raise SelectorError(msg) from None
        return ueid


@dataclass(frozen=True)
class EnvironmentSelector:
    """Ordered class and instance selector lists.

    Only the list matching the query's artifact type is ever read.
    """

    classes: tuple[ClassSelector, ...] = ()
    instances: tuple[InstanceSelector, ...] = ()


@dataclass(frozen=True)
class Query:
    """A decoded CoSERV query."""

    profile: str
    artifact_type: ArtifactType
    environment_selector: EnvironmentSelector = field(default_factory=EnvironmentSelector)


@dataclass(frozen=True)
class CoservResult:
    """A CoSERV result: the artifacts matching a query, in key order."""

    profile: str
    artifact_type: ArtifactType
    artifacts: tuple[bytes, ...] = ()
