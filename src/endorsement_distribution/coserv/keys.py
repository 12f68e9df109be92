"""Lookup key synthesis for CoSERV queries.

Each supported artifact type has its own synthesis function and its own key
namespace in the store:

    reference values  <scheme>.impl-id://<tenant>/<base64(implementation-id)>
    trust anchors     <scheme>.inst-id://<tenant>/<base64(ueid)>

Keys are a pure function of the scheme, the tenant and the extracted
identifier, and come out in selector order. Endorsed values have no lookup
scheme and are rejected.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable

from endorsement_distribution.coserv.errors import SynthesisError, SynthesisErrorKind
from endorsement_distribution.coserv.model import ArtifactType, Query, SelectorError

logger = logging.getLogger(__name__)

DEFAULT_SCHEME = "arm-cca"

REFERENCE_VALUE_NAMESPACE = "impl-id"
TRUST_ANCHOR_NAMESPACE = "inst-id"


def _b64(identifier: bytes) -> str:
    return base64.b64encode(identifier).decode("ascii")


def reference_value_key(tenant_id: str, impl_id: bytes, scheme: str = DEFAULT_SCHEME) -> str:
    """Key under which reference values for an implementation are stored."""
    return f"{scheme}.{REFERENCE_VALUE_NAMESPACE}://{tenant_id}/{_b64(impl_id)}"


def trust_anchor_key(tenant_id: str, ueid: bytes, scheme: str = DEFAULT_SCHEME) -> str:
    """Key under which trust anchors for a device instance are stored."""
    return f"{scheme}.{TRUST_ANCHOR_NAMESPACE}://{tenant_id}/{_b64(ueid)}"


class KeySynthesizer:
    """Maps a query's environment selector to ordered store lookup keys.

    Attributes:
        scheme: Attestation scheme name prefixed to every key.
    """

    def __init__(self, scheme: str = DEFAULT_SCHEME) -> None:
        self.scheme = scheme
        self._synthesizers: dict[ArtifactType, Callable[[str, Query], list[str]]] = {
            ArtifactType.REFERENCE_VALUES: self._reference_value_keys,
            ArtifactType.TRUST_ANCHORS: self._trust_anchor_keys,
        }

    def synthesize(self, tenant_id: str, query: Query) -> list[str]:
        """Derive the lookup keys for a query.

        Args:
            tenant_id: Tenant namespace for the keys.
            query: The decoded query.

        Returns:
            One key per selector entry, in selector order. Empty when the
            selector list for the artifact type is empty.

        Raises:
            SynthesisError: On an unsupported artifact type or a selector
                entry whose identifier cannot be extracted.
        """
        synthesize = self._synthesizers.get(query.artifact_type)
        if synthesize is None:
            raise SynthesisError(
                SynthesisErrorKind.UNSUPPORTED_ARTIFACT_TYPE,
                f"artifact type {query.artifact_type.name} is not supported",
            )
        keys = synthesize(tenant_id, query)
        logger.debug(
            "Synthesized %d key(s) for artifact_type=%s",
            len(keys),
            query.artifact_type.name,
        )
        return keys

    def _reference_value_keys(self, tenant_id: str, query: Query) -> list[str]:
        keys = []
        for index, selector in enumerate(query.environment_selector.classes):
            try:
                impl_id = selector.implementation_id()
            except SelectorError as e:
                raise SynthesisError(
                    SynthesisErrorKind.INVALID_CLASS_SELECTOR,
                    f"class selector {index}: {e}",
                    index=index,
                ) from e
            keys.append(reference_value_key(tenant_id, impl_id, self.scheme))
        return keys

    def _trust_anchor_keys(self, tenant_id: str, query: Query) -> list[str]:
        keys = []
        for index, selector in enumerate(query.environment_selector.instances):
            try:
                ueid = selector.ueid()
            except SelectorError as e:
                raise SynthesisError(
                    SynthesisErrorKind.INVALID_INSTANCE_SELECTOR,
                    f"instance selector {index}: {e}",
                    index=index,
                ) from e
            keys.append(trust_anchor_key(tenant_id, ueid, self.scheme))
        return keys


def synthesize(tenant_id: str, query: Query, scheme: str = DEFAULT_SCHEME) -> list[str]:
    """Derive lookup keys with a one-off synthesizer."""
    return KeySynthesizer(scheme).synthesize(tenant_id, query)
