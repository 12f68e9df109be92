"""CoSERV query resolution core.

- model: queries, selectors and results
- query: query decoder (and encoder for clients)
- keys: lookup key synthesis per artifact type
- result: result envelope encoder (and decoder for clients)
- errors: typed error taxonomy
"""

from endorsement_distribution.coserv.errors import (
    CoservError,
    DecodeError,
    DecodeErrorKind,
    EncodeError,
    EncodeErrorKind,
    ErrorClass,
    ResolveError,
    ResolveErrorKind,
    StoreError,
    StoreErrorKind,
    SynthesisError,
    SynthesisErrorKind,
)
from endorsement_distribution.coserv.keys import (
    KeySynthesizer,
    reference_value_key,
    trust_anchor_key,
)
from endorsement_distribution.coserv.model import (
    ArtifactType,
    ClassSelector,
    CoservResult,
    EnvironmentSelector,
    InstanceSelector,
    Query,
)
from endorsement_distribution.coserv.query import decode, encode_query
from endorsement_distribution.coserv.result import MEDIA_TYPE, decode_result, encode

__all__ = [
    "MEDIA_TYPE",
    "ArtifactType",
    "ClassSelector",
    "CoservError",
    "CoservResult",
    "DecodeError",
    "DecodeErrorKind",
    "EncodeError",
    "EncodeErrorKind",
    "EnvironmentSelector",
    "ErrorClass",
    "InstanceSelector",
    "KeySynthesizer",
    "Query",
    "ResolveError",
    "ResolveErrorKind",
    "StoreError",
    "StoreErrorKind",
    "SynthesisError",
    "SynthesisErrorKind",
    "decode",
    "decode_result",
    "encode",
    "encode_query",
    "reference_value_key",
    "trust_anchor_key",
]
