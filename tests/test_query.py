"""Tests for the CoSERV query codec.

Tests cover:
- Decoding tagged and untagged selectors
- Padded and unpadded base64url input
- Encoding errors (base64, CBOR, document shape, profile)
- Unknown map keys being ignored
- Encoder/decoder agreement for client-built queries
"""

import base64

import cbor2
import pytest
from cbor2 import CBORTag

from endorsement_distribution.coserv.errors import DecodeError, DecodeErrorKind, ErrorClass
from endorsement_distribution.coserv.model import (
    ArtifactType,
    ClassSelector,
    EnvironmentSelector,
    InstanceSelector,
    Query,
)
from endorsement_distribution.coserv.query import decode, encode_query
from tests.factories import IMPL_ID, PROFILE, UEID, impl_id, rv_query, ta_query


def b64url(document, pad: bool = False) -> str:
    """CBOR-encode a document and base64url it."""
    text = base64.urlsafe_b64encode(cbor2.dumps(document)).decode("ascii")
    return text if pad else text.rstrip("=")


def rv_document(*class_ids, profile=PROFILE):
    return {0: profile, 1: {0: 2, 1: {0: [{0: c} for c in class_ids]}}}


class TestDecode:
    """Tests for decoding well-formed queries."""

    def test_decode_reference_value_query(self):
        """Test decoding a query with one tagged class selector."""
        query = decode(b64url(rv_document(CBORTag(600, IMPL_ID))))

        assert query.profile == PROFILE
        assert query.artifact_type == ArtifactType.REFERENCE_VALUES
        assert len(query.environment_selector.classes) == 1
        assert query.environment_selector.classes[0].implementation_id() == IMPL_ID
        assert query.environment_selector.instances == ()

    def test_decode_trust_anchor_query(self):
        """Test decoding a query with one tagged instance selector."""
        document = {0: PROFILE, 1: {0: 1, 1: {1: [{1: CBORTag(550, UEID)}]}}}
        query = decode(b64url(document))

        assert query.artifact_type == ArtifactType.TRUST_ANCHORS
        assert query.environment_selector.instances[0].ueid() == UEID

    def test_decode_untagged_identifier(self):
        """Test that a bare byte string identifier is accepted."""
        query = decode(b64url(rv_document(IMPL_ID)))
        assert query.environment_selector.classes[0].implementation_id() == IMPL_ID

    def test_decode_padded_input(self):
        """Test that padded base64url decodes the same as unpadded."""
        document = rv_document(CBORTag(600, IMPL_ID))
        assert decode(b64url(document, pad=True)) == decode(b64url(document))

    def test_decode_preserves_selector_order(self):
        """Test that class selectors keep their wire order."""
        ids = [impl_id(3), impl_id(1), impl_id(2)]
        query = decode(b64url(rv_document(*ids)))
        assert [c.implementation_id() for c in query.environment_selector.classes] == ids

    def test_decode_ignores_unknown_keys(self):
        """Test that unknown map keys at every level are ignored."""
        document = {
            0: PROFILE,
            1: {0: 2, 1: {0: [{0: IMPL_ID, 9: "extra"}], 7: []}, 5: True},
            3: "future-field",
        }
        query = decode(b64url(document))
        assert query.environment_selector.classes[0].implementation_id() == IMPL_ID

    def test_decode_empty_selector(self):
        """Test that an empty environment selector decodes with no entries."""
        query = decode(b64url({0: PROFILE, 1: {0: 2, 1: {}}}))
        assert query.environment_selector.classes == ()
        assert query.environment_selector.instances == ()

    def test_decode_keeps_invalid_identifier_for_synthesis(self):
        """Test that a selector missing its identifier still decodes."""
        query = decode(b64url({0: PROFILE, 1: {0: 2, 1: {0: [{}]}}}))
        assert query.environment_selector.classes == (ClassSelector(class_id=None),)

    def test_decode_endorsed_values_type(self):
        """Test that the endorsed values code point decodes (and is rejected later)."""
        query = decode(b64url({0: PROFILE, 1: {0: 0, 1: {}}}))
        assert query.artifact_type == ArtifactType.ENDORSED_VALUES


class TestDecodeErrors:
    """Tests for malformed query input."""

    @pytest.mark.parametrize("encoded", ["", "!!!not-base64!!!", "a"])
    def test_malformed_encoding(self, encoded):
        """Test that text that is not base64url is rejected."""
        with pytest.raises(DecodeError) as exc_info:
            decode(encoded)
        assert exc_info.value.kind == DecodeErrorKind.MALFORMED_ENCODING
        assert exc_info.value.error_class == ErrorClass.CLIENT

    def test_not_cbor(self):
        """Test that valid base64 over invalid CBOR is a malformed document."""
        encoded = base64.urlsafe_b64encode(b"\xff\xff\xff").decode().rstrip("=")
        with pytest.raises(DecodeError) as exc_info:
            decode(encoded)
        assert exc_info.value.kind == DecodeErrorKind.MALFORMED_DOCUMENT

    def test_document_not_a_map(self):
        """Test that a top-level array is rejected."""
        with pytest.raises(DecodeError) as exc_info:
            decode(b64url([PROFILE, 2]))
        assert exc_info.value.kind == DecodeErrorKind.MALFORMED_DOCUMENT

    def test_missing_profile(self):
        """Test that a document without a profile is rejected."""
        with pytest.raises(DecodeError) as exc_info:
            decode(b64url({1: {0: 2, 1: {}}}))
        assert exc_info.value.kind == DecodeErrorKind.MISSING_PROFILE

    def test_empty_profile(self):
        """Test that an empty profile counts as missing."""
        with pytest.raises(DecodeError) as exc_info:
            decode(b64url(rv_document(IMPL_ID, profile="")))
        assert exc_info.value.kind == DecodeErrorKind.MISSING_PROFILE

    def test_profile_wrong_type(self):
        """Test that a non-text profile is a malformed document."""
        with pytest.raises(DecodeError) as exc_info:
            decode(b64url(rv_document(IMPL_ID, profile=42)))
        assert exc_info.value.kind == DecodeErrorKind.MALFORMED_DOCUMENT

    @pytest.mark.parametrize(
        "query_object",
        [
            None,
            {1: {}},
            {0: 2},
            {0: 9, 1: {}},
            {0: True, 1: {}},
            {0: "2", 1: {}},
            {0: 2, 1: []},
            {0: 2, 1: {0: {}}},
            {0: 2, 1: {0: ["not-a-map"]}},
            {0: 1, 1: {1: [42]}},
        ],
    )
    def test_malformed_query_object(self, query_object):
        """Test that structural problems in the query object are rejected."""
        document = {0: PROFILE} if query_object is None else {0: PROFILE, 1: query_object}
        with pytest.raises(DecodeError) as exc_info:
            decode(b64url(document))
        assert exc_info.value.kind == DecodeErrorKind.MALFORMED_DOCUMENT

    def test_trailing_bytes_rejected(self):
        """Test that bytes after the first CBOR item make the document malformed."""
        data = cbor2.dumps({0: PROFILE, 1: {0: 2, 1: {}}}) + b"\xff\xff garbage"
        encoded = base64.urlsafe_b64encode(data).decode().rstrip("=")
        with pytest.raises(DecodeError) as exc_info:
            decode(encoded)
        assert exc_info.value.kind == DecodeErrorKind.MALFORMED_DOCUMENT
        assert "trailing" in str(exc_info.value)

    def test_bool_key_does_not_match_query_field(self):
        """Test that a CBOR true key is not taken for the query field."""
        with pytest.raises(DecodeError) as exc_info:
            decode(b64url({0: PROFILE, True: {0: 2, 1: {}}}))
        assert exc_info.value.kind == DecodeErrorKind.MALFORMED_DOCUMENT
        assert "query object is missing" in str(exc_info.value)

    def test_float_key_does_not_match_profile_field(self):
        """Test that a 0.0 key is not taken for the profile field."""
        with pytest.raises(DecodeError) as exc_info:
            decode(b64url({0.0: PROFILE, 1: {0: 2, 1: {}}}))
        assert exc_info.value.kind == DecodeErrorKind.MISSING_PROFILE

    def test_float_key_does_not_match_class_list(self):
        """Test that a class list under a 0.0 key is ignored like any unknown key."""
        query = decode(b64url({0: PROFILE, 1: {0: 2, 1: {0.0: [{0: IMPL_ID}]}}}))
        assert query.environment_selector.classes == ()


class TestEncodeQuery:
    """Tests for the client-side query encoder."""

    def test_encoded_query_is_unpadded_urlsafe(self):
        """Test that encoded queries can be placed in a URL path as-is."""
        encoded = encode_query(rv_query(IMPL_ID))
        assert "=" not in encoded
        assert "+" not in encoded
        assert "/" not in encoded

    def test_encoded_query_decodes(self):
        """Test that decoding an encoded query yields the same query."""
        query = ta_query(UEID, profile="tag:example.com,2025:custom")
        assert decode(encode_query(query)) == query

    def test_missing_identifier_survives_encoding(self):
        """Test that a selector without an identifier encodes as an empty map."""
        query = Query(
            profile=PROFILE,
            artifact_type=ArtifactType.TRUST_ANCHORS,
            environment_selector=EnvironmentSelector(instances=(InstanceSelector(),)),
        )
        decoded = decode(encode_query(query))
        assert decoded.environment_selector.instances == (InstanceSelector(instance_id=None),)
