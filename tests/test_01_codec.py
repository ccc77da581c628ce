import json

import pytest
from jwt.utils import base64url_encode

from fedtrust.entity_statement.codec import parse_entity_statement
from fedtrust.entity_statement.codec import parse_trust_mark
from fedtrust.entity_statement.codec import serialize
from fedtrust.exception import MalformedStatement
from fedtrust.exception import MalformedTrustMark
from tests import FederationEntity
from tests import IM_ID
from tests import RP_ID
from tests import TA_ID


def _b64(data: dict) -> str:
    return base64url_encode(json.dumps(data).encode("utf-8")).decode("ascii")


@pytest.fixture(scope="module")
def ta():
    return FederationEntity(TA_ID)


@pytest.fixture(scope="module")
def rp():
    return FederationEntity(RP_ID, authority_hints=[IM_ID, TA_ID])


def test_parse_entity_configuration(rp):
    _jws = rp.entity_configuration()
    statement = parse_entity_statement(_jws)
    assert statement.issuer == RP_ID
    assert statement.subject == RP_ID
    assert statement.is_self_signed
    assert statement.authority_hints == (IM_ID, TA_ID)
    assert statement.jwks == rp.jwks
    assert statement.key_id == rp.kid
    assert statement.algorithm == "ES256"
    assert statement.expires_at > statement.issued_at
    assert "federation_entity" in statement.metadata
    assert statement["iss"] == RP_ID
    assert "jwks" in statement


def test_parse_subordinate_statement(ta, rp):
    statement = parse_entity_statement(ta.subordinate_statement(rp))
    assert statement.issuer == TA_ID
    assert statement.subject == RP_ID
    assert statement.is_self_signed is False
    assert statement.authority_hints == ()
    assert statement.metadata == {}
    assert statement.key_id == ta.kid


def test_parse_bytes(rp):
    _jws = rp.entity_configuration()
    statement = parse_entity_statement(_jws.encode("ascii"))
    assert statement.token == _jws


def test_serialize_preserves_token(ta, rp):
    _jws = ta.subordinate_statement(rp, metadata={"openid_relying_party": {"a": "b"}})
    statement = parse_entity_statement(_jws)
    assert serialize(statement) == _jws
    again = parse_entity_statement(serialize(statement))
    assert again.claims == statement.claims
    assert again.signing_input == statement.signing_input
    assert again.signature == statement.signature


def test_signing_input(rp):
    _jws = rp.entity_configuration()
    statement = parse_entity_statement(_jws)
    header, payload, _ = _jws.split(".")
    assert statement.signing_input == f"{header}.{payload}".encode("ascii")


@pytest.mark.parametrize("token", [
    "",
    "abc",
    "a.b",
    "a.b.c.d",
    "!!!.@@@.###",
])
def test_wrong_structure(token):
    with pytest.raises(MalformedStatement):
        parse_entity_statement(token)


def test_not_a_string():
    with pytest.raises(MalformedStatement):
        parse_entity_statement(12345)


def test_payload_not_json():
    _token = ".".join([_b64({"alg": "ES256"}),
                       base64url_encode(b"not json").decode("ascii"),
                       "c2ln"])
    with pytest.raises(MalformedStatement):
        parse_entity_statement(_token)


def test_payload_not_object():
    _token = ".".join([_b64({"alg": "ES256"}),
                       base64url_encode(b"[1, 2]").decode("ascii"),
                       "c2ln"])
    with pytest.raises(MalformedStatement):
        parse_entity_statement(_token)


def test_missing_alg():
    _token = ".".join([_b64({"kid": "x"}),
                       _b64({"iss": TA_ID, "sub": TA_ID, "iat": 1, "exp": 2}),
                       "c2ln"])
    with pytest.raises(MalformedStatement):
        parse_entity_statement(_token)


@pytest.mark.parametrize("missing", ["iss", "sub", "iat", "exp"])
def test_missing_required_claim(ta, missing):
    claims = {"iss": TA_ID, "sub": TA_ID, "iat": 1000, "exp": 2000}
    del claims[missing]
    with pytest.raises(MalformedStatement):
        parse_entity_statement(ta.sign(claims))


@pytest.mark.parametrize("claims", [
    {"iss": TA_ID, "sub": TA_ID, "iat": "now", "exp": 2},
    {"iss": 1, "sub": TA_ID, "iat": 1, "exp": 2},
    {"iss": TA_ID, "sub": [TA_ID], "iat": 1, "exp": 2},
    {"iss": TA_ID, "sub": TA_ID, "iat": True, "exp": 2},
])
def test_wrong_claim_types(claims):
    _token = ".".join([_b64({"alg": "ES256"}), _b64(claims), "c2ln"])
    with pytest.raises(MalformedStatement):
        parse_entity_statement(_token)


def test_wrong_authority_hints(ta):
    with pytest.raises(MalformedStatement):
        parse_entity_statement(ta.sign({"iss": TA_ID, "sub": TA_ID, "iat": 1, "exp": 2,
                                        "authority_hints": IM_ID}))


def test_wrong_jwks(ta):
    with pytest.raises(MalformedStatement):
        parse_entity_statement(ta.sign({"iss": TA_ID, "sub": TA_ID, "iat": 1, "exp": 2,
                                        "jwks": ["key"]}))


def test_parse_trust_mark(ta):
    _jws = ta.trust_mark(RP_ID, "https://refeds.org/sirtfi")
    trust_mark = parse_trust_mark(_jws)
    assert trust_mark.issuer == TA_ID
    assert trust_mark.subject == RP_ID
    assert trust_mark.id == "https://refeds.org/sirtfi"
    assert trust_mark.expires_at is not None
    assert serialize(trust_mark) == _jws


def test_parse_trust_mark_id_claim(ta):
    _jws = ta.sign({"iss": TA_ID, "sub": RP_ID, "iat": 1000,
                    "trust_mark_id": "https://refeds.org/sirtfi"}, typ="trust-mark+jwt")
    trust_mark = parse_trust_mark(_jws)
    assert trust_mark.id == "https://refeds.org/sirtfi"
    assert trust_mark.expires_at is None


def test_trust_mark_without_id(ta):
    _jws = ta.sign({"iss": TA_ID, "sub": RP_ID, "iat": 1000}, typ="trust-mark+jwt")
    with pytest.raises(MalformedTrustMark):
        parse_trust_mark(_jws)


def test_malformed_trust_mark_is_malformed_statement():
    with pytest.raises(MalformedStatement):
        parse_trust_mark("a.b")
