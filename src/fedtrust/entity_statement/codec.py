import json
import logging
from typing import Tuple
from typing import Type
from typing import Union

from jwt import PyJWS
from jwt.exceptions import PyJWTError

from fedtrust.entity_statement.statement import EntityStatement
from fedtrust.entity_statement.statement import SignedClaims
from fedtrust.entity_statement.statement import TrustMark
from fedtrust.exception import MalformedStatement
from fedtrust.exception import MalformedTrustMark

logger = logging.getLogger(__name__)

ENTITY_STATEMENT_REQUIRED_CLAIMS = ["iss", "sub", "iat", "exp"]
TRUST_MARK_REQUIRED_CLAIMS = ["iss", "sub", "iat"]

_jws = PyJWS()


def _as_text(token: Union[str, bytes], error_cls: Type[MalformedStatement]) -> str:
    if isinstance(token, bytes):
        try:
            token = token.decode("ascii")
        except UnicodeDecodeError:
            raise error_cls("Signed JWT must be ASCII")
    if not isinstance(token, str):
        raise error_cls(f"Expected a compact serialized JWS, got {type(token).__name__}")
    return token.strip()


def decode_jws(token: Union[str, bytes],
               error_cls: Type[MalformedStatement] = MalformedStatement
               ) -> Tuple[dict, dict, str, bytes, bytes]:
    """
    Decodes a compact serialized JWS without verifying the signature.

    :param token: The signed JWT
    :param error_cls: The exception class to raise if the token can not be decoded
    :return: tuple of header, claims, the token, the signing input and the signature
    """
    _token = _as_text(token, error_cls)
    _parts = _token.split(".")
    if len(_parts) != 3:
        raise error_cls(f"Signed JWT must have 3 parts, got {len(_parts)}")

    try:
        _decoded = _jws.decode_complete(_token, options={"verify_signature": False})
    except PyJWTError as err:
        raise error_cls(f"Could not decode signed JWT: {err}") from err

    try:
        claims = json.loads(_decoded["payload"])
    except ValueError as err:
        raise error_cls(f"Payload is not JSON: {err}") from err

    if not isinstance(claims, dict):
        raise error_cls("Payload must be a JSON object")

    header = _decoded["header"]
    if not header.get("alg"):
        raise error_cls("Missing 'alg' in JWS header")

    _signing_input = _token.rsplit(".", 1)[0].encode("ascii")
    return header, claims, _token, _signing_input, _decoded["signature"]


def _is_numeric_date(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_claims(claims: dict, required: list, error_cls: Type[MalformedStatement]):
    for claim in required:
        if claim not in claims:
            raise error_cls(f"Missing required claim '{claim}'")

    for claim in ["iss", "sub"]:
        if claim in claims and not isinstance(claims[claim], str):
            raise error_cls(f"'{claim}' must be a string")

    for claim in ["iat", "exp"]:
        if claim in claims and not _is_numeric_date(claims[claim]):
            raise error_cls(f"'{claim}' must be a NumericDate")


def _check_jwks(jwks, error_cls: Type[MalformedStatement]):
    if not isinstance(jwks, dict) or not isinstance(jwks.get("keys"), list):
        raise error_cls("'jwks' must be a JSON object with a list of keys")


def parse_entity_statement(token: Union[str, bytes]) -> EntityStatement:
    """
    Parses a signed Entity Statement. Does not verify the signature nor the
    validity period.

    :param token: A signed JWT
    :return: An EntityStatement instance
    """
    header, claims, _token, signing_input, signature = decode_jws(token, MalformedStatement)
    _check_claims(claims, ENTITY_STATEMENT_REQUIRED_CLAIMS, MalformedStatement)

    jwks = claims.get("jwks", {})
    if "jwks" in claims:
        _check_jwks(jwks, MalformedStatement)

    authority_hints = claims.get("authority_hints", [])
    if not isinstance(authority_hints, list) or not all(
            isinstance(h, str) for h in authority_hints):
        raise MalformedStatement("'authority_hints' must be a list of entity IDs")

    metadata = claims.get("metadata", {})
    constraints = claims.get("constraints", {})
    if not isinstance(metadata, dict) or not isinstance(constraints, dict):
        raise MalformedStatement("'metadata' and 'constraints' must be JSON objects")

    return EntityStatement(
        header=header,
        claims=claims,
        token=_token,
        signing_input=signing_input,
        signature=signature,
        issuer=claims["iss"],
        subject=claims["sub"],
        issued_at=int(claims["iat"]),
        expires_at=int(claims["exp"]),
        jwks=jwks,
        authority_hints=tuple(authority_hints),
        metadata=metadata,
        constraints=constraints
    )


def parse_trust_mark(token: Union[str, bytes]) -> TrustMark:
    """
    Parses a signed Trust Mark. The identifier of the trust mark is expected in the
    'trust_mark_id' claim or, as in earlier drafts, the 'id' claim.

    :param token: A signed JWT
    :return: A TrustMark instance
    """
    header, claims, _token, signing_input, signature = decode_jws(token, MalformedTrustMark)
    _check_claims(claims, TRUST_MARK_REQUIRED_CLAIMS, MalformedTrustMark)

    _id = claims.get("trust_mark_id", claims.get("id"))
    if not _id or not isinstance(_id, str):
        raise MalformedTrustMark("Missing trust mark identifier")

    _exp = claims.get("exp")
    return TrustMark(
        header=header,
        claims=claims,
        token=_token,
        signing_input=signing_input,
        signature=signature,
        issuer=claims["iss"],
        subject=claims["sub"],
        id=_id,
        issued_at=int(claims["iat"]),
        expires_at=None if _exp is None else int(_exp)
    )


def serialize(statement: SignedClaims) -> str:
    """
    The compact serialization the statement was parsed from. Header, payload and signature
    are kept exactly as received, so signatures verify on the output.
    """
    return statement.token
