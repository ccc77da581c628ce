import json
from typing import Dict
from typing import List
from typing import Optional
from urllib.parse import urlparse

import jwt
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import ECAlgorithm
from jwt.algorithms import RSAAlgorithm
from jwt.utils import base64url_decode
from jwt.utils import base64url_encode

from fedtrust.fetch import MemoryStatementFetcher
from fedtrust.utils import utc_time_sans_frac

TA_ID = "https://ta.example.org"
IM_ID = "https://im.example.org"
RP_ID = "https://rp.example.org"

LIFETIME = 86400


def new_signing_key(key_type: str = "EC"):
    if key_type == "RSA":
        return rsa.generate_private_key(public_exponent=65537, key_size=2048), "RS256"
    return ec.generate_private_key(ec.SECP256R1()), "ES256"


def public_jwk(private_key, kid: str) -> dict:
    if isinstance(private_key, rsa.RSAPrivateKey):
        _jwk = json.loads(RSAAlgorithm.to_jwk(private_key.public_key()))
    else:
        _jwk = json.loads(ECAlgorithm.to_jwk(private_key.public_key()))
    _jwk.update({"kid": kid, "use": "sig"})
    return _jwk


def tamper(token: str, **claims) -> str:
    """
    Changes claims in a signed JWT keeping the original header and signature.
    """
    header, payload, signature = token.split(".")
    _claims = json.loads(base64url_decode(payload))
    _claims.update(claims)
    _payload = base64url_encode(json.dumps(_claims).encode("utf-8")).decode("ascii")
    return ".".join([header, _payload, signature])


class FederationEntity(object):
    """
    A federation entity that can sign Entity Configurations, Subordinate Statements and
    Trust Marks.
    """

    def __init__(self,
                 entity_id: str,
                 authority_hints: Optional[List[str]] = None,
                 key_type: Optional[str] = "EC",
                 metadata: Optional[dict] = None):
        self.entity_id = entity_id
        self.authority_hints = list(authority_hints or [])
        self.private_key, self.alg = new_signing_key(key_type)
        self.kid = f"{urlparse(entity_id).hostname}-{key_type.lower()}"
        self.jwks = {"keys": [public_jwk(self.private_key, self.kid)]}
        if metadata is None:
            metadata = {
                "federation_entity": {
                    "federation_fetch_endpoint": f"{entity_id}/fetch",
                    "organization_name": urlparse(entity_id).hostname
                }
            }
        self.metadata = metadata

    def sign(self, payload: dict, typ: Optional[str] = "entity-statement+jwt",
             kid: Optional[str] = None, private_key=None) -> str:
        return jwt.encode(payload, private_key or self.private_key, algorithm=self.alg,
                          headers={"kid": kid or self.kid, "typ": typ})

    def _times(self, iat, exp):
        if iat is None:
            iat = utc_time_sans_frac() - 60
        if exp is None:
            exp = iat + LIFETIME
        return iat, exp

    def entity_configuration(self, iat: Optional[int] = None, exp: Optional[int] = None,
                             **kwargs) -> str:
        iat, exp = self._times(iat, exp)
        payload = {
            "iss": self.entity_id,
            "sub": self.entity_id,
            "iat": iat,
            "exp": exp,
            "jwks": self.jwks,
            "metadata": self.metadata
        }
        if self.authority_hints:
            payload["authority_hints"] = self.authority_hints
        payload.update(kwargs)
        return self.sign(payload)

    def subordinate_statement(self, subordinate: "FederationEntity",
                              iat: Optional[int] = None, exp: Optional[int] = None,
                              **kwargs) -> str:
        iat, exp = self._times(iat, exp)
        payload = {
            "iss": self.entity_id,
            "sub": subordinate.entity_id,
            "iat": iat,
            "exp": exp,
            "jwks": subordinate.jwks
        }
        payload.update(kwargs)
        return self.sign(payload)

    def trust_mark(self, subject: str, trust_mark_id: str, iat: Optional[int] = None,
                   exp: Optional[int] = None, **kwargs) -> str:
        iat, exp = self._times(iat, exp)
        payload = {
            "iss": self.entity_id,
            "sub": subject,
            "id": trust_mark_id,
            "iat": iat,
            "exp": exp
        }
        payload.update(kwargs)
        return self.sign(payload, typ="trust-mark+jwt")


def build_federation(tree: Dict[str, List[str]],
                     key_types: Optional[Dict[str, str]] = None
                     ) -> Dict[str, FederationEntity]:
    """
    :param tree: entity ID -> authority hints
    :param key_types: entity ID -> key type, EC if not given
    :return: entity ID -> FederationEntity instance
    """
    key_types = key_types or {}
    return {entity_id: FederationEntity(entity_id, hints, key_types.get(entity_id, "EC"))
            for entity_id, hints in tree.items()}


def make_fetcher(federation: Dict[str, FederationEntity]) -> MemoryStatementFetcher:
    """
    A fetcher that has the Entity Configuration of every entity and a statement from
    every authority hinted at about the entity that hints.
    """
    fetcher = MemoryStatementFetcher()
    for entity in federation.values():
        fetcher.add_entity_configuration(entity.entity_id, entity.entity_configuration())
        for authority in entity.authority_hints:
            if authority in federation:
                fetcher.add_entity_statement(
                    authority, entity.entity_id,
                    federation[authority].subordinate_statement(entity))
    return fetcher
