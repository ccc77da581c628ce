import logging
from typing import List
from typing import Optional

from jwt import PyJWK
from jwt.exceptions import PyJWTError

from fedtrust.defaults import ALG_PREFIX2KEY_TYPE

logger = logging.getLogger(__name__)


def key_type_for(algorithm: Optional[str]) -> Optional[str]:
    """
    The JWK key type (kty) that can be used to verify a signature made with the algorithm.
    """
    if not algorithm:
        return None
    return ALG_PREFIX2KEY_TYPE.get(algorithm[:2])


def import_jwks(jwks: Optional[dict]) -> List[PyJWK]:
    """
    Imports the public signing keys in a JWKS. Encryption keys and symmetric keys are
    ignored as are keys that can not be parsed.

    :param jwks: A JWKS as a dictionary
    :return: list of PyJWK instances
    """
    keys = []
    if not jwks:
        return keys

    for _jwk in jwks.get("keys", []):
        if not isinstance(_jwk, dict):
            logger.warning(f"Not a JWK: {_jwk}")
            continue
        if _jwk.get("use", "sig") != "sig":
            continue
        if _jwk.get("kty") not in ALG_PREFIX2KEY_TYPE.values():
            logger.debug(f"Ignoring key of type: {_jwk.get('kty')}")
            continue
        try:
            keys.append(PyJWK(_jwk))
        except (PyJWTError, KeyError, ValueError, TypeError) as err:
            logger.warning(f"Could not import key '{_jwk.get('kid')}': {err}")

    return keys


def public_key(key: PyJWK):
    _key = key.key
    # A private key could be published by mistake. Only ever use the public part.
    if hasattr(_key, "private_bytes"):
        _key = _key.public_key()
    return _key


def get_verify_keys(jwks: Optional[dict], header: dict) -> list:
    """
    Picks the keys in a JWKS that could have been used to sign a JWS with the given header.
    If the header carries a key ID only a key with that key ID is returned.

    :param jwks: A JWKS as a dictionary
    :param header: The JWS header
    :return: list of public keys usable by the signature verifier
    """
    _kty = key_type_for(header.get("alg"))
    _kid = header.get("kid")

    keys = []
    for key in import_jwks(jwks):
        if _kid and key.key_id != _kid:
            continue
        if key.key_type != _kty:
            continue
        keys.append(public_key(key))

    _key_spec = f"{_kty}:{_kid}" if _kid else f"{_kty}"
    logger.debug(f"{len(keys)} possible verification keys matching {_key_spec}")
    return keys
