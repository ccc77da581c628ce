import logging
from typing import List
from typing import Optional

from jwt.algorithms import get_default_algorithms

from fedtrust.defaults import DEFAULT_ALLOWED_ALGORITHMS

logger = logging.getLogger(__name__)


class SignatureVerifier(object):
    """
    Verifies JWS signatures using the algorithm implementations in PyJWT.
    Only asymmetric algorithms can be allowed, 'none' and HMAC are never accepted.
    """

    def __init__(self, allowed_algorithms: Optional[List[str]] = None):
        self.algorithms = get_default_algorithms()
        if allowed_algorithms is None:
            allowed_algorithms = DEFAULT_ALLOWED_ALGORITHMS
        self.allowed_algorithms = [a for a in allowed_algorithms
                                   if a != "none" and not a.startswith("HS")]

    def verify(self, signing_input: bytes, signature: bytes, algorithm: str, key) -> bool:
        """
        :param signing_input: The protected header and payload as they appear in the JWS
        :param signature: The decoded signature
        :param algorithm: The JWS algorithm identifier
        :param key: A public key
        :return: True if the signature is valid otherwise False
        """
        if algorithm not in self.allowed_algorithms:
            logger.warning(f"Signing algorithm not allowed: {algorithm}")
            return False

        try:
            _alg = self.algorithms[algorithm]
        except KeyError:
            logger.warning(f"Signing algorithm not supported: {algorithm}")
            return False

        try:
            return bool(_alg.verify(signing_input, key, signature))
        except (TypeError, ValueError, AttributeError) as err:
            logger.debug(f"Signature verification failed: {err}")
            return False

    def __call__(self, signing_input: bytes, signature: bytes, algorithm: str, key) -> bool:
        return self.verify(signing_input, signature, algorithm, key)
