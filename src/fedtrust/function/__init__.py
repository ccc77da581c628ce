import logging
from typing import Optional
from typing import Union

from fedtrust.configure import FederationConfiguration
from fedtrust.entity_statement.codec import parse_entity_statement
from fedtrust.entity_statement.statement import EntityStatement
from fedtrust.entity_statement.statement import SignedClaims
from fedtrust.keyjar import get_verify_keys
from fedtrust.result import FailureReason
from fedtrust.result import VerificationResult
from fedtrust.signature import SignatureVerifier

logger = logging.getLogger(__name__)


def as_entity_statement(statement: Union[str, bytes, EntityStatement]) -> EntityStatement:
    if isinstance(statement, EntityStatement):
        return statement
    return parse_entity_statement(statement)


def check_validity_period(item: SignedClaims,
                          issued_at: int,
                          expires_at: Optional[int],
                          now: int,
                          allowed_delta: int = 0) -> Optional[VerificationResult]:
    """
    Checks that now is within [iat, exp] give or take the allowed clock skew.
    A missing expiration time means the item does not expire.

    :return: None if the item is valid at the given time, otherwise a failed
        VerificationResult
    """
    if expires_at is not None and now > expires_at + allowed_delta:
        return VerificationResult.failure(FailureReason.EXPIRED,
                                          f"{item!r} expired at {expires_at}, now is {now}")
    if now < issued_at - allowed_delta:
        return VerificationResult.failure(FailureReason.NOT_YET_VALID,
                                          f"{item!r} issued at {issued_at}, now is {now}")
    return None


class Function(object):

    def __init__(self,
                 config: Optional[FederationConfiguration] = None,
                 signature_verifier: Optional[SignatureVerifier] = None):
        self.config = config or FederationConfiguration()
        self.signature_verifier = signature_verifier or SignatureVerifier(
            self.config.allowed_algorithms)

    def verify_signature(self, item: SignedClaims, jwks: Optional[dict],
                         key_owner: str = "") -> Optional[VerificationResult]:
        """
        Verifies the signature on a signed item using keys from a JWKS.

        :param item: The parsed signed item
        :param jwks: The JWKS that should contain the signing key
        :param key_owner: Whose keys these are, only used in messages
        :return: None if the signature verified, otherwise a failed VerificationResult
        """
        if item.algorithm not in self.signature_verifier.allowed_algorithms:
            logger.warning(f"Signing algorithm not allowed: {item.algorithm}")
            return VerificationResult.failure(
                FailureReason.SIGNATURE_INVALID,
                f"{item!r} signed using '{item.algorithm}' which is not allowed")

        keys = get_verify_keys(jwks, item.header)
        if not keys:
            logger.warning(f"No keys from {key_owner} matching: {item.header}")
            return VerificationResult.failure(
                FailureReason.KEY_NOT_FOUND,
                f"No key from '{key_owner}' matching kid={item.key_id} for {item!r}")

        for key in keys:
            if self.signature_verifier.verify(item.signing_input, item.signature,
                                              item.algorithm, key):
                logger.debug(f"Verified signature on {item!r} with key from '{key_owner}'")
                return None

        return VerificationResult.failure(FailureReason.SIGNATURE_INVALID,
                                          f"Signature on {item!r} did not verify")
