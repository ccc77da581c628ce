import logging
from typing import Optional
from typing import Union

from fedtrust.entity_statement.codec import parse_trust_mark
from fedtrust.entity_statement.statement import EntityStatement
from fedtrust.function import as_entity_statement
from fedtrust.function import check_validity_period
from fedtrust.function import Function
from fedtrust.result import FailureReason
from fedtrust.result import VerificationResult
from fedtrust.utils import utc_time_sans_frac

logger = logging.getLogger(__name__)


class TrustMarkVerifier(Function):

    def evaluate(self,
                 trust_mark: Union[str, bytes],
                 issuer_configuration: Union[str, EntityStatement],
                 entity_id: Optional[str] = "",
                 reference_time: Optional[int] = None) -> VerificationResult:
        """
        Verifies that a trust mark is signed with a key belonging to the issuer, that the
        issuer is the entity the Entity Configuration is about and that the trust mark is
        valid at the reference time.

        :param trust_mark: A signed JWT representing a trust mark
        :param issuer_configuration: The Entity Configuration of the trust mark issuer
        :param entity_id: If given the trust mark must be issued to this entity
        :param reference_time: The time at which the trust mark should be valid, default is now
        :returns: A VerificationResult instance
        """
        _trust_mark = parse_trust_mark(trust_mark)
        _issuer_configuration = as_entity_statement(issuer_configuration)
        logger.debug(f"Verifying {_trust_mark!r}")

        _failure = self.verify_signature(_trust_mark, _issuer_configuration.jwks,
                                         _issuer_configuration.subject)
        if _failure is not None:
            return _failure

        if _issuer_configuration.subject != _trust_mark.issuer:
            return VerificationResult.failure(
                FailureReason.ISSUER_MISMATCH,
                f"Trust mark issued by '{_trust_mark.issuer}', Entity Configuration is "
                f"about '{_issuer_configuration.subject}'")

        if entity_id and _trust_mark.subject != entity_id:
            return VerificationResult.failure(
                FailureReason.SUBJECT_MISMATCH,
                f"Trust mark issued to '{_trust_mark.subject}' not to '{entity_id}'")

        if reference_time is None:
            reference_time = utc_time_sans_frac()
        _failure = check_validity_period(_trust_mark, _trust_mark.issued_at,
                                         _trust_mark.expires_at, reference_time,
                                         self.config.allowed_delta)
        if _failure is not None:
            return _failure

        return VerificationResult.success()

    def __call__(self,
                 trust_mark: Union[str, bytes],
                 issuer_configuration: Union[str, EntityStatement],
                 entity_id: Optional[str] = "",
                 reference_time: Optional[int] = None) -> bool:
        _result = self.evaluate(trust_mark, issuer_configuration, entity_id=entity_id,
                                reference_time=reference_time)
        if not _result:
            logger.warning(f"Trust mark not valid: {_result.message}")
        return _result.is_valid
