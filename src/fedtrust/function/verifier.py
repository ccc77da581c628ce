import logging
from typing import List
from typing import Optional
from typing import Union

from fedtrust.entity_statement.constraints import meets_restrictions
from fedtrust.entity_statement.statement import EntityStatement
from fedtrust.entity_statement.statement import TrustChain
from fedtrust.function import as_entity_statement
from fedtrust.function import check_validity_period
from fedtrust.function import Function
from fedtrust.result import FailureReason
from fedtrust.result import VerificationResult
from fedtrust.utils import utc_time_sans_frac

logger = logging.getLogger(__name__)


class TrustChainVerifier(Function):
    """
    Verifies a trust chain. The checks are done in a fixed order and the first one that
    fails decides the outcome:

    1. linkage, every statement is about the issuer of the one before it
    2. validity period of every statement
    3. signatures
    4. where the chain ends
    5. constraints
    """

    def statements(self,
                   chain: Union[TrustChain, List[Union[str, EntityStatement]]]
                   ) -> List[EntityStatement]:
        if isinstance(chain, TrustChain):
            return list(chain.statements)
        return [as_entity_statement(item) for item in chain]

    def check_linkage(self, chain: List[EntityStatement]) -> Optional[VerificationResult]:
        if not chain:
            return VerificationResult.failure(FailureReason.EMPTY_CHAIN, "Empty trust chain")

        if not chain[0].is_self_signed:
            return VerificationResult.failure(
                FailureReason.BROKEN_LINKAGE,
                f"Chain must start with an Entity Configuration, got {chain[0]!r}")

        last = len(chain) - 1
        for index in range(1, len(chain)):
            _statement = chain[index]
            if _statement.subject != chain[index - 1].issuer:
                return VerificationResult.failure(
                    FailureReason.BROKEN_LINKAGE,
                    f"{_statement!r} is not about the issuer of {chain[index - 1]!r}")
            if _statement.is_self_signed and index != last:
                return VerificationResult.failure(
                    FailureReason.BROKEN_LINKAGE,
                    f"Entity Configuration {_statement!r} in the middle of the chain")
        return None

    def check_validity_periods(self, chain: List[EntityStatement],
                               now: int) -> Optional[VerificationResult]:
        for statement in chain:
            _failure = check_validity_period(statement, statement.issued_at,
                                             statement.expires_at, now,
                                             self.config.allowed_delta)
            if _failure is not None:
                return _failure
        return None

    def check_signatures(self, chain: List[EntityStatement]) -> Optional[VerificationResult]:
        """
        Every statement must be signed with a key its superior has published about the
        issuer, which is found in the next statement in the chain. Entity Configurations
        are also verified with their own keys. The last statement in the chain is verified
        with the configured trust anchor keys, if there are any.
        """
        last = len(chain) - 1
        for index, statement in enumerate(chain):
            if statement.is_self_signed:
                _failure = self.verify_signature(statement, statement.jwks, statement.issuer)
                if _failure is not None:
                    return _failure

            if index < last:
                _failure = self.verify_signature(statement, chain[index + 1].jwks,
                                                 chain[index + 1].issuer)
                if _failure is not None:
                    return _failure
            else:
                _anchor_jwks = self.config.trust_anchor_jwks(statement.issuer)
                if _anchor_jwks:
                    _failure = self.verify_signature(statement, _anchor_jwks, statement.issuer)
                    if _failure is not None:
                        return _failure
                elif not statement.is_self_signed:
                    logger.debug(
                        f"No keys for '{statement.issuer}', not verifying {statement!r}")
        return None

    def check_anchor(self, chain: List[EntityStatement],
                     anchor: Optional[str]) -> Optional[VerificationResult]:
        _last = chain[-1]
        if anchor:
            if _last.issuer != anchor:
                return VerificationResult.failure(
                    FailureReason.ANCHOR_MISMATCH,
                    f"Chain ends at '{_last.issuer}' not at '{anchor}'")
        elif not _last.is_self_signed:
            return VerificationResult.failure(
                FailureReason.ANCHOR_MISMATCH,
                f"Chain does not end with a trust anchor's Entity Configuration: {_last!r}")
        return None

    def check_constraints(self, chain: List[EntityStatement]) -> Optional[VerificationResult]:
        if not self.config.apply_constraints:
            return None
        _violation = meets_restrictions(chain)
        if _violation:
            return VerificationResult.failure(FailureReason.CONSTRAINT_VIOLATION, _violation)
        return None

    def __call__(self,
                 chain: Union[TrustChain, List[Union[str, EntityStatement]]],
                 *,
                 anchor: Optional[str] = None,
                 reference_time: Optional[int] = None) -> VerificationResult:
        """
        :param chain: A trust chain. The subject's Entity Configuration first and the
            statement issued by the trust anchor, or the anchor's Entity Configuration, last.
            Signed JWTs are parsed, a token that can not be parsed raises MalformedStatement.
        :param anchor: If given the chain must end at this trust anchor. If not, the chain
            must end with an Entity Configuration.
        :param reference_time: The time at which the chain should be valid, default is now.
        :return: A VerificationResult instance
        """
        logger.debug("Evaluate trust chain")
        if not chain:
            return VerificationResult.failure(FailureReason.EMPTY_CHAIN, "Empty trust chain")

        _chain = self.statements(chain)
        if reference_time is None:
            reference_time = utc_time_sans_frac()

        checks = [
            lambda: self.check_linkage(_chain),
            lambda: self.check_validity_periods(_chain, reference_time),
            lambda: self.check_signatures(_chain),
            lambda: self.check_anchor(_chain, anchor),
            lambda: self.check_constraints(_chain)
        ]
        for check in checks:
            _failure = check()
            if _failure is not None:
                logger.info(f"Trust chain verification failed: {_failure.message}")
                return _failure

        logger.debug(f"Verified trust chain for '{_chain[0].subject}'")
        return VerificationResult.success()
