from collections import namedtuple
from enum import Enum
from typing import List
from typing import Optional

from fedtrust.entity_statement.statement import TrustChain


class FailureReason(Enum):
    EMPTY_CHAIN = "empty_chain"
    BROKEN_LINKAGE = "broken_linkage"
    EXPIRED = "expired"
    NOT_YET_VALID = "not_yet_valid"
    SIGNATURE_INVALID = "signature_invalid"
    KEY_NOT_FOUND = "key_not_found"
    ANCHOR_MISMATCH = "anchor_mismatch"
    CONSTRAINT_VIOLATION = "constraint_violation"
    ISSUER_MISMATCH = "issuer_mismatch"
    SUBJECT_MISMATCH = "subject_mismatch"


class VerificationResult(object):
    """
    The outcome of verifying a trust chain or a trust mark. Evaluates to True only if
    the verification succeeded.
    """

    def __init__(self,
                 is_valid: bool,
                 failure_reason: Optional[FailureReason] = None,
                 message: Optional[str] = ""):
        self.is_valid = is_valid
        self.failure_reason = failure_reason
        self.message = message

    @classmethod
    def success(cls):
        return cls(True)

    @classmethod
    def failure(cls, reason: FailureReason, message: Optional[str] = ""):
        return cls(False, reason, message)

    def __bool__(self):
        return self.is_valid

    def __repr__(self):
        if self.is_valid:
            return "<VerificationResult valid>"
        return f"<VerificationResult {self.failure_reason.name}: {self.message}>"


# A dead branch met while resolving: who was asked about whom and what went wrong.
BranchFailure = namedtuple("BranchFailure", ["authority", "subject", "error"])


class ResolutionResult(object):

    def __init__(self,
                 trust_chain: Optional[TrustChain] = None,
                 error: Optional[bool] = False,
                 error_message: Optional[str] = None,
                 failures: Optional[List[BranchFailure]] = None):
        self.trust_chain = trust_chain
        self.error = error
        self.error_message = error_message
        self.failures = failures or []

    def __bool__(self):
        return not self.error and self.trust_chain is not None

    def __repr__(self):
        if self.error:
            return f"<ResolutionResult error: {self.error_message}>"
        return f"<ResolutionResult {self.trust_chain!r}>"
