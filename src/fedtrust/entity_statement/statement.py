import logging
from dataclasses import dataclass
from dataclasses import field
from typing import Iterator
from typing import List
from typing import Optional
from typing import Tuple

from fedtrust.utils import utc_time_sans_frac

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignedClaims:
    """
    A parsed compact JWS. Nothing in here has been verified.
    """
    header: dict
    claims: dict
    token: str
    signing_input: bytes
    signature: bytes

    @property
    def key_id(self) -> Optional[str]:
        return self.header.get("kid")

    @property
    def algorithm(self) -> Optional[str]:
        return self.header.get("alg")

    def __getitem__(self, item):
        return self.claims[item]

    def __contains__(self, item):
        return item in self.claims

    def get(self, item, default=None):
        return self.claims.get(item, default)


@dataclass(frozen=True)
class EntityStatement(SignedClaims):
    """
    An Entity Statement. Either an Entity Configuration (issuer == subject) or a
    Subordinate Statement issued by a superior about one of its subordinates.
    """
    issuer: str
    subject: str
    issued_at: int
    expires_at: int
    jwks: dict = field(default_factory=dict)
    authority_hints: Tuple[str, ...] = ()
    metadata: dict = field(default_factory=dict)
    constraints: dict = field(default_factory=dict)

    @property
    def is_self_signed(self) -> bool:
        return self.issuer == self.subject

    def __repr__(self):
        if self.is_self_signed:
            return f"<EntityStatement configuration of '{self.subject}'>"
        return f"<EntityStatement about '{self.subject}' from '{self.issuer}'>"


@dataclass(frozen=True)
class TrustMark(SignedClaims):
    issuer: str
    subject: str
    id: str
    issued_at: int
    expires_at: Optional[int] = None

    def __repr__(self):
        return f"<TrustMark '{self.id}' for '{self.subject}' from '{self.issuer}'>"


class TrustChain(object):
    """
    An ordered sequence of entity statements. The first is the Entity Configuration of the
    subject of the chain, the following are subordinate statements each issued by the
    superior of the previous statement's issuer. The last one is issued by a trust anchor
    or is the trust anchor's own Entity Configuration.
    """

    def __init__(self, statements: List[EntityStatement]):
        if not statements:
            raise ValueError("A trust chain can not be empty")
        self.statements = tuple(statements)

    def __len__(self):
        return len(self.statements)

    def __iter__(self) -> Iterator[EntityStatement]:
        return iter(self.statements)

    def __getitem__(self, item):
        return self.statements[item]

    def __repr__(self):
        return f"<TrustChain {' -> '.join(self.iss_path)}>"

    @property
    def subject(self) -> str:
        return self.statements[0].subject

    @property
    def anchor(self) -> str:
        return self.statements[-1].issuer

    @property
    def iss_path(self) -> List[str]:
        """
        The entity IDs along the chain starting with the subject and ending with the
        trust anchor.
        """
        _path = [self.statements[0].subject]
        _path.extend([s.issuer for s in self.statements if not s.is_self_signed])
        return _path

    @property
    def expires_at(self) -> int:
        return min(s.expires_at for s in self.statements)

    def is_expired(self, now: Optional[int] = None) -> bool:
        if now is None:
            now = utc_time_sans_frac()
        if self.expires_at < now:
            logger.debug(f'is_expired: {self.expires_at} < {now}')
            return True
        else:
            return False

    def export_chain(self) -> List[str]:
        """
        Exports the chain in such a way that it can be used as value on the
        trust_chain claim in an authorization or explicit registration request.

        :return: List of signed JWTs, the subject's Entity Configuration first.
        """
        return [s.token for s in self.statements]
