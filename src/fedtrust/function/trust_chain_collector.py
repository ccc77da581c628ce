import logging
import time
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional
from typing import Union

from fedtrust.configure import FederationConfiguration
from fedtrust.entity_statement.codec import parse_entity_statement
from fedtrust.entity_statement.statement import EntityStatement
from fedtrust.entity_statement.statement import TrustChain
from fedtrust.exception import CycleDetected
from fedtrust.exception import FetchFailure
from fedtrust.exception import MalformedStatement
from fedtrust.exception import NoPathFound
from fedtrust.exception import PathTooLong
from fedtrust.exception import ResolutionCancelled
from fedtrust.fetch import HTTPStatementFetcher
from fedtrust.fetch import StatementFetcher
from fedtrust.result import BranchFailure
from fedtrust.result import ResolutionResult
from fedtrust.utils import anchor_ids

logger = logging.getLogger(__name__)


class Branch(object):
    """
    One level of the depth first search. The subject together with the authority hints
    still to be tried and the chain collected from the leaf up to the subject.
    """

    def __init__(self, subject: str, authority_hints: Iterable[str],
                 chain: List[EntityStatement], path: tuple):
        self.subject = subject
        self.authority_hints = list(authority_hints)
        self.chain = chain
        self.path = path
        self.index = 0

    def next_hint(self) -> Optional[str]:
        if self.index >= len(self.authority_hints):
            return None
        _hint = self.authority_hints[self.index]
        self.index += 1
        return _hint


class Resolution(object):
    """
    State belonging to one trust chain resolution. Entity Configurations are fetched at
    most once per resolution, failures included.
    """

    def __init__(self, fetcher: StatementFetcher, deadline: Optional[float] = None):
        self.fetcher = fetcher
        self.deadline = deadline
        self.config_cache = {}
        self.failures = []

    def check_deadline(self) -> Optional[float]:
        """
        :return: Seconds left until the deadline, None if there is no deadline
        """
        if self.deadline is None:
            return None
        _remaining = self.deadline - time.monotonic()
        if _remaining <= 0:
            raise ResolutionCancelled("Trust chain resolution ran out of time")
        return _remaining

    def record(self, authority: str, subject: str, error: Exception):
        logger.warning(f"Dead branch, '{authority}' about '{subject}': {error}")
        self.failures.append(BranchFailure(authority, subject, error))

    def entity_configuration(self, entity_id: str) -> EntityStatement:
        try:
            _cached = self.config_cache[entity_id]
        except KeyError:
            pass
        else:
            if isinstance(_cached, Exception):
                raise _cached
            return _cached

        _remaining = self.check_deadline()
        try:
            _statement = parse_entity_statement(
                self.fetcher.get_entity_configuration(entity_id, timeout=_remaining))
            if not _statement.is_self_signed or _statement.issuer != entity_id:
                raise MalformedStatement(
                    f"Expected the Entity Configuration of '{entity_id}', got {_statement!r}")
        except (FetchFailure, MalformedStatement) as err:
            self.config_cache[entity_id] = err
            raise

        logger.debug(f"Entity Configuration for '{entity_id}': {_statement.claims}")
        self.config_cache[entity_id] = _statement
        return _statement

    def subordinate_statement(self, authority: str, subject: str,
                              authority_configuration: EntityStatement) -> EntityStatement:
        _remaining = self.check_deadline()
        _statement = parse_entity_statement(
            self.fetcher.get_entity_statement(authority, subject, authority_configuration,
                                              timeout=_remaining))
        if _statement.issuer != authority or _statement.subject != subject:
            raise MalformedStatement(
                f"Expected a statement about '{subject}' from '{authority}', "
                f"got {_statement!r}")
        logger.debug(f"Statement about '{subject}' from '{authority}': {_statement.claims}")
        return _statement


class TrustChainCollector(object):
    """
    Collects a trust chain from an entity to one of a set of trust anchors by following
    authority hints depth first. Hints are tried in the order they are listed and the
    first chain that reaches a trust anchor is returned.
    """

    def __init__(self,
                 fetcher: Optional[StatementFetcher] = None,
                 config: Optional[FederationConfiguration] = None):
        self.config = config or FederationConfiguration()
        if fetcher is None:
            fetcher = HTTPStatementFetcher(httpc_params=self.config.httpc_params)
        self.fetcher = fetcher

    def _deadline(self) -> Optional[float]:
        if self.config.timeout is None:
            return None
        return time.monotonic() + self.config.timeout

    def collect_chain(self,
                      leaf: EntityStatement,
                      trust_anchors: set,
                      resolution: Resolution) -> Optional[TrustChain]:
        """
        Walks the authority hints depth first using an explicit stack.

        :param leaf: The Entity Configuration of the entity the chain is about
        :param trust_anchors: Entity IDs of acceptable trust anchors
        :param resolution: The state of this resolution
        :return: A TrustChain instance or None if no trust anchor could be reached
        """
        stack = [Branch(leaf.subject, leaf.authority_hints, [leaf], (leaf.subject,))]
        while stack:
            branch = stack[-1]
            authority = branch.next_hint()
            if authority is None:
                stack.pop()
                continue

            logger.debug(f'Get view of "{branch.subject}" from "{authority}"')
            if authority in branch.path:
                resolution.record(authority, branch.subject,
                                  CycleDetected(f"Loop detected at {authority}"))
                continue

            if len(branch.chain) > self.config.max_superiors:
                resolution.record(
                    authority, branch.subject,
                    PathTooLong(f"Reached max superiors. The path here was {branch.path}"))
                continue

            try:
                authority_configuration = resolution.entity_configuration(authority)
                statement = resolution.subordinate_statement(authority, branch.subject,
                                                             authority_configuration)
            except (FetchFailure, MalformedStatement) as err:
                resolution.record(authority, branch.subject, err)
                continue

            _chain = branch.chain + [statement]
            if authority in trust_anchors:
                logger.debug(f"Reached trust anchor: {authority}")
                if self.config.with_anchor_configuration:
                    _chain.append(authority_configuration)
                return TrustChain(_chain)

            stack.append(Branch(authority, authority_configuration.authority_hints, _chain,
                                branch.path + (authority,)))
        return None

    def __call__(self,
                 entity_id: str,
                 trust_anchors: Optional[Union[Dict[str, dict], Iterable[str]]] = None
                 ) -> ResolutionResult:
        """
        :param entity_id: The entity the trust chain should be about
        :param trust_anchors: Acceptable trust anchors, default is the configured ones
        :return: A ResolutionResult instance. Raises ResolutionCancelled if the configured
            timeout is exceeded.
        """
        if trust_anchors is None:
            trust_anchors = self.config.trust_anchors
        _anchors = anchor_ids(trust_anchors)

        resolution = Resolution(self.fetcher, self._deadline())
        try:
            leaf = resolution.entity_configuration(entity_id)
        except (FetchFailure, MalformedStatement) as err:
            logger.warning(f"Could not get Entity Configuration for '{entity_id}': {err}")
            return ResolutionResult(error=True,
                                    error_message=f"{err.__class__.__name__}: {err}")

        if entity_id in _anchors:
            logger.debug(f"'{entity_id}' is a trust anchor")
            return ResolutionResult(trust_chain=TrustChain([leaf]))

        trust_chain = self.collect_chain(leaf, _anchors, resolution)
        if trust_chain is None:
            _err = NoPathFound(
                f"No trust chain from '{entity_id}' to any of {sorted(_anchors)}")
            logger.info(str(_err))
            _message = f"{_err.__class__.__name__}: {_err}"
            if resolution.failures:
                _reasons = "; ".join(f"{f.authority} about {f.subject}: {f.error}"
                                     for f in resolution.failures)
                _message = f"{_message} ({_reasons})"
            return ResolutionResult(error=True, error_message=_message,
                                    failures=resolution.failures)

        logger.debug(f"Collected {trust_chain!r}")
        return ResolutionResult(trust_chain=trust_chain, failures=resolution.failures)
