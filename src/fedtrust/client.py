import logging
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional
from typing import Union

from fedtrust.configure import FederationConfiguration
from fedtrust.entity_statement.codec import parse_entity_statement
from fedtrust.entity_statement.statement import EntityStatement
from fedtrust.entity_statement.statement import TrustChain
from fedtrust.fetch import HTTPStatementFetcher
from fedtrust.fetch import StatementFetcher
from fedtrust.function.trust_chain_collector import TrustChainCollector
from fedtrust.function.trust_mark_verifier import TrustMarkVerifier
from fedtrust.function.verifier import TrustChainVerifier
from fedtrust.result import ResolutionResult
from fedtrust.result import VerificationResult
from fedtrust.signature import SignatureVerifier

logger = logging.getLogger(__name__)


class FederationClient(object):
    """
    Resolves and verifies trust chains and verifies trust marks using one configuration.
    """

    def __init__(self,
                 config: Optional[Union[FederationConfiguration, dict]] = None,
                 fetcher: Optional[StatementFetcher] = None):
        if isinstance(config, dict):
            config = FederationConfiguration.from_dict(config)
        self.config = config or FederationConfiguration()
        self.fetcher = fetcher or HTTPStatementFetcher(httpc_params=self.config.httpc_params)

        _signature_verifier = SignatureVerifier(self.config.allowed_algorithms)
        self.trust_chain_collector = TrustChainCollector(self.fetcher, self.config)
        self.verifier = TrustChainVerifier(self.config, _signature_verifier)
        self.trust_mark_verifier = TrustMarkVerifier(self.config, _signature_verifier)

    def entity_configuration(self, entity_id: str) -> EntityStatement:
        """
        Fetches and parses an Entity Configuration. The signature is not verified.
        Raises FetchFailure or MalformedStatement.
        """
        return parse_entity_statement(self.fetcher.get_entity_configuration(entity_id))

    def resolve_trust_chain(
            self,
            entity_id: str,
            trust_anchors: Optional[Union[Dict[str, dict], Iterable[str]]] = None
    ) -> ResolutionResult:
        return self.trust_chain_collector(entity_id, trust_anchors)

    def verify_trust_chain(self,
                           chain: Union[TrustChain, List[Union[str, EntityStatement]]],
                           anchor: Optional[str] = None,
                           reference_time: Optional[int] = None) -> VerificationResult:
        return self.verifier(chain, anchor=anchor, reference_time=reference_time)

    def verify_trust_mark(self,
                          trust_mark: str,
                          issuer_configuration: Union[str, EntityStatement],
                          entity_id: Optional[str] = "") -> bool:
        return self.trust_mark_verifier(trust_mark, issuer_configuration, entity_id=entity_id)
