import logging
from typing import Callable
from typing import Dict
from typing import Optional
from typing import Tuple
from urllib.parse import urlencode
from urllib.parse import urlparse

import requests
from requests.exceptions import RequestException

from fedtrust.defaults import ENTITY_STATEMENT_CONTENT_TYPE
from fedtrust.defaults import JOSE_CONTENT_TYPE
from fedtrust.defaults import WELL_KNOWN_FEDERATION_PATH
from fedtrust.entity_statement.codec import parse_entity_statement
from fedtrust.entity_statement.statement import EntityStatement
from fedtrust.exception import FetchFailure
from fedtrust.exception import MalformedStatement
from fedtrust.exception import MissingPage

logger = logging.getLogger(__name__)


def construct_well_known_url(entity_id: str) -> str:
    p = urlparse(entity_id)
    return f'{p.scheme}://{p.netloc}{WELL_KNOWN_FEDERATION_PATH}'


def construct_tenant_well_known_url(entity_id: str) -> str:
    p = urlparse(entity_id)
    return f'{p.scheme}://{p.netloc}{p.path.rstrip("/")}{WELL_KNOWN_FEDERATION_PATH}'


def construct_entity_statement_query(api_endpoint: str, issuer: str = "", subject: str = ""):
    if not issuer:
        return api_endpoint

    if subject:
        query = urlencode({"iss": issuer, "sub": subject})
    else:
        query = urlencode({"iss": issuer})

    if "?" in api_endpoint:
        return f"{api_endpoint}&{query}"
    return f"{api_endpoint}?{query}"


def get_fetch_endpoint(entity_configuration: EntityStatement) -> Optional[str]:
    _fe = entity_configuration.metadata.get("federation_entity") or {}
    return _fe.get("federation_fetch_endpoint")


class StatementFetcher(object):
    """
    Fetches signed entity statements. Every failure to get hold of a statement is
    reported by raising FetchFailure.
    """

    def get_entity_configuration(self, entity_id: str,
                                 timeout: Optional[float] = None) -> str:
        """
        :param entity_id: The entity whose Entity Configuration is wanted
        :param timeout: Upper limit in seconds for the time spent fetching
        :return: A signed JWT
        """
        raise NotImplementedError()

    def get_entity_statement(self,
                             authority: str,
                             subject: str,
                             authority_configuration: Optional[EntityStatement] = None,
                             timeout: Optional[float] = None) -> str:
        """
        :param authority: The issuer of the subordinate statement
        :param subject: About whom the statement should be
        :param authority_configuration: The authority's Entity Configuration if the caller
            already has it
        :param timeout: Upper limit in seconds for the time spent fetching
        :return: A signed JWT
        """
        raise NotImplementedError()


class HTTPStatementFetcher(StatementFetcher):
    """
    Gets Entity Configurations from the entities' well-known endpoint and subordinate
    statements from the authority's federation fetch endpoint.
    """

    def __init__(self,
                 httpc: Optional[Callable] = None,
                 httpc_params: Optional[dict] = None):
        self.httpc = httpc or requests.request
        self.httpc_params = httpc_params or {}

    def request_params(self, timeout: Optional[float] = None) -> dict:
        """
        The keyword arguments for one request. A timeout given here replaces a longer
        one in httpc_params.
        """
        _params = dict(self.httpc_params)
        if timeout is not None:
            _configured = _params.get("timeout")
            if _configured is None or not isinstance(_configured, (int, float)) \
                    or timeout < _configured:
                _params["timeout"] = timeout
        return _params

    def get_document(self, url: str, timeout: Optional[float] = None) -> str:
        """

        :param url: Target URL
        :param timeout: Upper limit in seconds for this request
        :return: Signed EntityStatement
        """
        logger.debug(f"Fetching: {url}")
        try:
            response = self.httpc("GET", url, **self.request_params(timeout))
        except RequestException as err:
            logger.error(f'Could not connect to {url}: {err}')
            raise FetchFailure(f"Could not connect to {url}: {err}") from err

        if response.status_code == 200:
            _content_type = response.headers.get('Content-Type', '')
            if ENTITY_STATEMENT_CONTENT_TYPE not in _content_type and \
                    JOSE_CONTENT_TYPE not in _content_type:
                logger.warning(f"Wrong Content-Type: {_content_type}")
            return response.text
        elif response.status_code == 404:
            raise MissingPage(f"No such page: '{url}'")
        else:
            raise FetchFailure(f"Got status code {response.status_code} from '{url}'")

    def get_entity_configuration(self, entity_id: str,
                                 timeout: Optional[float] = None) -> str:
        """
        Get configuration information about an entity from itself.
        If there is none at the root of the host, a path-preserving (tenant) well-known
        URL is tried.

        :param entity_id: About whom the entity statement should be
        :param timeout: Upper limit in seconds for each request
        :return: Configuration information as a signed JWT
        """
        logger.debug(f"--get_entity_configuration({entity_id})")
        _url = construct_well_known_url(entity_id)
        try:
            return self.get_document(_url, timeout)
        except MissingPage:
            _tenant_url = construct_tenant_well_known_url(entity_id)
            if _tenant_url == _url:
                raise
            logger.debug(f"Get configuration from (tenant): '{_tenant_url}'")
            return self.get_document(_tenant_url, timeout)

    def get_entity_statement(self,
                             authority: str,
                             subject: str,
                             authority_configuration: Optional[EntityStatement] = None,
                             timeout: Optional[float] = None) -> str:
        """
        Get a statement issued by the authority about the subject.
        """
        if authority_configuration is None:
            logger.debug(f"Entity Configuration for '{authority}' not given")
            try:
                authority_configuration = parse_entity_statement(
                    self.get_entity_configuration(authority, timeout))
            except MalformedStatement as err:
                raise FetchFailure(f"Unusable Entity Configuration for {authority}") from err

        fetch_endpoint = get_fetch_endpoint(authority_configuration)
        if not fetch_endpoint:
            raise FetchFailure(f"'{authority}' has no federation fetch endpoint")

        logger.debug(f"Federation fetch endpoint: '{fetch_endpoint}' for '{authority}'")
        return self.get_document(
            construct_entity_statement_query(fetch_endpoint, issuer=authority, subject=subject),
            timeout)


class MemoryStatementFetcher(StatementFetcher):
    """
    Serves statements that have already been collected, for instance a trust chain
    received in a request.
    """

    def __init__(self,
                 configurations: Optional[Dict[str, str]] = None,
                 statements: Optional[Dict[Tuple[str, str], str]] = None):
        self.configurations = dict(configurations or {})
        self.statements = dict(statements or {})
        self.requests = []

    def add_entity_configuration(self, entity_id: str, token: str):
        self.configurations[entity_id] = token

    def add_entity_statement(self, authority: str, subject: str, token: str):
        self.statements[(authority, subject)] = token

    def get_entity_configuration(self, entity_id: str,
                                 timeout: Optional[float] = None) -> str:
        self.requests.append((entity_id, entity_id))
        try:
            return self.configurations[entity_id]
        except KeyError:
            raise FetchFailure(f"No Entity Configuration for '{entity_id}'")

    def get_entity_statement(self,
                             authority: str,
                             subject: str,
                             authority_configuration: Optional[EntityStatement] = None,
                             timeout: Optional[float] = None) -> str:
        self.requests.append((authority, subject))
        try:
            return self.statements[(authority, subject)]
        except KeyError:
            raise FetchFailure(f"'{authority}' has no statement about '{subject}'")
