import inspect
import json
import os
from typing import Dict
from typing import List
from typing import Optional
from typing import Union

import yaml

from fedtrust.defaults import DEFAULT_ALLOWED_ALGORITHMS
from fedtrust.defaults import DEFAULT_HTTPC_PARAMS
from fedtrust.defaults import DEFAULT_MAX_SUPERIORS

TRUST_ANCHOR_FILE_ATTRIBUTE = "trust_anchors"


def load_config_file(filename: str) -> dict:
    with open(filename) as fp:
        if filename.endswith((".yaml", ".yml")):
            return yaml.safe_load(fp)
        return json.load(fp)


class FederationConfiguration(object):
    """
    Settings shared by the trust chain collector and the verifiers.

    :param trust_anchors: The trust anchors. Either a dictionary with entity IDs as keys and
        the anchors' JWKS as values or a list of entity IDs. JWKS provided here are used to
        verify statements issued by the trust anchors.
    :param allowed_delta: Allowed clock skew in seconds when checking iat and exp.
    :param max_superiors: The maximum number of subordinate statements in a collected chain.
    :param timeout: Deadline in seconds for one trust chain resolution, None means no deadline.
    :param httpc_params: Keyword arguments passed to the HTTP client on every request.
    :param with_anchor_configuration: Whether a collected chain that ends with a statement
        issued by a trust anchor should also include the anchor's Entity Configuration.
        On by default, so that a chain ends with the anchor's own keys.
    :param allowed_algorithms: JWS algorithms accepted on statements and trust marks.
    :param apply_constraints: Whether constraints in the chain should be enforced.
    """

    def __init__(self,
                 trust_anchors: Optional[Union[Dict[str, dict], List[str]]] = None,
                 allowed_delta: Optional[int] = 0,
                 max_superiors: Optional[int] = DEFAULT_MAX_SUPERIORS,
                 timeout: Optional[float] = None,
                 httpc_params: Optional[dict] = None,
                 with_anchor_configuration: Optional[bool] = True,
                 allowed_algorithms: Optional[List[str]] = None,
                 apply_constraints: Optional[bool] = True):
        if trust_anchors is None:
            trust_anchors = {}
        elif not isinstance(trust_anchors, dict):
            trust_anchors = {_id: None for _id in trust_anchors}
        self.trust_anchors = trust_anchors
        self.allowed_delta = allowed_delta
        self.max_superiors = max_superiors
        self.timeout = timeout
        if httpc_params is None:
            httpc_params = DEFAULT_HTTPC_PARAMS.copy()
        self.httpc_params = httpc_params
        self.with_anchor_configuration = with_anchor_configuration
        self.allowed_algorithms = allowed_algorithms or DEFAULT_ALLOWED_ALGORITHMS[:]
        self.apply_constraints = apply_constraints

    def trust_anchor_jwks(self, entity_id: str) -> Optional[dict]:
        return self.trust_anchors.get(entity_id)

    @classmethod
    def from_dict(cls, conf: dict, base_path: Optional[str] = ""):
        """
        :param conf: Configuration as a dictionary
        :param base_path: Directory relative to which file names in the configuration are
            resolved. The trust anchors can be given as the name of a JSON file.
        """
        _conf = dict(conf)
        _anchors = _conf.get(TRUST_ANCHOR_FILE_ATTRIBUTE)
        if isinstance(_anchors, str):
            if base_path and not os.path.isabs(_anchors):
                _anchors = os.path.join(base_path, _anchors)
            _conf[TRUST_ANCHOR_FILE_ATTRIBUTE] = load_config_file(_anchors)

        _known = [p for p in inspect.signature(cls.__init__).parameters if p != "self"]
        _unknown = set(_conf.keys()).difference(_known)
        if _unknown:
            raise ValueError(f"Unknown configuration parameters: {sorted(_unknown)}")
        return cls(**_conf)

    @classmethod
    def from_file(cls, filename: str):
        return cls.from_dict(load_config_file(filename),
                             base_path=os.path.dirname(os.path.abspath(filename)))
