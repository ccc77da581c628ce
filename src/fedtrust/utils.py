import time
from typing import Iterable
from typing import Optional
from typing import Set
from typing import Union


def utc_time_sans_frac() -> int:
    return int(time.time())


def anchor_ids(trust_anchors: Optional[Union[str, dict, Iterable[str]]]) -> Set[str]:
    """
    The set of trust anchor entity IDs. Trust anchors can be given as a single entity ID,
    a list/set of entity IDs or as a dictionary with entity IDs as keys and JWKS as values.
    """
    if not trust_anchors:
        return set()
    if isinstance(trust_anchors, str):
        return {trust_anchors}
    if isinstance(trust_anchors, dict):
        return set(trust_anchors.keys())
    return set(trust_anchors)
