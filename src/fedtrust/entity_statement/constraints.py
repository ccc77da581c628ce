"""
Enforcement of the constraints a superior can put on the part of a trust chain that is
below it. Chains are ordered with the subject's Entity Configuration first.
"""
import logging
from typing import List
from typing import Optional
from urllib.parse import urlparse

from fedtrust.entity_statement.statement import EntityStatement

logger = logging.getLogger(__name__)


def host_name(entity_id: str) -> str:
    if "://" in entity_id:
        return urlparse(entity_id).hostname or ""
    return entity_id.lower()


def name_matches(entity_id: str, constraint: str) -> bool:
    """
    A constraint starting with a '.' matches any host below it. Without a leading dot
    the host itself also matches.
    """
    _host = host_name(entity_id)
    _name = host_name(constraint)
    if _name.startswith("."):
        return _host.endswith(_name)
    return _host == _name or _host.endswith(f".{_name}")


def excluded(entity_id: str, excluded_names: List[str]) -> bool:
    for name in excluded_names:
        if name_matches(entity_id, name):
            return True
    return False


def permitted(entity_id: str, permitted_names: List[str]) -> bool:
    for name in permitted_names:
        if name_matches(entity_id, name):
            return True
    return False


def check_path_length(chain: List[EntityStatement]) -> Optional[str]:
    for index, statement in enumerate(chain):
        if index == 0 or statement.is_self_signed:
            continue
        _max_len = statement.constraints.get("max_path_length")
        if _max_len is None:
            continue
        # Number of intermediates between the issuer of this statement and the subject
        if index - 1 > _max_len:
            return (f"'{statement.issuer}' allows {_max_len} intermediates, "
                    f"chain has {index - 1}")
    return None


def check_naming_constraints(chain: List[EntityStatement]) -> Optional[str]:
    for index, statement in enumerate(chain):
        if index == 0 or statement.is_self_signed:
            continue
        _naming = statement.constraints.get("naming_constraints")
        if not _naming:
            continue

        _below = [s.subject for s in chain[:index + 1]]
        for entity_id in _below:
            if excluded(entity_id, _naming.get("excluded") or []):
                return f"'{entity_id}' excluded by '{statement.issuer}'"
            _permitted = _naming.get("permitted")
            if _permitted and not permitted(entity_id, _permitted):
                return f"'{entity_id}' not permitted by '{statement.issuer}'"
    return None


def meets_restrictions(chain: List[EntityStatement]) -> Optional[str]:
    """
    Verifies that the trust chain fulfills the constraints specified in it.

    :param chain: A sequence of entity statements, the subject's Entity Configuration first.
    :return: None if the constraints are fulfilled, otherwise a description of the violation.
    """
    _violation = check_path_length(chain)
    if _violation is None:
        _violation = check_naming_constraints(chain)
    if _violation:
        logger.warning(f"Constraint violation: {_violation}")
    return _violation
