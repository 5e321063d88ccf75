import logging
from typing import Union

from hive_tcli.exc import ConfigurationError

logger = logging.getLogger(__name__)

# Hive release or protocol name -> TProtocolVersion ordinal sent as client_protocol
HIVE_THRIFT_MAPPING = {
    10: 0,
    11: 1,
    12: 2,
    13: 6,
    "cdh4": 0,
    "cdh5": 4,
    "v1": 0,
    "v2": 1,
    "v3": 2,
    "v4": 3,
    "v5": 4,
    "v6": 5,
    "v7": 6,
}

DEFAULT_HIVE_VERSION = 10


def _normalize_token(version: Union[int, str]):
    if isinstance(version, str):
        token = version.strip().lower()
        if token.isdigit():
            return int(token)
        if token.startswith("protocol_"):
            token = token[len("protocol_") :]
        return token
    return version


def resolve_protocol_version(version: Union[int, str]) -> int:
    """Map a Hive version token to the Thrift protocol ordinal used in OpenSession.

    Accepts the legacy numeric Hive levels (10, 11, 12, 13), the symbolic levels
    ``v1``..``v7`` (also spelled ``PROTOCOL_V1``..``PROTOCOL_V7``) and the
    distribution aliases ``cdh4`` / ``cdh5``.
    """
    token = _normalize_token(version)
    try:
        ordinal = HIVE_THRIFT_MAPPING[token]
    except (KeyError, TypeError):
        raise ConfigurationError(
            "Invalid Hive version: {!r}".format(version),
            {"supported-versions": sorted(map(str, HIVE_THRIFT_MAPPING))},
        )
    logger.debug("Hive version %r resolved to protocol ordinal %s", version, ordinal)
    return ordinal
