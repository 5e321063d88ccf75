from hive_tcli.exc import *

__version__ = "1.0.0"
USER_AGENT_NAME = "HiveTCLIConnector"

DEFAULT_PORT = 10_000


def connect(server, port=DEFAULT_PORT, **kwargs):
    """Open a connection and a session, yield it, and always tear both down.

    Usage::

        with hive_tcli.connect("localhost", 10000, transport="sasl",
                               sasl_params={"username": "hive"}) as connection:
            rows = connection.fetch("SELECT 1")
    """
    from .client import tcli_connect

    return tcli_connect(server, port, **kwargs)
