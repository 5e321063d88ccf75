from hive_tcli.transport.selector import (
    TransportType,
    build_transport,
    parse_sasl_params,
)
from hive_tcli.transport.thrift_http_client import THttpClient
