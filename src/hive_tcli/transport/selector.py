import base64
import logging
import ssl
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

import thrift.transport.TSocket
import thrift.transport.TTransport
import thrift_sasl
from pyhive.sasl_compat import PureSASLClient

from hive_tcli.exc import ConfigurationError
from hive_tcli.transport.thrift_http_client import THttpClient

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 1800
DEFAULT_HTTP_PATH = "cliservice"
DEFAULT_SASL_MECHANISM = "PLAIN"
DEFAULT_SASL_SERVICE = "hive"


class TransportType(Enum):
    BUFFERED = "buffered"
    SASL = "sasl"
    HTTP = "http"

    @classmethod
    def parse(cls, value: Union["TransportType", str, None]) -> "TransportType":
        if value is None:
            return cls.BUFFERED
        if isinstance(value, TransportType):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigurationError(
                "Unrecognised transport type '{}'".format(value),
                {"valid-transports": [t.value for t in cls]},
            )


def parse_sasl_params(sasl_params: Optional[Mapping[Any, Any]]) -> Optional[Dict[str, Any]]:
    """Normalize SASL parameter keys to lower-case strings, or return None."""
    if sasl_params is None:
        return None
    if not isinstance(sasl_params, Mapping):
        raise ConfigurationError(
            "sasl_params must be a mapping, got {}".format(type(sasl_params).__name__)
        )
    return {str(k).lower(): v for k, v in sasl_params.items()}


def thrift_socket(host: str, port: int, timeout: Optional[float]):
    socket = thrift.transport.TSocket.TSocket(host, port)
    # setTimeout is expected in ms
    socket.setTimeout(timeout and (float(timeout) * 1000.0))
    return socket


def sasl_client_factory(host: str, sasl_params: Dict[str, Any]):
    mechanism = sasl_params.get("mechanism", DEFAULT_SASL_MECHANISM)
    username = sasl_params.get("username")
    password = sasl_params.get("password")
    if mechanism == "PLAIN" and password is None:
        # PLAIN requires a password even where HiveServer2 ignores it
        password = "x"
    service = sasl_params.get("service", DEFAULT_SASL_SERVICE)

    def factory():
        return PureSASLClient(
            host,
            mechanism=mechanism,
            service=service,
            username=username,
            password=password,
        )

    return factory


def basic_auth_header(sasl_params: Optional[Dict[str, Any]]) -> Optional[str]:
    if not sasl_params or sasl_params.get("username") is None:
        return None
    credentials = "{}:{}".format(
        sasl_params["username"], sasl_params.get("password") or ""
    )
    return "Basic " + base64.b64encode(credentials.encode("utf-8")).decode("ascii")


def build_transport(
    transport_type: Union[TransportType, str, None],
    host: str,
    port: int,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    sasl_params: Optional[Mapping[Any, Any]] = None,
    http_path: str = DEFAULT_HTTP_PATH,
    http_scheme: str = "http",
    ssl_verify_mode: int = ssl.CERT_REQUIRED,
    ssl_ca_file: Optional[str] = None,
    http_headers: Optional[Dict[str, str]] = None,
):
    """
    Return an unopened Thrift transport for the given transport type.

    No network I/O happens here; configuration problems raise ConfigurationError.
    """
    transport_type = TransportType.parse(transport_type)
    logger.info("Initializing transport {}".format(transport_type.value))

    if transport_type == TransportType.BUFFERED:
        return thrift.transport.TTransport.TBufferedTransport(
            thrift_socket(host, port, timeout)
        )

    if transport_type == TransportType.SASL:
        if sasl_params is None:
            raise ConfigurationError(
                "transport is set to sasl, but no sasl_params option was supplied"
            )
        params = parse_sasl_params(sasl_params)
        return thrift_sasl.TSaslClientTransport(
            sasl_client_factory(host, params),
            params.get("mechanism", DEFAULT_SASL_MECHANISM),
            thrift_socket(host, port, timeout),
        )

    if http_scheme not in ("http", "https"):
        raise ConfigurationError("Unsupported HTTP scheme '{}'".format(http_scheme))
    uri = "{scheme}://{host}:{port}/{path}".format(
        scheme=http_scheme, host=host, port=port, path=http_path.lstrip("/")
    )
    transport = THttpClient(
        uri,
        ssl_verify_mode=ssl_verify_mode,
        ssl_ca_file=ssl_ca_file,
        connect_timeout=timeout,
        read_timeout=None,
    )
    headers = dict(http_headers or {})
    authorization = basic_auth_header(parse_sasl_params(sasl_params))
    if authorization:
        headers["Authorization"] = authorization
    transport.setCustomHeaders(headers)
    return transport
