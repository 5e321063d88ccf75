import logging
from typing import Any, Dict, Optional

from thrift.protocol import TBinaryProtocol
from TCLIService import TCLIService, ttypes

from hive_tcli.exc import HiveServerError
from hive_tcli.transport import build_transport
from hive_tcli.types import hex_guid_of

logger = logging.getLogger(__name__)

unsafe_logger = logging.getLogger("hive_tcli.unsafe")
unsafe_logger.setLevel(logging.DEBUG)

# To capture these logs in client code, add a non-NullHandler.
unsafe_logger.addHandler(logging.NullHandler())

# Disable propagation so that handlers for `hive_tcli` don't pick up these messages
unsafe_logger.propagate = False

DEFAULT_ERROR_MESSAGE = "Execution failed!"
DEFAULT_ERROR_CODE = -1
DEFAULT_SQL_STATE = "unknown SQL_STATE"


class ThriftBackend:
    """
    Thin typed layer over the generated TCLIService client.

    Owns the transport, the binary protocol and the client stub. Each RPC goes
    through make_request, which logs the round trip and runs the response's
    status block through _check_response_for_error.
    """

    def __init__(
        self,
        server_hostname: str,
        port: int,
        transport_type,
        timeout,
        sasl_params: Optional[Dict[str, Any]] = None,
        _transport=None,
        **kwargs
    ):
        self.host = server_hostname
        self.port = port

        if _transport is not None:
            self._transport = _transport
        else:
            self._transport = build_transport(
                transport_type,
                server_hostname,
                port,
                timeout=timeout,
                sasl_params=sasl_params,
                **kwargs
            )

        protocol = TBinaryProtocol.TBinaryProtocol(self._transport)
        self._client = TCLIService.Client(protocol)

    @property
    def transport(self):
        return self._transport

    def open(self):
        logger.info("Opening transport to {}:{}".format(self.host, self.port))
        self._transport.open()

    def close(self):
        logger.debug("ThriftBackend.close(host=%s)", self.host)
        self._transport.close()

    @staticmethod
    def _check_response_for_error(response):
        status = getattr(response, "status", None)
        if status is None or status.statusCode == ttypes.TStatusCode.SUCCESS_STATUS:
            return response

        error_code = (
            status.errorCode if status.errorCode is not None else DEFAULT_ERROR_CODE
        )
        raise HiveServerError(
            status.errorMessage or DEFAULT_ERROR_MESSAGE,
            error_code=error_code,
            sql_state=status.sqlState or DEFAULT_SQL_STATE,
        )

    def make_request(self, method, request, check_status=True):
        this_method_name = getattr(method, "__name__", repr(method))

        logger.debug("Sending request: {}(<REDACTED>)".format(this_method_name))
        unsafe_logger.debug("Sending request: {}".format(request))

        response = method(request)

        # thrift responses have no __name__, so use the type name
        logger.debug(
            "Received response: {}(<REDACTED>)".format(type(response).__name__)
        )
        unsafe_logger.debug("Received response: {}".format(response))

        if check_status:
            self._check_response_for_error(response)
        return response

    def open_session(self, protocol_version: int, username=None, password=None):
        req = ttypes.TOpenSessionReq(
            client_protocol=protocol_version,
            username=username,
            password=password,
        )
        response = self.make_request(self._client.OpenSession, req)
        logger.info(
            "Opened session {} (server protocol {})".format(
                hex_guid_of(response.sessionHandle), response.serverProtocolVersion
            )
        )
        return response

    def close_session(self, session_handle):
        logger.debug(
            "ThriftBackend.close_session(session=%s)", hex_guid_of(session_handle)
        )
        req = ttypes.TCloseSessionReq(sessionHandle=session_handle)
        return self.make_request(self._client.CloseSession, req)

    def execute_statement(self, session_handle, statement: str, run_async=False):
        logger.info(
            "Executing statement{}: {}".format(" asynchronously" if run_async else "", statement)
        )
        req = ttypes.TExecuteStatementReq(
            sessionHandle=session_handle,
            statement=statement,
            confOverlay={},
            runAsync=run_async,
        )
        return self.make_request(self._client.ExecuteStatement, req)

    def get_operation_status(self, op_handle):
        # A reported state wins over the status block, even ERROR_STATE with a
        # failed status. Without a state the failure itself is raised.
        req = ttypes.TGetOperationStatusReq(operationHandle=op_handle)
        response = self.make_request(
            self._client.GetOperationStatus, req, check_status=False
        )
        if response.operationState is None:
            self._check_response_for_error(response)
        return response

    def cancel_operation(self, op_handle):
        logger.debug("Cancelling operation %s", hex_guid_of(op_handle))
        req = ttypes.TCancelOperationReq(operationHandle=op_handle)
        return self.make_request(self._client.CancelOperation, req)

    def close_operation(self, op_handle):
        logger.debug("ThriftBackend.close_operation(op=%s)", hex_guid_of(op_handle))
        req = ttypes.TCloseOperationReq(operationHandle=op_handle)
        return self.make_request(self._client.CloseOperation, req)

    def fetch_results(self, op_handle, orientation: int, max_rows: int):
        req = ttypes.TFetchResultsReq(
            operationHandle=op_handle,
            orientation=orientation,
            maxRows=max_rows,
        )
        return self.make_request(self._client.FetchResults, req)

    def get_result_set_metadata(self, op_handle):
        req = ttypes.TGetResultSetMetadataReq(operationHandle=op_handle)
        return self.make_request(self._client.GetResultSetMetadata, req)
