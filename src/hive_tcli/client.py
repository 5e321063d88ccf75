import logging
import ssl
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from thrift.Thrift import TException

import hive_tcli
from hive_tcli.exc import (
    ConfigurationError,
    Error,
    OperationNotFinishedError,
    ProgrammingError,
)
from hive_tcli.protocol import DEFAULT_HIVE_VERSION, resolve_protocol_version
from hive_tcli.result_set import ExplainResult, ResultSet, SchemaDefinition
from hive_tcli.thrift_backend import ThriftBackend
from hive_tcli.transport import TransportType, parse_sasl_params
from hive_tcli.transport.selector import DEFAULT_HTTP_PATH, DEFAULT_TIMEOUT
from hive_tcli.types import (
    FetchOrientation,
    HandleTriple,
    OperationState,
    resolve_fetch_orientation,
)
from hive_tcli.utils import convert_row_set_to_rows, first_or_none

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROWS = 100
DEFAULT_BATCH_SIZE = 1000

PRIORITY_CONFIG = "mapred.job.priority"
QUEUE_CONFIG = "mapred.job.queue.name"

# Keyword-only extras accepted on top of the named parameters
CONNECTION_OPTIONS = frozenset(["http_headers", "_transport"])

HandlesType = Union[HandleTriple, Mapping[str, Any]]


class Connection:
    def __init__(
        self,
        server: str,
        port: int = hive_tcli.DEFAULT_PORT,
        transport: Union[TransportType, str] = TransportType.BUFFERED,
        hive_version: Union[int, str] = DEFAULT_HIVE_VERSION,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        sasl_params: Optional[Mapping[str, Any]] = None,
        http_path: str = DEFAULT_HTTP_PATH,
        http_scheme: str = "http",
        ssl_verify_mode: int = ssl.CERT_REQUIRED,
        ssl_ca_file: Optional[str] = None,
        **kwargs
    ) -> None:
        """
        Connect to a HiveServer2 endpoint over the TCLIService protocol.

        Nothing is sent over the network until :meth:`open` is called; every
        configuration problem surfaces here as a ConfigurationError.

        Parameters:
            :param server: Host name of the HiveServer2 instance.
            :param port: Thrift port, 10000 by default.
            :param transport: "buffered" (default), "sasl" or "http".
            :param hive_version: Hive release (10, 11, 12, 13), symbolic protocol
                level ("v1".."v7") or distribution alias ("cdh4", "cdh5").
            :param timeout: Socket timeout in seconds for buffered and sasl
                transports, connect timeout for http.
            :param sasl_params: Credentials mapping. Keys are case-insensitive;
                recognised keys are username, password, mechanism and service.
                Required by the sasl transport. When given, the username and
                password are also sent in OpenSession.
            :param http_path: Path of the HiveServer2 HTTP endpoint.
            :param http_scheme: "http" or "https".
            :param ssl_verify_mode: Certificate requirement for https.
            :param ssl_ca_file: CA bundle used to verify the server for https.
        """
        unknown_options = sorted(set(kwargs) - CONNECTION_OPTIONS)
        if unknown_options:
            raise ConfigurationError(
                "Unknown connection options: {}".format(", ".join(unknown_options)),
                {"unknown-options": unknown_options},
            )

        self.host = server
        self.port = port
        self.transport_type = TransportType.parse(transport)
        self.hive_version = hive_version
        self.protocol_version = resolve_protocol_version(hive_version)
        self.timeout = timeout
        self.sasl_params = parse_sasl_params(sasl_params)

        self._session = None
        self._priority: Optional[str] = None
        self._queue: Optional[str] = None

        user_agent = "{}/{}".format(hive_tcli.USER_AGENT_NAME, hive_tcli.__version__)
        http_headers = dict(kwargs.get("http_headers") or {})
        http_headers.setdefault("User-Agent", user_agent)

        transport_kwargs: Dict[str, Any] = {}
        if self.transport_type == TransportType.HTTP:
            transport_kwargs = {
                "http_path": http_path,
                "http_scheme": http_scheme,
                "ssl_verify_mode": ssl_verify_mode,
                "ssl_ca_file": ssl_ca_file,
                "http_headers": http_headers,
            }

        self.thrift_backend = ThriftBackend(
            server,
            port,
            self.transport_type,
            timeout,
            sasl_params=self.sasl_params,
            _transport=kwargs.get("_transport"),
            **transport_kwargs
        )
        logger.debug(
            "Connection configured for {}:{} (transport={}, protocol={})".format(
                server, port, self.transport_type.value, self.protocol_version
            )
        )

    def __enter__(self) -> "Connection":
        self.open()
        try:
            self.open_session()
        except Exception:
            self._teardown()
            raise
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self._teardown()

    # Session lifecycle

    def open(self) -> None:
        self.thrift_backend.open()

    def close(self) -> None:
        self.thrift_backend.close()

    def open_session(self):
        username = password = None
        if self.sasl_params is not None:
            username = self.sasl_params.get("username")
            password = self.sasl_params.get("password")
        self._session = self.thrift_backend.open_session(
            self.protocol_version, username=username, password=password
        )
        return self._session

    def close_session(self) -> None:
        try:
            self.thrift_backend.close_session(self.session)
        finally:
            self._session = None

    @property
    def session(self):
        """The TSessionHandle of the open session, or None when there is none."""
        if self._session is None:
            return None
        return self._session.sessionHandle

    @property
    def is_session_open(self) -> bool:
        return self._session is not None

    def _teardown(self) -> None:
        try:
            if self._session is not None:
                self.close_session()
        except (TException, OSError, Error) as e:
            logger.warning("Attempt to close session failed: {}".format(e))
        finally:
            try:
                self.close()
            except (TException, OSError) as e:
                logger.warning("Attempt to close transport failed: {}".format(e))

    def _require_session(self):
        if self._session is None:
            raise ProgrammingError("No open session, call open_session() first")
        return self.session

    # Statement execution

    def execute(self, statement: str):
        """Run ``statement`` synchronously and return the TExecuteStatementResp."""
        return self.thrift_backend.execute_statement(
            self._require_session(), statement, run_async=False
        )

    def async_execute(self, statement: str) -> HandleTriple:
        """Submit ``statement`` without waiting for it and return its handles.

        The returned HandleTriple is all that is needed to poll, cancel or fetch
        the operation later, from this or any connection sharing the session.
        """
        session_handle = self._require_session()
        response = self.thrift_backend.execute_statement(
            session_handle, statement, run_async=True
        )
        handles = HandleTriple.from_handles(session_handle, response.operationHandle)
        logger.debug("Submitted asynchronous operation %s", handles.hex_guid)
        return handles

    def set(self, name: str, value: Any):
        logger.info("Setting {}={}".format(name, value))
        return self.execute("SET {}={}".format(name, value))

    @property
    def priority(self) -> Optional[str]:
        return self._priority

    @priority.setter
    def priority(self, value: str) -> None:
        self.set(PRIORITY_CONFIG, value)
        self._priority = value

    @property
    def queue(self) -> Optional[str]:
        return self._queue

    @queue.setter
    def queue(self, value: str) -> None:
        self.set(QUEUE_CONFIG, value)
        self._queue = value

    # Operation polling

    def async_state(self, handles: HandlesType) -> OperationState:
        op_handle = HandleTriple.coerce(handles).to_thrift_operation_handle()
        response = self.thrift_backend.get_operation_status(op_handle)
        state = OperationState.from_thrift_state(response.operationState)
        logger.debug("Operation state: %s", state.value)
        return state

    def async_is_complete(self, handles: HandlesType) -> bool:
        return self.async_state(handles) == OperationState.FINISHED

    def async_is_running(self, handles: HandlesType) -> bool:
        return self.async_state(handles) == OperationState.RUNNING

    def async_is_failed(self, handles: HandlesType) -> bool:
        return self.async_state(handles) == OperationState.ERROR

    def async_is_cancelled(self, handles: HandlesType) -> bool:
        return self.async_state(handles) == OperationState.CANCELED

    def async_cancel(self, handles: HandlesType):
        op_handle = HandleTriple.coerce(handles).to_thrift_operation_handle()
        return self.thrift_backend.cancel_operation(op_handle)

    def async_close_operation(self, handles: HandlesType):
        op_handle = HandleTriple.coerce(handles).to_thrift_operation_handle()
        return self.thrift_backend.close_operation(op_handle)

    def async_close_session(self, handles: HandlesType):
        handles = HandleTriple.coerce(handles)
        return self.thrift_backend.close_session(handles.session)

    def _require_finished(self, handles: HandleTriple):
        state = self.async_state(handles)
        if state != OperationState.FINISHED:
            raise OperationNotFinishedError(
                "Operation {} is {}, results can only be fetched once it is "
                "finished".format(handles.hex_guid, state.value),
                {"operation-id": handles.hex_guid, "state": state.value},
            )
        return handles.to_thrift_operation_handle()

    # Result fetching

    def fetch_rows(
        self,
        op_handle,
        orientation: Union[str, FetchOrientation] = FetchOrientation.FIRST,
        max_rows: int = DEFAULT_BATCH_SIZE,
    ) -> ResultSet:
        """Fetch one page of rows, paired with the operation's result schema.

        ``orientation`` is validated before anything is sent; ``"first"`` resets
        the server-side cursor while ``"next"`` continues from the last page.
        """
        wire_orientation = resolve_fetch_orientation(orientation)
        response = self.thrift_backend.fetch_results(
            op_handle, wire_orientation, max_rows
        )
        rows = convert_row_set_to_rows(response.results)
        logger.debug("Fetched page of %d rows (max_rows=%d)", len(rows), max_rows)

        metadata = self.thrift_backend.get_result_set_metadata(op_handle)
        schema = SchemaDefinition(metadata.schema, first_or_none(rows))
        return ResultSet(rows, schema)

    def fetch(self, query: str, max_rows: int = DEFAULT_MAX_ROWS) -> ResultSet:
        exec_result = self.execute(query)
        return self.fetch_rows(
            exec_result.operationHandle, FetchOrientation.FIRST, max_rows
        )

    def _fetch_pages(self, op_handle, batch_size: int) -> Iterator[ResultSet]:
        # An empty page is the only end-of-results signal
        rows = self.fetch_rows(op_handle, FetchOrientation.NEXT, batch_size)
        while len(rows) > 0:
            yield rows
            rows = self.fetch_rows(op_handle, FetchOrientation.NEXT, batch_size)

    def fetch_in_batch(
        self,
        query: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
        on_batch: Optional[Callable[[ResultSet], Any]] = None,
    ) -> None:
        """Run ``query`` and hand every non-empty page of results to ``on_batch``."""
        _check_batch_consumer(on_batch)
        exec_result = self.execute(query)
        for batch in self._fetch_pages(exec_result.operationHandle, batch_size):
            on_batch(batch)

    def async_fetch(
        self, handles: HandlesType, max_rows: int = DEFAULT_MAX_ROWS
    ) -> ResultSet:
        handles = HandleTriple.coerce(handles)
        op_handle = self._require_finished(handles)
        return self.fetch_rows(op_handle, FetchOrientation.FIRST, max_rows)

    def async_fetch_in_batch(
        self,
        handles: HandlesType,
        batch_size: int = DEFAULT_BATCH_SIZE,
        on_batch: Optional[Callable[[ResultSet], Any]] = None,
    ) -> None:
        _check_batch_consumer(on_batch)
        handles = HandleTriple.coerce(handles)
        op_handle = self._require_finished(handles)
        for batch in self._fetch_pages(op_handle, batch_size):
            on_batch(batch)

    def explain(self, query: str) -> ExplainResult:
        lines: List[str] = []

        def collect(batch):
            lines.extend(row["Explain"] for row in batch)

        self.fetch_in_batch("EXPLAIN " + query, on_batch=collect)
        return ExplainResult(lines)

    # Table DDL, statements are built by the schema object

    def create_table(self, schema):
        return self.execute(schema.create_table_statement())

    def add_columns(self, schema):
        return self.execute(schema.add_columns_statement())

    def replace_columns(self, schema):
        return self.execute(schema.replace_columns_statement())

    def drop_table(self, schema):
        name = schema if isinstance(schema, str) else schema.name
        return self.execute("DROP TABLE `{}`".format(name))


def _check_batch_consumer(on_batch) -> None:
    if not callable(on_batch):
        raise ProgrammingError("A callable on_batch is required for batch fetches")


@contextmanager
def tcli_connect(server: str, port: int = hive_tcli.DEFAULT_PORT, **kwargs):
    """Yield a Connection with an open session; always close both on exit."""
    connection = Connection(server, port, **kwargs)
    with connection:
        yield connection
