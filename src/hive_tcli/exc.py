import json
import logging

logger = logging.getLogger(__name__)

### PEP-249 Mandated ###
# https://peps.python.org/pep-0249/#exceptions
class Error(Exception):
    """Base class for DB-API2.0 exceptions.
    `message`: An optional user-friendly error message. It should be short, actionable and stable
    `context`: Optional extra context about the error. MUST be JSON serializable
    """

    def __init__(self, message=None, context=None, *args, **kwargs):
        super().__init__(message, *args, **kwargs)
        self.message = message
        self.context = context or {}

    def __str__(self):
        return self.message

    def message_with_context(self):
        return self.message + ": " + json.dumps(self.context, default=str)


class Warning(Exception):
    pass


class InterfaceError(Error):
    pass


class DatabaseError(Error):
    pass


class InternalError(DatabaseError):
    pass


class OperationalError(DatabaseError):
    pass


class ProgrammingError(DatabaseError):
    pass


class IntegrityError(DatabaseError):
    pass


class DataError(DatabaseError):
    pass


class NotSupportedError(DatabaseError):
    pass


### Custom error classes ###
class ConfigurationError(ProgrammingError):
    """Thrown when the connection or a call is misconfigured, before any network I/O.
    Covers unknown transports, missing SASL params, unknown protocol versions and
    invalid fetch orientations.
    """

    pass


class InvalidHandleError(ConfigurationError):
    """Thrown if a handle triple is missing its session, guid or secret"""

    pass


class OperationNotFinishedError(ProgrammingError):
    """Thrown when results are requested from an asynchronous operation that has not
    reached the finished state. Its context will have the following keys:
    "operation-id": The Thrift guid of the operation
    "state": The state reported by the server
    """

    pass


class HiveServerError(DatabaseError):
    """Thrown if a response carries a non-success status block.
    Its context will have the following keys:
    "error-code": The numeric error code reported by the server (-1 if absent)
    "sql-state": The SQL state reported by the server
    """

    def __init__(self, message=None, error_code=-1, sql_state=None, context=None):
        context = dict(context or {})
        context.update({"error-code": error_code, "sql-state": sql_state})
        super().__init__(message, context)
        self.error_code = error_code
        self.sql_state = sql_state
