from collections.abc import Mapping
from enum import Enum
from typing import Any, Dict, Optional, Union
import logging

from TCLIService import ttypes

from hive_tcli.exc import ConfigurationError, InvalidHandleError
from hive_tcli.utils import guid_to_hex_id

logger = logging.getLogger(__name__)


class OperationState(Enum):
    """
    Enum representing the server-side progress of an operation.

    Terminal states are FINISHED, CANCELED, CLOSED and ERROR. Any wire value
    that this client does not know about maps to STATE_NOT_IN_PROTOCOL.
    """

    INITIALIZED = "initialized"
    PENDING = "pending"
    RUNNING = "running"
    FINISHED = "finished"
    CANCELED = "canceled"
    CLOSED = "closed"
    ERROR = "error"
    UNKNOWN = "unknown"
    STATE_NOT_IN_PROTOCOL = "state_not_in_protocol"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES

    @classmethod
    def from_thrift_state(cls, state) -> "OperationState":
        """
        Convert a Thrift TOperationState to an OperationState.

        Args:
            state: The operationState field of a TGetOperationStatusResp

        Returns:
            OperationState: The matching state, or STATE_NOT_IN_PROTOCOL for any
            value with no matching case (including None)
        """
        return _THRIFT_STATE_MAPPING.get(state, cls.STATE_NOT_IN_PROTOCOL)


_TERMINAL_STATES = frozenset(
    [
        OperationState.FINISHED,
        OperationState.CANCELED,
        OperationState.CLOSED,
        OperationState.ERROR,
    ]
)

_THRIFT_STATE_MAPPING = {
    ttypes.TOperationState.INITIALIZED_STATE: OperationState.INITIALIZED,
    ttypes.TOperationState.PENDING_STATE: OperationState.PENDING,
    ttypes.TOperationState.RUNNING_STATE: OperationState.RUNNING,
    ttypes.TOperationState.FINISHED_STATE: OperationState.FINISHED,
    ttypes.TOperationState.CANCELED_STATE: OperationState.CANCELED,
    ttypes.TOperationState.CLOSED_STATE: OperationState.CLOSED,
    ttypes.TOperationState.ERROR_STATE: OperationState.ERROR,
    ttypes.TOperationState.UKNOWN_STATE: OperationState.UNKNOWN,
}


# Members are sourced from the protocol definition, so orientations added to the
# wire protocol become usable without a code change.
FetchOrientation = Enum(  # type: ignore
    "FetchOrientation",
    {
        name[len("FETCH_") :]: value
        for name, value in ttypes.TFetchOrientation._NAMES_TO_VALUES.items()
    },
)


def resolve_fetch_orientation(orientation: Union[str, Enum, int]) -> int:
    """Return the wire value for a fetch orientation.

    Accepts a FetchOrientation member, a short name such as ``"first"`` or
    ``"next"``, the protocol name such as ``"FETCH_FIRST"``, or a raw
    ``TFetchOrientation`` wire value.
    """
    if isinstance(orientation, FetchOrientation):
        return orientation.value

    if (
        isinstance(orientation, int)
        and not isinstance(orientation, bool)
        and orientation in ttypes.TFetchOrientation._VALUES_TO_NAMES
    ):
        return orientation

    if isinstance(orientation, str):
        name = orientation.upper()
        if not name.startswith("FETCH_"):
            name = "FETCH_" + name
        valid_orientations = ttypes.TFetchOrientation._NAMES_TO_VALUES
        if name in valid_orientations:
            return valid_orientations[name]

    raise ConfigurationError(
        "Invalid orientation: {!r}".format(orientation),
        {
            "valid-orientations": sorted(
                ttypes.TFetchOrientation._NAMES_TO_VALUES.keys()
            )
        },
    )


class HandleTriple:
    """
    A portable reference to an asynchronous operation.

    Holds the owning session handle plus the guid and secret of the operation,
    which is all that is needed to poll, cancel or fetch from the operation on
    any Connection that shares the session.
    """

    FIELDS = ("session", "guid", "secret")

    def __init__(self, session: Any, guid: bytes, secret: bytes):
        self.session = session
        self.guid = guid
        self.secret = secret

    def __eq__(self, other):
        if not isinstance(other, HandleTriple):
            return NotImplemented
        return (self.session, self.guid, self.secret) == (
            other.session,
            other.guid,
            other.secret,
        )

    def __repr__(self) -> str:
        return "HandleTriple(guid={})".format(self.hex_guid)

    @property
    def hex_guid(self) -> str:
        if isinstance(self.guid, bytes):
            return guid_to_hex_id(self.guid)
        return str(self.guid)

    @classmethod
    def from_handles(cls, session_handle, op_handle) -> "HandleTriple":
        """Extract the triple from a TSessionHandle and a TOperationHandle."""
        return cls(
            session=session_handle,
            guid=op_handle.operationId.guid,
            secret=op_handle.operationId.secret,
        )

    @classmethod
    def coerce(cls, handles: Union["HandleTriple", Mapping]) -> "HandleTriple":
        """Validate ``handles`` and return it as a HandleTriple.

        Raises InvalidHandleError if any of session, guid or secret is missing.
        """
        if isinstance(handles, HandleTriple):
            values: Dict[str, Any] = {f: getattr(handles, f) for f in cls.FIELDS}
        elif isinstance(handles, Mapping):
            values = {f: handles.get(f) for f in cls.FIELDS}
        else:
            raise InvalidHandleError("Invalid handles: {!r}".format(handles))

        missing = [f for f in cls.FIELDS if values[f] is None]
        if missing:
            raise InvalidHandleError(
                "Invalid handles: missing {}".format(", ".join(missing)),
                {"missing-fields": missing},
            )

        if isinstance(handles, HandleTriple):
            return handles
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {"session": self.session, "guid": self.guid, "secret": self.secret}

    def to_thrift_operation_handle(self):
        # hasResultSet is discovered through a status query, never assumed
        return ttypes.TOperationHandle(
            operationId=ttypes.THandleIdentifier(guid=self.guid, secret=self.secret),
            operationType=ttypes.TOperationType.EXECUTE_STATEMENT,
            hasResultSet=False,
        )


def hex_guid_of(handle: Optional[Any]) -> Optional[str]:
    """Hex id of a TSessionHandle or TOperationHandle, for logging."""
    if handle is None:
        return None
    identifier = getattr(handle, "sessionId", None) or getattr(
        handle, "operationId", None
    )
    if identifier is None:
        return None
    return guid_to_hex_id(identifier.guid)
