"""Application error taxonomy.

Every failure a chat user can trigger is an ``AppError`` carrying one of the
``AppErrorCode`` values below. They are recoverable: the command handler turns them
into a reply, the HTTP layer into an ``ApiFailure`` envelope, and no other session is
affected.
"""

import inspect
from enum import Enum, IntEnum
from uuid import uuid4


class AppErrorCode(str, Enum):
    # Session registry
    E_ALREADY_HAS_SESSION = "E_ALREADY_HAS_SESSION"
    E_NO_ACTIVE_SESSION = "E_NO_ACTIVE_SESSION"
    E_SESSION_ENDED = "E_SESSION_ENDED"

    # Roster
    E_INVALID_SIZE = "E_INVALID_SIZE"
    E_SESSION_FULL = "E_SESSION_FULL"
    E_MEMBER_ALREADY_CONNECTED = "E_MEMBER_ALREADY_CONNECTED"
    E_MEMBER_NOT_CONNECTED = "E_MEMBER_NOT_CONNECTED"
    E_RESIZE_BELOW_CONNECTED_COUNT = "E_RESIZE_BELOW_CONNECTED_COUNT"
    E_TEAM_COUNT_EXCEEDS_CAPACITY = "E_TEAM_COUNT_EXCEEDS_CAPACITY"

    # Generic
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_INTERNAL_ERROR = "E_INTERNAL_ERROR"

    # Webhooks
    E_WEBHOOK_ERROR = "E_WEBHOOK_ERROR"
    E_WEBHOOK_INVALID_JSON = "E_WEBHOOK_INVALID_JSON"
    E_WEBHOOK_MISSING_EVENT_TYPE = "E_WEBHOOK_MISSING_EVENT_TYPE"
    E_WEBHOOK_VALIDATION_ERROR = "E_WEBHOOK_VALIDATION_ERROR"

    def __str__(self) -> str:
        return self.value


class HttpStatusCode(IntEnum):
    OK = 200
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    NOT_FOUND = 404
    CONFLICT = 409
    INTERNAL_SERVER_ERROR = 500


class AppError(Exception):
    """Recoverable domain error.

    The caller location is captured when the error is raised so the log line written
    by the handler points at the raising code rather than at the handler.
    """

    def __init__(
        self,
        errcode: AppErrorCode,
        errmesg: str,
        status_code: HttpStatusCode = HttpStatusCode.BAD_REQUEST,
    ):
        super().__init__(errmesg)
        self.errcode = errcode.value if isinstance(errcode, AppErrorCode) else str(errcode)
        self.errmesg = errmesg
        self.status_code = int(status_code)
        self.erresid = uuid4().hex[:10]

        caller_frame = inspect.stack()[1]
        module = inspect.getmodule(caller_frame.frame)
        module_name = (
            module.__name__ if module and getattr(module, "__name__", None) else caller_frame.filename
        )
        self.caller_info = f"{module_name}:{caller_frame.function}:{caller_frame.lineno}"

    def __str__(self) -> str:
        return f"{self.errcode}: {self.errmesg}"
