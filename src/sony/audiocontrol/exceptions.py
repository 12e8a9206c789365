"""Exception classes for the Sony audio control protocol."""

from __future__ import annotations

from .enums import ErrorCodes


class AudioControlException(Exception):
    pass


class NotConnectedException(AudioControlException):
    pass


class TransportError(AudioControlException):
    """The device could not be reached (timeout, refused, DNS failure)."""

    def __init__(self, cause: BaseException | None = None):
        self.cause = cause
        super().__init__(f"Transport failure: {cause!r}" if cause else "Transport failure")


class DeviceError(AudioControlException):
    """The device rejected a request."""

    def __init__(self, code: int | None = None, message: str | None = None):
        self.code = code
        self.message = message
        super().__init__(f"'code':{code}, 'message':{message}")

    @staticmethod
    def from_error(error: list) -> DeviceError:
        code = error[0] if len(error) > 0 else None
        message = error[1] if len(error) > 1 else None
        if code == ErrorCodes.ILLEGAL_ARGUMENT:
            return IllegalArgument(message)
        elif code == ErrorCodes.ILLEGAL_REQUEST:
            return IllegalRequest(message)
        elif code == ErrorCodes.ILLEGAL_STATE:
            return IllegalState(message)
        elif code == ErrorCodes.NO_SUCH_METHOD:
            return NoSuchMethod(message)
        elif code == ErrorCodes.UNSUPPORTED_VERSION:
            return UnsupportedVersion(message)
        elif code == ErrorCodes.UNSUPPORTED_OPERATION:
            return UnsupportedOperation(message)
        else:
            return DeviceError(code=code, message=message)


class IllegalArgument(DeviceError):
    def __init__(self, message: str | None = None):
        super().__init__(code=ErrorCodes.ILLEGAL_ARGUMENT, message=message)


class IllegalRequest(DeviceError):
    def __init__(self, message: str | None = None):
        super().__init__(code=ErrorCodes.ILLEGAL_REQUEST, message=message)


class IllegalState(DeviceError):
    def __init__(self, message: str | None = None):
        super().__init__(code=ErrorCodes.ILLEGAL_STATE, message=message)


class NoSuchMethod(DeviceError):
    def __init__(self, message: str | None = None):
        super().__init__(code=ErrorCodes.NO_SUCH_METHOD, message=message)


class UnsupportedVersion(DeviceError):
    def __init__(self, message: str | None = None):
        super().__init__(code=ErrorCodes.UNSUPPORTED_VERSION, message=message)


class UnsupportedOperation(DeviceError):
    def __init__(self, message: str | None = None):
        super().__init__(code=ErrorCodes.UNSUPPORTED_OPERATION, message=message)


class InvalidArgument(AudioControlException, ValueError):
    """A caller supplied value outside the configured or valid domain."""


class InvalidConfiguration(AudioControlException, ValueError):
    pass


class ParseError(AudioControlException):
    """A notification frame could not be understood."""
