"""Error types raised across the relay."""


class RelayError(Exception):
    """Base class for relay errors."""


class InvalidInputError(RelayError):
    """Missing, empty or over-limit notification fields."""


class GateClosedError(RelayError):
    """The listening gate is closed; handlers refuse work."""

    def __init__(self, message: str = "Server is not listening") -> None:
        super().__init__(message)


class DispatchFailedError(RelayError):
    """The notifier could not show the notification."""


class BindFailedError(RelayError):
    """The listener could not bind its configured address."""


class SettingsError(RelayError):
    """Invalid HTTP bindings or a failure persisting them."""


class NotifierError(RelayError):
    """A platform notifier reported an error."""


class ProtocolError(RelayError):
    """A JSON-RPC level error carrying its error code."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
