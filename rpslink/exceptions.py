"""
Exceptions raised by rpslink.

Inbound traffic never raises: controllers turn anything they cannot parse into
an UNKNOWN command. These are for programming errors and for the transport
layer, whose failures are logged by the sender and go no further.
"""


class RpsLinkError(Exception):
    """Base class for all rpslink errors"""
    pass


class ProtocolError(RpsLinkError):
    """A value has no wire form, or a wire string is not a valid command"""

    def __init__(self, message: str, raw: str | None = None):
        self.raw = raw
        super().__init__(message)


class ChannelError(RpsLinkError):
    """A transport was misused: a second handler, or a device id already taken"""
    pass


class InvalidRole(RpsLinkError):
    def __init__(self, role):
        self.role = role
        super().__init__(f"Unknown role {role!r}, expected 'primary' or 'peer'")
