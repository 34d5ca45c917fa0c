"""
Exceptions raised by the SMS Broadcast client

Transport failures from requests are not wrapped and propagate as-is.
"""


class SMSBroadcastError(Exception):
    """Base class for all SMS Broadcast client errors"""


class InvalidCredentialsError(SMSBroadcastError):
    """Username or password missing from the client configuration"""


class InvalidArgumentError(SMSBroadcastError, TypeError):
    """A setter was given a value of the wrong type"""


class SmsDeliveryError(SMSBroadcastError):
    """
    Local validation failure, raised before any request is made.

    Codes:
        1: no recipients
        2: sender string too long
        3: too many parts in a multipart message
    """

    def __init__(self, message: str, code: int):
        super().__init__(message)
        self.code = code


class GatewayRequestError(SMSBroadcastError):
    """The gateway answered with a top level ERROR status"""

    def __init__(self, reason: str):
        super().__init__(f"There was an error with this request: {reason}")
        self.reason = reason
