"""
SMS Broadcast Client

A Python client library for the SMS Broadcast advanced HTTP API.
"""

from .exceptions import (
    SMSBroadcastError,
    InvalidCredentialsError,
    InvalidArgumentError,
    SmsDeliveryError,
    GatewayRequestError,
)
from .sms_api_caller import (
    SMSBroadcastConfig,
    SMSBroadcastClient,
    GatewayResult,
    load_config,
    send_sms,
    check_balance,
)

__all__ = [
    'SMSBroadcastConfig',
    'SMSBroadcastClient',
    'GatewayResult',
    'load_config',
    'send_sms',
    'check_balance',
    'SMSBroadcastError',
    'InvalidCredentialsError',
    'InvalidArgumentError',
    'SmsDeliveryError',
    'GatewayRequestError',
]

__version__ = "0.1.0"
