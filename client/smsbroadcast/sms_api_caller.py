"""
SMS Broadcast API Client Module

This module provides functionality to send SMS messages and check the account
balance through the SMS Broadcast advanced HTTP API.

Every call is one synchronous POST. Message fields are validated against the
gateway limits before anything goes over the wire, and the plaintext response
is parsed into GatewayResult records.
"""

import os
import json
import math
import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Union
from urllib.parse import quote, urlencode

import requests

from . import limits
from .exceptions import (
    GatewayRequestError,
    InvalidArgumentError,
    InvalidCredentialsError,
    SmsDeliveryError,
)
from .logging_config import log_sms_event

logger = logging.getLogger(__name__)


class SMSBroadcastConfig:
    """Configuration for SMS Broadcast client"""

    def __init__(self, config_path: Optional[str] = None, load: bool = True):
        if config_path is None:
            config_path = default_config_path()

        self.config_path = config_path
        self.username: Optional[str] = None
        self.password: Optional[str] = None
        self.sender_name: Optional[str] = None
        self.to_number: Optional[str] = None
        self.api_endpoint: str = limits.API_ENDPOINT

        if load:
            self._load_config()

    @classmethod
    def from_dict(cls, data: Mapping) -> "SMSBroadcastConfig":
        """Build a config from a mapping without reading any file"""
        config = cls(config_path="", load=False)
        config._apply(data)
        return config

    def _load_config(self):
        """Load configuration from file, then apply environment overrides"""
        if not os.path.exists(self.config_path):
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, 'r') as f:
            config_data = json.load(f)

        if not isinstance(config_data, dict):
            raise ValueError(f"Config file must contain a JSON object: {self.config_path}")

        self._apply(config_data)

    def _apply(self, config_data: Mapping):
        self.username = config_data.get('username')
        self.password = config_data.get('password')
        self.sender_name = config_data.get('sender_name')
        self.to_number = config_data.get('to_number')
        self.api_endpoint = config_data.get('api_endpoint') or limits.API_ENDPOINT

        # Environment overrides the file
        self.username = os.environ.get("SMSBROADCAST_USERNAME", self.username)
        self.password = os.environ.get("SMSBROADCAST_PASSWORD", self.password)
        self.sender_name = os.environ.get("SMSBROADCAST_SENDER", self.sender_name)

    def as_dict(self) -> Dict[str, Optional[str]]:
        """Mapping accepted by SMSBroadcastClient"""
        return {
            'username': self.username,
            'password': self.password,
            'sender_name': self.sender_name,
            'to_number': self.to_number,
            'api_endpoint': self.api_endpoint,
        }


def default_config_path() -> str:
    """Resolve the config path from SMSBROADCAST_CONFIG or XDG defaults"""
    config_path = os.environ.get("SMSBROADCAST_CONFIG")
    if config_path:
        return config_path
    return os.path.join(default_config_dir(), "config.json")


def default_config_dir() -> str:
    """Get the default configuration directory following XDG standards"""
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return os.path.join(xdg_config_home, "smsbroadcast")

    home = os.environ.get("HOME")
    if home:
        return os.path.join(home, ".config", "smsbroadcast")

    return os.path.join(os.getcwd(), ".config", "smsbroadcast")


@dataclass(frozen=True)
class GatewayResult:
    """
    One line of a send response.

    status: OK (accepted), BAD (invalid, eg. a bad number) or ERROR.
    receiving_number: the recipient, in international format (614xxxxxxxx)
        when the gateway recognised it, else as submitted.
    response: the gateway's reference number for the SMS, or the reason it
        was rejected.
    """

    status: str
    receiving_number: str
    response: str

    def as_dict(self) -> Dict[str, str]:
        return {
            'status': self.status,
            'receiving_number': self.receiving_number,
            'response': self.response,
        }


class SMSBroadcastClient:
    """Client for the SMS Broadcast advanced API"""

    def __init__(self, configuration: Union[Mapping, SMSBroadcastConfig], session=None):
        self.username = ''
        self.password = ''

        # Sender id shown to recipients. Letters or a mobile number, up to 11
        # characters, no punctuation or spaces. Empty uses the account's
        # 2-way number.
        self.sender = ''

        # Numbers as 04xxxxxxxx, 614xxxxxxxx or 4xxxxxxxx, digits only
        self.recipients: List[str] = []
        self.message = ''

        # Parts a long message may be split into. None means work it out
        # from the message length in send().
        self.maxsplit: Optional[int] = None

        # Caller reference for tracking, up to 20 characters
        self.ref = ''

        self.api_endpoint = limits.API_ENDPOINT
        self._session = session
        self._owns_session = session is None

        self.set_authentication_credentials(configuration)

    def set_authentication_credentials(self, configuration: Union[Mapping, SMSBroadcastConfig]):
        """Apply username, password and optional sender_name from configuration"""
        if isinstance(configuration, SMSBroadcastConfig):
            configuration = configuration.as_dict()

        if not configuration.get('username'):
            raise InvalidCredentialsError('Username is not Specified.')

        if not configuration.get('password'):
            raise InvalidCredentialsError('Password is not Specified.')

        if configuration.get('sender_name') is not None:
            self.set_sender_name(configuration['sender_name'])

        self.username = configuration['username']
        self.password = configuration['password']
        self.api_endpoint = configuration.get('api_endpoint') or limits.API_ENDPOINT

    def set_sender_name(self, sender_name: str):
        if not isinstance(sender_name, str):
            raise InvalidArgumentError('Sender name must be a string.')

        self.sender = sender_name

    def add_recipient(self, number: str):
        if not isinstance(number, str):
            raise InvalidArgumentError('Recipient mobile number must be a string.')

        self.recipients.append(number)

    @property
    def session(self):
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def close(self):
        """Close the HTTP session if this client created it"""
        if self._owns_session and self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - close the HTTP session"""
        self.close()

    def compute_split_count(self, message_length: int) -> int:
        """
        Number of SMS parts needed for a message of message_length characters.

        An explicit maxsplit wins. Otherwise a message that fits in a single
        SMS is 1 part, and longer messages are split into 153 character parts.
        """
        if self.maxsplit and self.maxsplit > 0:
            return self.maxsplit

        if message_length > limits.MAX_CHARS_PER_MESSAGE_SINGLE:
            return math.ceil(message_length / limits.MAX_CHARS_PER_MESSAGE_MULTI)
        return 1

    def validate_recipients(self, recipients: List[str]):
        if not recipients:
            raise SmsDeliveryError('No valid recipients were specified.', 1)

    def validate_sender_string(self, sender: str):
        if len(sender) > limits.MAX_CHARS_SENDER:
            raise SmsDeliveryError('From string length must be less or equal to 11 characters.', 2)

    def validate_split_count(self, count: int):
        if count > limits.MAX_SMS_PER_MULTIPART:
            raise SmsDeliveryError('Cannot send a multi-part message longer than 7 SMSes.', 3)

    def validate_data(self, data: Mapping):
        """
        Check the gated fields of an outgoing request.

        Only 'to', 'from' and 'maxsplit' are checked; message and ref are
        passed to the gateway as they are.
        """
        if 'to' in data:
            self.validate_recipients(data['to'])
        if 'from' in data:
            self.validate_sender_string(data['from'])
        if 'maxsplit' in data:
            self.validate_split_count(data['maxsplit'])

    def prepare_data(self, data: Mapping) -> str:
        """URL encoded POST body for data, recipients deduplicated and comma joined"""
        prepared = dict(data)
        if 'to' in prepared:
            # Keep the first occurrence of each number, in order
            prepared['to'] = ','.join(dict.fromkeys(prepared['to']))

        return urlencode(prepared, quote_via=quote)

    def request(self, data: str) -> str:
        """POST data to the gateway and return the raw response text"""
        logger.debug(f"POST {self.api_endpoint} ({len(data)} bytes)")

        response = self.session.post(
            self.api_endpoint,
            data=data,
            headers={'Content-Type': 'application/x-www-form-urlencoded'},
        )
        response.raise_for_status()
        return response.text

    def build_gateway_response(self, result: str) -> List[List[str]]:
        """Split raw gateway text into lines, and each line into its ':' fields"""
        gateway_response = []
        for line in result.split('\n'):
            line = line.strip()
            if not line:
                continue
            gateway_response.append(line.split(':'))
        return gateway_response

    def format_gateway_response(self, gateway_response: List[List[str]]) -> List[GatewayResult]:
        """
        Map parsed lines to GatewayResult records, in gateway order.

        Fields after the second are joined back together so a failure reason
        that contains ':' is kept whole.
        """
        result = []
        for fields in gateway_response:
            status = fields[0]
            receiving_number = fields[1] if len(fields) > 1 else ''
            response = ':'.join(fields[2:])

            result.append(GatewayResult(
                status=status.strip(),
                receiving_number=receiving_number.strip(),
                response=response.strip(),
            ))
        return result

    def request_from_gateway(self, data: Mapping) -> List[List[str]]:
        """
        Send a request to the SMS gateway.

        Raises GatewayRequestError when the gateway reports a top level ERROR,
        eg. wrong username/password or a missing required parameter.
        """
        body = self.prepare_data(data)
        result = self.request(body)

        gateway_response = self.build_gateway_response(result)
        if gateway_response:
            status, _, reason = ':'.join(gateway_response[0]).partition(':')
            if status.strip() == 'ERROR':
                reason = reason.strip()
                log_sms_event('gateway_error', username=self.username, success=False, error=reason)
                raise GatewayRequestError(reason)

        return gateway_response

    def send(self) -> List[GatewayResult]:
        """
        Send the current message to every recipient.

        Returns one GatewayResult per recipient line in the gateway response.
        Nothing is sent when validation fails.
        """
        data = {
            'username': self.username,
            'password': self.password,
            'to': self.recipients,
            'from': self.sender,
            'message': self.message,
            'ref': self.ref,
        }

        data['maxsplit'] = self.compute_split_count(len(data['message']))

        try:
            self.validate_data(data)
        except SmsDeliveryError as e:
            log_sms_event('sms_rejected', username=self.username, sender=self.sender,
                          parts=data['maxsplit'], success=False, error=str(e))
            raise

        gateway_response = self.request_from_gateway(data)
        results = self.format_gateway_response(gateway_response)

        log_sms_event(
            'sms_sent',
            username=self.username,
            recipients=len(dict.fromkeys(self.recipients)),
            sender=self.sender,
            ref=self.ref,
            parts=data['maxsplit'],
            accepted=sum(1 for r in results if r.status == 'OK'),
            rejected=sum(1 for r in results if r.status != 'OK'),
        )
        return results

    def check_balance(self) -> int:
        """Return the number of SMS credits left on the account"""
        data = {
            'username': self.username,
            'password': self.password,
            'action': 'balance',
        }

        gateway_response = self.request_from_gateway(data)
        if not gateway_response or len(gateway_response[0]) < 2:
            raise GatewayRequestError('Empty balance response')

        try:
            balance = int(gateway_response[0][1].strip())
        except ValueError:
            raise GatewayRequestError(f"Unexpected balance response: {':'.join(gateway_response[0])}")

        log_sms_event('balance_checked', username=self.username, balance=balance)
        return balance


def load_config(config_path: Optional[str] = None) -> SMSBroadcastConfig:
    """
    Reads a config to get the gateway credentials and default sender

    Args:
        config_path: Path to the configuration file

    Returns:
        SMSBroadcastConfig: Configuration object
    """
    return SMSBroadcastConfig(config_path)


def send_sms(config: Union[Mapping, SMSBroadcastConfig], message: str,
             recipients: Optional[List[str]] = None, sender: Optional[str] = None,
             ref: str = '', maxsplit: Optional[int] = None) -> List[GatewayResult]:
    """
    Send an SMS message in a single request

    Args:
        config: Gateway configuration
        message: The message to send
        recipients: Recipient numbers (default: the config's to_number)
        sender: Sender id overriding the configured sender_name
        ref: Optional reference for tracking
        maxsplit: Optional cap on message parts

    Returns:
        List[GatewayResult]: One result per recipient
    """
    if recipients is None:
        to_number = config.to_number if isinstance(config, SMSBroadcastConfig) else config.get('to_number')
        recipients = [to_number] if to_number else []

    with SMSBroadcastClient(config) as client:
        if sender is not None:
            client.set_sender_name(sender)
        for number in recipients:
            client.add_recipient(number)
        client.message = message
        client.ref = ref
        client.maxsplit = maxsplit
        return client.send()


def check_balance(config: Union[Mapping, SMSBroadcastConfig]) -> int:
    """
    Check the account balance

    Args:
        config: Gateway configuration

    Returns:
        int: Remaining SMS credits
    """
    with SMSBroadcastClient(config) as client:
        return client.check_balance()
