import argparse
import os
import sys
import json

import requests

from .exceptions import SMSBroadcastError
from .logging_config import setup_logging
from .sms_api_caller import SMSBroadcastConfig, SMSBroadcastClient, default_config_dir

# Errors reported to the user instead of a traceback
CLI_ERRORS = (SMSBroadcastError, requests.RequestException, OSError, ValueError)


def write_file(path: str, data: bytes, mode: int = 0o600) -> None:
    with open(path, 'wb') as f:
        f.write(data)
    try:
        os.chmod(path, mode)
    except OSError:
        # chmod is a no-op on non-POSIX filesystems
        pass


def cmd_send_sms(args: argparse.Namespace) -> int:
    """Send an SMS message"""
    try:
        config = SMSBroadcastConfig(args.config)

        recipients = args.to or ([config.to_number] if config.to_number else [])

        with SMSBroadcastClient(config) as client:
            if args.sender is not None:
                client.set_sender_name(args.sender)
            for number in recipients:
                client.add_recipient(number)
            client.message = args.message
            client.ref = args.ref
            client.maxsplit = args.maxsplit

            results = client.send()

        if args.verbose:
            print(json.dumps([r.as_dict() for r in results], indent=2))
        else:
            for r in results:
                print(f"{r.status} {r.receiving_number} {r.response}")

        return 0 if results and all(r.status == 'OK' for r in results) else 1
    except CLI_ERRORS as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_balance(args: argparse.Namespace) -> int:
    """Print the remaining SMS credits"""
    try:
        config = SMSBroadcastConfig(args.config)
        with SMSBroadcastClient(config) as client:
            balance = client.check_balance()
        print(balance)
        return 0
    except CLI_ERRORS as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize SMS Broadcast client - creates config directory and config file"""
    config_dir = args.config_dir or default_config_dir()
    config_path = os.path.join(config_dir, "config.json")

    print(f"Initializing SMS Broadcast client in: {config_dir}")

    try:
        os.makedirs(config_dir, exist_ok=True)
    except OSError as e:
        print(f"Failed to create config directory: {e}", file=sys.stderr)
        return 1

    if os.path.exists(config_path) and not args.force:
        print(f"File already exists: {config_path}")
        print("Use --force to overwrite existing files")
        return 1

    config_data = {
        "username": args.username,
        "password": args.password,
        "sender_name": args.sender_name,
        "to_number": args.to_number,
    }

    # Remove None values
    config_data = {k: v for k, v in config_data.items() if v is not None}

    try:
        write_file(config_path, json.dumps(config_data, indent=2).encode("utf-8"), 0o600)
    except OSError as e:
        print(f"Failed to create config file: {e}", file=sys.stderr)
        return 1

    print(f"Created config file: {config_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="smsbroadcast", description="SMS Broadcast client utilities")
    p.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL env or WARNING)")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_init = sub.add_parser("init", help="Create a config file", description="Create the configuration directory and write the gateway credentials to config.json.")
    p_init.add_argument("--config-dir", help="Config directory (default: XDG_CONFIG_HOME/smsbroadcast or ~/.config/smsbroadcast)")
    p_init.add_argument("--username", required=True, help="SMS Broadcast username")
    p_init.add_argument("--password", required=True, help="SMS Broadcast password")
    p_init.add_argument("--sender-name", help="Default sender id (up to 11 characters)")
    p_init.add_argument("--to-number", help="Default recipient phone number")
    p_init.add_argument("--force", action="store_true", help="Overwrite existing files")
    p_init.set_defaults(func=cmd_init)

    p_send = sub.add_parser("send", help="Send an SMS message", description="Send an SMS message to one or more phone numbers through SMS Broadcast.")
    p_send.add_argument("message", help="Message to send")
    p_send.add_argument("--to", action="append", help="Recipient phone number, repeatable (default: to_number from config)")
    p_send.add_argument("--from", dest="sender", default=None, help="Sender id (overrides config)")
    p_send.add_argument("--ref", default="", help="Reference for tracking the message (up to 20 characters)")
    p_send.add_argument("--maxsplit", type=int, default=None, help="Maximum number of parts for long messages (default: from message length)")
    p_send.add_argument("--config", default=None, help="Config file path (default: auto-detect from config directory)")
    p_send.add_argument("--verbose", "-v", action="store_true", help="Print results as JSON (default: False)")
    p_send.set_defaults(func=cmd_send_sms)

    p_balance = sub.add_parser("balance", help="Show remaining SMS credits", description="Ask the gateway for the number of SMS credits left on the account.")
    p_balance.add_argument("--config", default=None, help="Config file path (default: auto-detect from config directory)")
    p_balance.set_defaults(func=cmd_balance)

    return p


def main(argv=None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(log_level=args.log_level)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
