import argparse
import json
import logging
import os
import sys
from typing import Any, List, Optional

from .config import Settings, load_settings
from .ic_client import InControlClient, InControlError
from .logging_config import configure_logging, is_valid_level
from .models import DeviceListMode
from .storage import save_devices, save_json

logger = logging.getLogger(__name__)


def _add_save_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--save",
        action="store_true",
        help="write the result to the configured output directory instead of stdout",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="incontrol",
        description="Query organizations and devices from Peplink InControl 2.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("token", help="request an access token and print the response")
    orgs = sub.add_parser("orgs", help="list organizations")
    _add_save_flag(orgs)

    devices = sub.add_parser("devices", help="list devices of an organization")
    devices.add_argument("org_id")
    devices.add_argument(
        "--mode",
        choices=[m.value for m in DeviceListMode],
        default=DeviceListMode.BASIC.value,
    )
    _add_save_flag(devices)

    device = sub.add_parser("device", help="show a single device")
    device.add_argument("org_id")
    device.add_argument("device_id")
    _add_save_flag(device)

    return parser


def _emit(result: Any) -> None:
    if isinstance(result, str):
        sys.stdout.write(result)
        if not result.endswith("\n"):
            sys.stdout.write("\n")
    else:
        print(json.dumps(result, indent=2))


def _run(args: argparse.Namespace, settings: Settings, client: InControlClient) -> int:
    token_payload = client.request_token(settings.client_id, settings.client_secret)

    if args.command == "token":
        _emit(token_payload)
        return 0

    access_token = token_payload.get("access_token") if isinstance(token_payload, dict) else None
    if not access_token:
        logger.error("Error: token response did not contain an access_token")
        return 1

    if args.command == "orgs":
        result: Any = client.list_organizations(access_token)
    elif args.command == "devices":
        result = client.list_devices(access_token, args.org_id, args.mode)
    else:
        result = client.get_device(access_token, args.org_id, args.device_id)

    if not args.save:
        _emit(result)
        return 0

    if args.command == "devices":
        path = save_devices(settings.output_dir, args.org_id, result, args.mode)
    elif args.command == "orgs":
        path = save_json(settings.output_dir, "organizations", result)
    else:
        path = save_json(settings.output_dir, f"{args.org_id}_device_{args.device_id}", result)
    logger.info("Result written to %s", path)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    # Configure logging early so load_settings() warnings/errors are visible.
    # Logs go to stderr so stdout carries only command output.
    early_level = os.getenv("LOG_LEVEL", "INFO")
    configure_logging(early_level if is_valid_level(early_level) else "INFO", stream=sys.stderr)

    try:
        settings = load_settings()
    except RuntimeError as exc:
        logger.error("Error: %s", exc)
        return 1

    configure_logging(settings.log_level, log_dir=settings.log_dir, stream=sys.stderr)

    with settings.make_client() as client:
        try:
            return _run(args, settings, client)
        except InControlError:
            # Already logged by the client.
            return 1
        except (RuntimeError, OSError) as exc:
            logger.error("Error: %s", exc)
            return 1


if __name__ == "__main__":
    sys.exit(main())
