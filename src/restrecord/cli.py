"""CLI entrypoint for restrecord."""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from restrecord.api.driver import Api
from restrecord.api.models import ApiResponse, UploadProgress
from restrecord.config.loader import DEFAULT_CONFIG_PATH, load_api_config
from restrecord.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

METHODS = ["get", "post", "patch", "delete"]


def _parse_params(pairs: Optional[List[str]]) -> Dict[str, Any]:
    """
    Parse repeated key=value arguments.

    Values are read as YAML scalars, so 5 becomes an int and true a bool.

    Raises:
        ValueError: If an argument has no '='
    """
    params: Dict[str, Any] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ValueError(f"Expected key=value, got: {pair}")
        key, value = pair.split("=", 1)
        params[key.strip()] = yaml.safe_load(value) if value else ""
    return params


def _build_api(args: argparse.Namespace) -> Api:
    api = Api.from_config(load_api_config(Path(args.config)))
    if args.token:
        api.set_token(args.token)
    return api


def _print_response(response: ApiResponse) -> int:
    print(json.dumps(response.to_envelope(), indent=2, default=str))
    return 0 if response.is_successful() else 1


def cmd_config(args: argparse.Namespace) -> int:
    """Print the effective API configuration."""
    try:
        config = load_api_config(Path(args.config))
    except FileNotFoundError as e:
        logger.error(f"Config not found: {e}")
        print(f"Error: Config file not found. Create {args.config}")
        return 1

    data = config.model_dump()
    if data.get("token"):
        data["token"] = "***"
    print(f"{'Endpoint root':<16} {config.endpoint_root}")
    for key, value in data.items():
        print(f"{key:<16} {value}")
    return 0


def cmd_call(args: argparse.Namespace) -> int:
    """Issue a single API call and print the response envelope."""
    params = _parse_params(args.param)
    with _build_api(args) as api:
        method = args.method.lower()
        if method == "get":
            response = api.get(args.endpoint, params)
        elif method == "post":
            response = api.post(args.endpoint, params)
        elif method == "patch":
            response = api.patch(args.endpoint, params)
        else:
            response = api.delete(args.endpoint, params or None)
    return _print_response(response)


def cmd_upload(args: argparse.Namespace) -> int:
    """Upload a file with optional extra form fields."""
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: File not found: {path}")
        return 1

    params = _parse_params(args.param)

    def report(progress: UploadProgress) -> None:
        print(f"\rUploading {path.name}: {progress.percent:6.2f}%", end="", file=sys.stderr)

    with _build_api(args) as api:
        api.set_upload_handler(report)
        response = api.upload(args.endpoint, path, params)
    print(file=sys.stderr)
    return _print_response(response)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entrypoint."""
    parser = argparse.ArgumentParser(
        prog="restrecord",
        description="Call a REST API through the restrecord driver",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=str(DEFAULT_CONFIG_PATH),
        help=f"Path to the YAML config (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # config command
    config_parser = subparsers.add_parser("config", help="Show the effective API configuration")
    config_parser.set_defaults(func=cmd_config)

    # call command
    call_parser = subparsers.add_parser("call", help="Issue a GET/POST/PATCH/DELETE request")
    call_parser.add_argument("method", type=str.lower, choices=METHODS, help="HTTP method")
    call_parser.add_argument("endpoint", type=str, help="Endpoint relative to base/version, e.g. users/5")
    call_parser.add_argument(
        "-p",
        "--param",
        action="append",
        help="Query parameter (GET) or body field, as key=value. Repeatable.",
    )
    call_parser.add_argument("--token", type=str, help="Override the configured token")
    call_parser.set_defaults(func=cmd_call)

    # upload command
    upload_parser = subparsers.add_parser("upload", help="Upload a file as multipart form data")
    upload_parser.add_argument("endpoint", type=str, help="Endpoint relative to base/version")
    upload_parser.add_argument("file", type=str, help="Path of the file to upload")
    upload_parser.add_argument(
        "-p",
        "--param",
        action="append",
        help="Extra form field as key=value. Repeatable.",
    )
    upload_parser.add_argument("--token", type=str, help="Override the configured token")
    upload_parser.set_defaults(func=cmd_upload)

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if not args.command:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except Exception as e:
        logger.error(f"Error running command '{args.command}': {e}", exc_info=True)
        raise


if __name__ == "__main__":
    sys.exit(main())
