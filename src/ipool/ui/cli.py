# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from pathlib import Path
from signal import SIGINT, SIGTERM, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from ipool import __version__
from ipool.adapters.manifest import to_document
from ipool.app import apply_manifest, delete_resource, list_resources, run_operator
from ipool.config import ConfigurationError, configure_logging, get_operator_config
from ipool.domain.addresses import iter_expand
from ipool.domain.model import ResourceKind, split_key

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from ipool.domain.model import AddressRequest, Pool

log = logging.getLogger(__name__)

_STOP = threading.Event()


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Allocate addresses from IP pools")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run the reconciliation operator")
    run.add_argument(
        "--threads",
        type=int,
        default=None,
        help="Worker threads per controller (defaults to config)",
    )
    run.add_argument(
        "--resync-seconds",
        type=int,
        default=None,
        help="Seconds between full resyncs, at least 30 (defaults to config)",
    )

    apply = subparsers.add_parser("apply", help="Create or update resources from a manifest")
    apply.add_argument("file", type=Path, help="JSON document or list of documents")

    delete = subparsers.add_parser("delete", help="Request deletion of a resource")
    delete_sub = delete.add_subparsers(dest="kind", required=True)
    delete_pool = delete_sub.add_parser("pool", help="Delete a pool")
    delete_pool.add_argument("name", help="Pool name")
    delete_request = delete_sub.add_parser("request", help="Delete an address request")
    delete_request.add_argument("key", help="NAMESPACE/NAME of the request")

    show = subparsers.add_parser("show", help="Print pools and requests with status")
    show.add_argument("--json", action="store_true", help="Print manifest documents")

    expand_cmd = subparsers.add_parser("expand", help="Print the candidates of specifications")
    expand_cmd.add_argument("specs", nargs="+", help="CIDR blocks or start-end ranges")
    expand_cmd.add_argument("--avoid-buggy", action="store_true", help="Skip .0 and .255")
    expand_cmd.add_argument("--avoid-gateway", action="store_true", help="Skip .1 and .254")

    return parser.parse_args(list(argv))


def _request_key(value: str) -> str:
    try:
        namespace, name = split_key(value)
    except ValueError as exc:
        raise ValueError(f"Invalid request key: {value}") from exc
    if namespace is None:
        raise ValueError(f"Request key must be NAMESPACE/NAME, got {value!r}")
    return f"{namespace}/{name}"


def _print_resources(pools: list[Pool], requests: list[AddressRequest]) -> None:
    for pool in pools:
        status = pool.status
        print(
            f"pool {pool.name}: phase={status.phase or '-'} capacity={status.capacity} "
            f"allocatable={status.allocatable} allocated={','.join(status.allocated) or '-'}"
            + (f" reason={status.reason!r}" if status.reason else "")
        )
    for request in requests:
        status = request.status
        print(
            f"request {request.key}: pool={request.spec.pool_name} "
            f"phase={status.phase or '-'} address={status.address or '-'}"
            + (f" reason={status.reason!r}" if status.reason else "")
        )


def _run(parsed_args: argparse.Namespace) -> None:
    match parsed_args.command:
        case "run":
            config = get_operator_config(
                threads=parsed_args.threads,
                resync_seconds=parsed_args.resync_seconds,
            )
            run_operator(_STOP, config=config)
        case "apply":
            for outcome in apply_manifest(parsed_args.file):
                print(f"{outcome.kind} {outcome.key} {outcome.action}")
        case "delete":
            if parsed_args.kind == "pool":
                delete_resource(ResourceKind.POOL, parsed_args.name)
            else:
                delete_resource(ResourceKind.ADDRESS_REQUEST, _request_key(parsed_args.key))
        case "show":
            pools, requests = list_resources()
            if parsed_args.json:
                documents = [to_document(item) for item in [*pools, *requests]]
                print(json.dumps(documents, indent=2))
            else:
                _print_resources(pools, requests)
        case "expand":
            for address in iter_expand(
                parsed_args.specs,
                avoid_buggy=parsed_args.avoid_buggy,
                avoid_gateway=parsed_args.avoid_gateway,
            ):
                print(address)
        case _:
            raise ValueError(f"Unsupported command: {parsed_args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    try:
        configure_logging(level=logging.DEBUG if parsed_args.verbose else None, force=True)
    except ConfigurationError as exc:
        sys.exit(f"ipool: {exc}")

    try:
        _run(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error running %s", parsed_args.command)
        sys.exit(1)


def stop_handler(signal_received: int, _frame: FrameType | None) -> None:
    """Ask a running operator to stop gracefully."""
    log.info("Received signal %d, shutting down", signal_received)
    _STOP.set()


def entrypoint() -> None:
    load_dotenv()
    signal(SIGINT, stop_handler)
    signal(SIGTERM, stop_handler)
    main()


if __name__ == "__main__":
    entrypoint()
