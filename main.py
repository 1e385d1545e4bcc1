"""
authsync – command-line entry point.

Usage
-----
    python main.py add NAME --secret-data TEXT
    python main.py add NAME --battlenet --serial US-1234-5678-9012 --secret BASE64
    python main.py list
    python main.py code NAME [--resync]
    python main.py remove NAME

Or, if installed as a package:
    authsync code NAME

The store password is read from ``AUTHSYNC_PASSWORD`` or prompted for.
"""

import argparse
import getpass
import logging
import os
import sys
from typing import List, Optional

from core.authenticator import BATTLENET, Authenticator, get_flavor, make_synchronizer
from core.config import Settings, load_settings
from core.errors import AuthenticatorError
from core.utils import format_code
from storage.database import AuthenticatorStore

logger = logging.getLogger("authsync")


# ── Logging setup ─────────────────────────────────────────────────────────────

def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    # Keep secret handling quiet below WARNING
    logging.getLogger("core.codec").setLevel(logging.WARNING)
    logging.getLogger("core.protection").setLevel(logging.WARNING)


# ── Commands ──────────────────────────────────────────────────────────────────

def _password(confirm: bool = False) -> str:
    password = os.environ.get("AUTHSYNC_PASSWORD")
    if password:
        return password
    password = getpass.getpass("Store password: ")
    if confirm and getpass.getpass("Repeat password: ") != password:
        raise SystemExit("Passwords do not match.")
    return password


def _cmd_add(args: argparse.Namespace, store: AuthenticatorStore, settings: Settings) -> int:
    if args.battlenet:
        if not (args.serial and args.secret):
            raise SystemExit("--battlenet needs --serial and --secret.")
        auth = Authenticator.battlenet(
            args.serial, args.secret, synchronizer=make_synchronizer(BATTLENET, settings)
        )
    else:
        if not args.secret_data:
            raise SystemExit("--secret-data is required.")
        flavor = get_flavor(args.flavor)
        auth = Authenticator.from_secret_data(
            args.secret_data, flavor=flavor, synchronizer=make_synchronizer(flavor, settings)
        )
    store.add(args.name, auth, _password(confirm=True))
    print(f"Added '{args.name}' ({auth.flavor.name}, {auth.digits} digits).")
    return 0


def _cmd_list(args: argparse.Namespace, store: AuthenticatorStore, settings: Settings) -> int:
    for stored in store.list():
        print(f"{stored.name}\t{stored.flavor}")
    return 0


def _cmd_code(args: argparse.Namespace, store: AuthenticatorStore, settings: Settings) -> int:
    try:
        auth = store.load(args.name, _password(), settings)
    except KeyError:
        print(f"No authenticator named '{args.name}'.", file=sys.stderr)
        return 1
    code = auth.current_code(resync=args.resync)
    if not auth.is_synced:
        logger.warning("Server time unavailable; code computed from local time.")
    print(format_code(code) if args.group else code)
    return 0


def _cmd_remove(args: argparse.Namespace, store: AuthenticatorStore, settings: Settings) -> int:
    if not store.delete(args.name):
        print(f"No authenticator named '{args.name}'.", file=sys.stderr)
        return 1
    print(f"Removed '{args.name}'.")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="authsync", description="One-time code generator.")
    parser.add_argument("--db", help="Path to the authenticator store.")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Store a provisioned authenticator.")
    add.add_argument("name")
    add.add_argument("--secret-data", help="Encoded secret data.")
    add.add_argument("--flavor", default="standard", help="standard or battlenet.")
    add.add_argument("--battlenet", action="store_true", help="Provision from serial + base64 secret.")
    add.add_argument("--serial")
    add.add_argument("--secret")
    add.set_defaults(func=_cmd_add)

    lst = sub.add_parser("list", help="List stored authenticators.")
    lst.set_defaults(func=_cmd_list)

    code = sub.add_parser("code", help="Print the current code.")
    code.add_argument("name")
    code.add_argument("--resync", action="store_true", help="Force a server time sync.")
    code.add_argument("--group", action="store_true", help="Print the code in groups of 4.")
    code.set_defaults(func=_cmd_code)

    rm = sub.add_parser("remove", help="Delete a stored authenticator.")
    rm.add_argument("name")
    rm.set_defaults(func=_cmd_remove)
    return parser


# ── Main ──────────────────────────────────────────────────────────────────────

def main(argv: Optional[List[str]] = None) -> int:
    settings = load_settings()
    _configure_logging(settings)
    args = _build_parser().parse_args(argv)

    store = AuthenticatorStore(args.db or settings.db_path)
    try:
        return args.func(args, store, settings)
    except (AuthenticatorError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
