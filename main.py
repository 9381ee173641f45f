"""Command-line interface for the userdesk dashboard and admin console."""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import anyio

from userdesk.client import UserDirectoryClient
from userdesk.config import Settings, load_settings
from userdesk.forms import DEFAULT_GROUPS, DEFAULT_ROLES
from userdesk.identity import DEFAULT_IDENTITY
from userdesk.models import MutationDraft
from userdesk.views import UserListView

logger = logging.getLogger("userdesk.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="userdesk user directory utilities")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML configuration file (default: config/userdesk.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    serve_parser = subparsers.add_parser("serve", help="Start the dashboard web service")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address for the dashboard")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for the dashboard (default: 8000)",
    )
    serve_parser.add_argument(
        "--ssl-certfile",
        default=None,
        help="Path to the TLS certificate chain in PEM format",
    )
    serve_parser.add_argument(
        "--ssl-keyfile",
        default=None,
        help="Path to the TLS private key in PEM format",
    )

    admin_parser = subparsers.add_parser(
        "admin", help="Launch the interactive administration console"
    )
    admin_parser.add_argument(
        "--identity",
        default=DEFAULT_IDENTITY,
        help=f"Identity to act as when calling the directory (default: {DEFAULT_IDENTITY})",
    )
    admin_parser.add_argument(
        "--api-url",
        default=None,
        help="Base URL of the user directory, e.g. http://localhost:3000/users",
    )
    admin_parser.add_argument(
        "--manager-id",
        default=None,
        help="Manager whose managed users are shown",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "admin"}

    # Global options may precede the subcommand.
    index = 0
    while index < len(args_list) and args_list[index] == "--config":
        index += 2
    rest = args_list[index:]

    if not rest:
        args_list = [*args_list[:index], "serve"]
    else:
        first = rest[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in rest for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = [*args_list[:index], "serve", *rest]

    return parser.parse_args(args_list)


def _load_settings(config: Optional[str]) -> Settings:
    try:
        return load_settings(Path(config).expanduser() if config else None)
    except ValueError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc


def _serve(
    *,
    settings: Settings,
    host: str,
    port: int,
    ssl_certfile: str | None,
    ssl_keyfile: str | None,
) -> None:
    from userdesk.web import create_app
    import uvicorn

    if bool(ssl_certfile) ^ bool(ssl_keyfile):
        raise SystemExit("Both --ssl-certfile and --ssl-keyfile must be provided together.")

    protocol = "https" if ssl_certfile and ssl_keyfile else "http"
    logger.info("Starting dashboard on %s://%s:%s", protocol, host, port)
    logger.info("Using user directory at %s", settings.api_base_url)

    try:
        app = create_app(settings=settings)
    except RuntimeError as exc:
        raise SystemExit(str(exc)) from exc

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="info",
        ssl_certfile=ssl_certfile,
        ssl_keyfile=ssl_keyfile,
    )


def _run_admin_cli(view: UserListView) -> None:
    """Provide an interactive console over the user directory."""

    print("userdesk Administration Console")
    print("Press Ctrl+C at any time to exit.\n")

    anyio.run(view.load)
    print(f"Acting as identity {view.identity} against {view.client.base_url}.\n")

    try:
        while True:
            print("Select an option:")
            print("  1) List users")
            print("  2) Create a user")
            print("  3) Edit a user")
            print("  4) Delete a user")
            print("  5) Show managed users")
            print("  6) Switch identity")
            print("  7) Exit")

            choice = input("Enter choice [1-7]: ").strip()

            if choice == "1":
                anyio.run(view.refresh)
                _list_users(view)
            elif choice == "2":
                _create_user(view)
            elif choice == "3":
                _edit_user(view)
            elif choice == "4":
                _delete_user(view)
            elif choice == "5":
                _show_managed_users(view)
            elif choice == "6":
                _switch_identity(view)
            elif choice == "7":
                print("Goodbye!")
                return
            else:
                print("Invalid selection. Please choose a number from the menu.\n")

            print()
    except KeyboardInterrupt:
        print("\nExiting administration console.")
    finally:
        view.unmount()


def _prompt_with_default(label: str, default: str) -> str:
    raw = input(f"{label} [{default}]: ").strip()
    return raw or default


def _list_users(view: UserListView) -> None:
    if view.error:
        print(f"Error: {view.error}")
    if not view.users:
        print("No users to display.")
        return

    print(f"{len(view.users)} user(s) found:")
    print(f"{'ID':>6}  {'Name':<24}  {'Roles':<24}  Groups")
    print("-" * 80)
    for user in view.users:
        print(f"{user.id:>6}  {user.name:<24}  {', '.join(user.roles):<24}  {', '.join(user.groups)}")


def _create_user(view: UserListView) -> None:
    print(f"\nCreate a new user as identity {view.identity} (leave the name blank to cancel).")
    name = input("Name: ").strip()
    if not name:
        print("User creation cancelled.")
        return

    draft = MutationDraft(
        name=name,
        roles_text=_prompt_with_default("Roles (comma-separated)", DEFAULT_ROLES),
        groups_text=_prompt_with_default("Groups (comma-separated)", DEFAULT_GROUPS),
    )
    anyio.run(view.submit_create, draft)
    print(view.create_form.status)


def _edit_user(view: UserListView) -> None:
    user_id = input("User ID to edit: ").strip()
    if not user_id:
        return
    try:
        form = view.begin_edit(user_id)
    except KeyError:
        print(f"User {user_id} is not in the current list. Refresh the list and try again.")
        return

    print("Press Enter to keep the current value.")
    while True:
        draft = MutationDraft(
            name=_prompt_with_default("Name", form.draft.name),
            roles_text=_prompt_with_default("Roles (comma-separated)", form.draft.roles_text),
            groups_text=_prompt_with_default("Groups (comma-separated)", form.draft.groups_text),
        )
        updated = anyio.run(view.submit_edit, draft)
        print(form.status)
        if updated is not None:
            return
        retry = input("Correct the values and try again? [y/N]: ").strip().lower()
        if retry not in {"y", "yes"}:
            view.cancel_edit()
            print("Edit cancelled.")
            return


def _confirm(prompt: str) -> bool:
    return input(f"{prompt} [y/N]: ").strip().lower() in {"y", "yes"}


def _delete_user(view: UserListView) -> None:
    user_id = input("User ID to delete: ").strip()
    if not user_id:
        return
    outcome = anyio.run(view.request_delete, user_id, _confirm)
    if not outcome.confirmed:
        print("Deletion cancelled.")
    elif outcome.alert:
        print(outcome.alert)
    else:
        print(f"Deleted user {user_id}.")


def _show_managed_users(view: UserListView) -> None:
    if not view.managed_users:
        print("No users managed or manager is not an ADMIN.")
        return
    print(f"Users managed by {view.manager_id}:")
    for user in view.managed_users:
        print(f"- {user.name} (ID: {user.id}, Groups: {', '.join(user.groups)})")


def _switch_identity(view: UserListView) -> None:
    identity = input("New identity: ").strip()
    changed = anyio.run(view.change_identity, identity)
    if changed:
        print(f"Now acting as identity {view.identity}.")
        if view.error:
            print(f"Error: {view.error}")
    else:
        print(f"Already acting as identity {view.identity}.")


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    settings = _load_settings(args.config)

    if args.command == "serve":
        _serve(
            settings=settings,
            host=args.host,
            port=args.port,
            ssl_certfile=args.ssl_certfile,
            ssl_keyfile=args.ssl_keyfile,
        )
    elif args.command == "admin":
        client = UserDirectoryClient(
            args.api_url or settings.api_base_url,
            timeout=settings.request_timeout,
            verify=settings.verify_tls,
        )
        view = UserListView(
            client,
            args.identity,
            manager_id=args.manager_id or settings.manager_id,
        )
        _run_admin_cli(view)


if __name__ == "__main__":
    main()
