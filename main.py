# main.py

"""Entry point for the classifieds command-line client."""

import argparse
import asyncio
import logging
import sys

from classifieds.config.logging_config import setup_logging
from classifieds.config.settings import Settings

logger = logging.getLogger("classifieds.main")


def _add_listing_fields(parser: argparse.ArgumentParser) -> None:
    """Options shared by ``post`` and ``edit``."""
    parser.add_argument("--title", default=None, help="Listing title.")
    parser.add_argument(
        "--description", default=None, help="Listing description."
    )
    parser.add_argument(
        "--price",
        default=None,
        help="Price; leave empty or 0 for a free item.",
    )
    parser.add_argument("--location", default=None, help="Location.")
    parser.add_argument(
        "--email",
        default=None,
        dest="contact_email",
        help="Contact email (defaults to your account email on post).",
    )
    parser.add_argument(
        "--phone", default=None, dest="contact_phone", help="Contact phone."
    )


def _add_listing_address(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("category", help="Category key, e.g. cars_trucks.")
    parser.add_argument("id", type=int, help="Listing id.")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="classifieds",
        description="Command-line client for the classifieds marketplace.",
    )
    parser.add_argument(
        "--api-url",
        default=Settings.API_URL,
        dest="api_url",
        help=f"Backend base URL (default: {Settings.API_URL}).",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="table",
        dest="output_format",
        help="Output format for listings and categories (default: table).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("categories", help="List categories.")

    list_parser = sub.add_parser("list", help="List listings in a category.")
    list_parser.add_argument("category", help="Category key.")

    show_parser = sub.add_parser("show", help="Show a single listing.")
    _add_listing_address(show_parser)

    post_parser = sub.add_parser("post", help="Post a new listing.")
    post_parser.add_argument("category", help="Category key.")
    _add_listing_fields(post_parser)

    edit_parser = sub.add_parser("edit", help="Edit one of your listings.")
    _add_listing_address(edit_parser)
    _add_listing_fields(edit_parser)

    delete_parser = sub.add_parser(
        "delete", help="Permanently delete one of your listings."
    )
    _add_listing_address(delete_parser)
    delete_parser.add_argument(
        "-y", "--yes", action="store_true", help="Skip the confirmation."
    )

    moderate_parser = sub.add_parser(
        "moderate-delete",
        help="Redact a listing (moderators and admins).",
    )
    _add_listing_address(moderate_parser)
    moderate_parser.add_argument(
        "-y", "--yes", action="store_true", help="Skip the confirmation."
    )

    login_parser = sub.add_parser("login", help="Log in.")
    login_parser.add_argument("email")
    login_parser.add_argument(
        "--password", default=None, help="Prompted for when omitted."
    )

    signup_parser = sub.add_parser("signup", help="Create an account.")
    signup_parser.add_argument("email")
    signup_parser.add_argument("name")
    signup_parser.add_argument("--password", default=None)
    signup_parser.add_argument(
        "--confirm-password", default=None, dest="confirm_password"
    )

    sub.add_parser("logout", help="Forget the cached session.")
    sub.add_parser("whoami", help="Show the logged-in account.")
    sub.add_parser(
        "admin-users", help="List all users and their posts (staff only)."
    )
    return parser


def main() -> None:
    """Parse arguments, run one command and exit with its status."""
    log_file = setup_logging()
    logger.info("classifieds starting, log file: %s", log_file)

    args = _build_parser().parse_args()

    from classifieds.cli.runner import run_command

    try:
        exit_code = asyncio.run(run_command(args))
    except Exception:
        logger.critical(
            "Fatal error while running '%s'", args.command, exc_info=True
        )
        raise
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
