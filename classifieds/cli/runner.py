# classifieds/cli/runner.py

"""Headless command runner: one backend interaction per invocation."""

import argparse
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt
from rich.table import Table

from classifieds.cli.formatting import (
    format_category_name,
    format_price,
    format_timestamp,
)
from classifieds.client.admin_client import AdminClient
from classifieds.client.auth_client import AuthClient
from classifieds.client.errors import ActionNotPermitted, ClassifiedsError
from classifieds.client.listing_client import ListingClient
from classifieds.client.transport import RetryTransport
from classifieds.models.category import Category
from classifieds.models.listing import AnyListing, Listing, ListingDraft
from classifieds.services.authorization import can_moderate
from classifieds.services.lifecycle import ListingLifecycle
from classifieds.storage.session_store import SessionStore

logger = logging.getLogger("classifieds.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)

Handler = Callable[
    [argparse.Namespace, RetryTransport, SessionStore], Awaitable[int]
]


def make_confirm(assume_yes: bool) -> Callable[[str], bool]:
    """Build the confirmation callback for destructive actions."""
    if assume_yes:
        return lambda _prompt: True

    def _ask(prompt: str) -> bool:
        return Confirm.ask(
            f"[bold red]{prompt}[/bold red]", console=_err, default=False
        )

    return _ask


def _listing_to_dict(listing: AnyListing) -> dict[str, object]:
    """Serialise a listing for JSON output."""
    return {
        "id": listing.id,
        "category": listing.category,
        "title": listing.title,
        "description": listing.description,
        "price": listing.price,
        "location": listing.location,
        "contact_email": listing.contact_email,
        "contact_phone": listing.contact_phone,
        "owner_user_id": listing.owner_user_id,
        "created_at": format_timestamp(listing.created_at),
        "last_edited_at": format_timestamp(listing.last_edited_at),
        "deleted_by_moderation": listing.deleted_by_moderation,
    }


def _dump_json(data: Any) -> None:
    json.dump(data, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")


def _lifecycle(
    args: argparse.Namespace,
    transport: RetryTransport,
    store: SessionStore,
) -> ListingLifecycle:
    return ListingLifecycle(
        ListingClient(transport),
        store.load(),
        make_confirm(getattr(args, "yes", False)),
    )


def _draft_from_args(
    args: argparse.Namespace, base: ListingDraft
) -> ListingDraft:
    """Overlay the command-line fields that were given onto ``base``."""
    for name in (
        "title",
        "description",
        "price",
        "location",
        "contact_email",
        "contact_phone",
    ):
        value = getattr(args, name, None)
        if value is not None:
            setattr(base, name, value)
    return base


# ── Commands ─────────────────────────────────────────────


async def cmd_categories(
    args: argparse.Namespace,
    transport: RetryTransport,
    store: SessionStore,
) -> int:
    categories: list[Category] = await ListingClient(
        transport
    ).list_categories()

    if any(c.fallback for c in categories):
        _err.print(
            "[yellow]Backend unreachable, showing default categories."
            "[/yellow]"
        )

    if args.output_format == "json":
        _dump_json(
            [
                {
                    "key": c.key,
                    "name": c.display_name,
                    "listing_count": c.listing_count,
                }
                for c in categories
            ]
        )
        return 0

    table = Table(title="Categories", title_style="bold cyan")
    table.add_column("Key", style="dim")
    table.add_column("Category")
    table.add_column("Listings", justify="right")
    for c in categories:
        table.add_row(
            escape(c.key), escape(c.display_name), str(c.listing_count)
        )
    Console().print(table)
    return 0


async def cmd_list(
    args: argparse.Namespace,
    transport: RetryTransport,
    store: SessionStore,
) -> int:
    listings = await ListingClient(transport).list_by_category(
        args.category
    )

    if args.output_format == "json":
        _dump_json([_listing_to_dict(item) for item in listings])
        return 0

    if not listings:
        _err.print("[yellow]no listings found in this category[/yellow]")
        return 0

    table = Table(
        title=format_category_name(args.category),
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Title", max_width=50)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Location")
    table.add_column("Posted", style="dim")
    for item in listings:
        table.add_row(
            str(item.id),
            escape(item.title[:50]),
            format_price(item.price),
            escape(item.location or "location not specified"),
            format_timestamp(item.created_at),
        )
    Console().print(table)
    return 0


async def cmd_show(
    args: argparse.Namespace,
    transport: RetryTransport,
    store: SessionStore,
) -> int:
    lifecycle = _lifecycle(args, transport, store)
    listing = await lifecycle.open(args.category, args.id)

    if args.output_format == "json":
        _dump_json(_listing_to_dict(listing))
        return 0

    out = Console()
    out.print(
        f"[bold]{escape(listing.title)}[/bold]  {format_price(listing.price)}"
    )
    if listing.deleted_by_moderation:
        out.print("[red]DELETED BY MODERATION[/red]")
    out.print(f"Location: {escape(listing.location or 'not specified')}")
    out.print(f"Posted:   {format_timestamp(listing.created_at)}")
    if listing.last_edited_at:
        out.print(
            f"[dim]Last edited: "
            f"{format_timestamp(listing.last_edited_at)}[/dim]"
        )
    out.print()
    out.print(escape(listing.description or "no description provided"))
    out.print()
    if not listing.deleted_by_moderation:
        email = listing.contact_email or "not provided"
        out.print(f"Email: {escape(email)}")
        if listing.contact_phone:
            out.print(f"Phone: {escape(listing.contact_phone)}")

    actions = sorted(a.value for a in lifecycle.offered_actions(listing))
    if actions:
        out.print(f"[dim]Available actions: {', '.join(actions)}[/dim]")
    return 0


async def cmd_post(
    args: argparse.Namespace,
    transport: RetryTransport,
    store: SessionStore,
) -> int:
    lifecycle = _lifecycle(args, transport, store)
    identity = store.load_identity()
    draft = _draft_from_args(
        args,
        ListingDraft(
            title="",
            contact_email=identity.email if identity else "",
        ),
    )
    listing_id = await lifecycle.post(args.category, draft)
    _err.print(f"[green]Ad posted successfully (id {listing_id}).[/green]")
    return 0


async def cmd_edit(
    args: argparse.Namespace,
    transport: RetryTransport,
    store: SessionStore,
) -> int:
    lifecycle = _lifecycle(args, transport, store)
    listing = await lifecycle.open(args.category, args.id)
    if not isinstance(listing, Listing):
        _err.print("[red]This listing was removed by moderation.[/red]")
        return 1

    patch = _draft_from_args(args, ListingDraft.from_listing(listing))
    updated = await lifecycle.edit(listing, patch)
    _err.print(
        f"[green]Post updated (last edited "
        f"{format_timestamp(updated.last_edited_at)}).[/green]"
    )
    return 0


async def cmd_delete(
    args: argparse.Namespace,
    transport: RetryTransport,
    store: SessionStore,
) -> int:
    lifecycle = _lifecycle(args, transport, store)
    listing = await lifecycle.open(args.category, args.id)
    if not await lifecycle.delete(listing):
        _err.print("[dim]Cancelled.[/dim]")
        return 1
    _err.print("[green]Post deleted successfully![/green]")
    return 0


async def cmd_moderate_delete(
    args: argparse.Namespace,
    transport: RetryTransport,
    store: SessionStore,
) -> int:
    lifecycle = _lifecycle(args, transport, store)
    listing = await lifecycle.open(args.category, args.id)
    if await lifecycle.moderate_delete(listing) is None:
        _err.print("[dim]Cancelled.[/dim]")
        return 1
    _err.print(
        "[green]Post has been successfully deleted and redacted.[/green]"
    )
    return 0


async def cmd_login(
    args: argparse.Namespace,
    transport: RetryTransport,
    store: SessionStore,
) -> int:
    password = args.password or Prompt.ask(
        "Password", password=True, console=_err
    )
    session = await AuthClient(transport, store).login(args.email, password)
    _err.print(f"[green]Welcome, {session.user.name}![/green]")
    return 0


async def cmd_signup(
    args: argparse.Namespace,
    transport: RetryTransport,
    store: SessionStore,
) -> int:
    password = args.password or Prompt.ask(
        "Password", password=True, console=_err
    )
    confirm_password = args.confirm_password or Prompt.ask(
        "Confirm password", password=True, console=_err
    )
    await AuthClient(transport, store).signup(
        args.email, password, confirm_password, args.name
    )
    _err.print(
        "[green]Account created successfully! "
        "Please login with your new account.[/green]"
    )
    return 0


async def cmd_logout(
    args: argparse.Namespace,
    transport: RetryTransport,
    store: SessionStore,
) -> int:
    AuthClient(transport, store).logout()
    _err.print("[dim]Logged out.[/dim]")
    return 0


async def cmd_whoami(
    args: argparse.Namespace,
    transport: RetryTransport,
    store: SessionStore,
) -> int:
    user = store.load_identity()
    if user is None:
        _err.print("[dim]Browsing anonymously.[/dim]")
        return 1
    Console().print(f"{user.name} <{user.email}> ({user.role.value})")
    return 0


async def cmd_admin_users(
    args: argparse.Namespace,
    transport: RetryTransport,
    store: SessionStore,
) -> int:
    session = store.load()
    if session is not None and not can_moderate(session):
        raise ActionNotPermitted(
            "Access denied. You must be an administrator or moderator "
            "to view this page."
        )
    users = await AdminClient(transport).list_users_with_posts(
        session.credential if session else None
    )
    if not users:
        _err.print("[yellow]No users found in the system.[/yellow]")
        return 0

    out = Console()
    for entry in users:
        table = Table(
            title=(
                f"User #{entry.user.id} - {entry.user.name} "
                f"({entry.user.role.value}, joined "
                f"{format_timestamp(entry.joined_at)})"
            ),
            title_style="bold",
        )
        table.add_column("Category")
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Title", max_width=50)
        table.add_column("Price", justify="right")
        table.add_column("Status")
        for post in entry.posts:
            table.add_row(
                format_category_name(post.category),
                str(post.id),
                escape(post.title[:50]),
                format_price(post.price),
                "[red]DELETED[/red]" if post.deleted_by_moderation else "",
            )
        out.print(table)
    return 0


COMMANDS: dict[str, Handler] = {
    "categories": cmd_categories,
    "list": cmd_list,
    "show": cmd_show,
    "post": cmd_post,
    "edit": cmd_edit,
    "delete": cmd_delete,
    "moderate-delete": cmd_moderate_delete,
    "login": cmd_login,
    "signup": cmd_signup,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
    "admin-users": cmd_admin_users,
}


async def run_command(args: argparse.Namespace) -> int:
    """Run one sub-command and return an exit code (0=ok, 1=fail).

    Every client failure is reported inline; none of them aborts the
    process with a traceback.
    """
    handler = COMMANDS[args.command]
    store = SessionStore()
    async with RetryTransport(base_url=args.api_url) as transport:
        try:
            return await handler(args, transport, store)
        except ClassifiedsError as exc:
            logger.warning(
                "Command '%s' failed: %s (%s)",
                args.command,
                exc.user_message,
                type(exc).__name__,
            )
            _err.print(f"[red]Error: {exc.user_message}[/red]")
            return 1
