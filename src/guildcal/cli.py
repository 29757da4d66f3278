"""Command-line interface for managing guild scheduled events."""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import click

from guildcal.client import Client, Guild
from guildcal.config import ConfigError, GuildcalConfig, load_config
from guildcal.core.logging import configure_logging, set_guild_context
from guildcal.errors import GuildcalError
from guildcal.models import ScheduledEvent, Subscriber

DEFAULT_CONFIG_PATH = Path("guildcal.toml")


def _event_to_payload(event: ScheduledEvent) -> dict[str, Any]:
    payload = event.model_dump(mode="json")
    payload["url"] = event.url
    return payload


def _subscriber_to_payload(subscriber: Subscriber) -> dict[str, Any]:
    return {
        "event_id": subscriber.event_id,
        "user": subscriber.user.model_dump(mode="json"),
        "member": subscriber.member.model_dump(mode="json") if subscriber.member else None,
    }


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, sort_keys=True))


def _run(ctx: click.Context, action: Callable[[Guild], Awaitable[Any]]) -> Any:
    """Build a client for the selected guild, run *action*, and close the client."""
    config: GuildcalConfig = ctx.obj["config"]
    guild_id: str = ctx.obj["guild_id"]

    async def _main() -> Any:
        set_guild_context(guild_id)
        async with Client.from_config(config) as client:
            return await action(client.guild(guild_id))

    try:
        return asyncio.run(_main())
    except GuildcalError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to guildcal.toml (or the directory containing it)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path) -> None:
    """guildcal: manage guild scheduled events from the command line."""
    try:
        config = load_config(config_path) if config_path.exists() else GuildcalConfig()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    log_file = Path(config.logging.file) if config.logging.file else None
    configure_logging(level=config.logging.level, fmt=config.logging.format, log_file=log_file)
    ctx.obj = {"config": config}


@cli.group()
@click.option("--guild", "guild_id", required=True, help="Guild id owning the events")
@click.pass_context
def events(ctx: click.Context, guild_id: str) -> None:
    """Scheduled event commands."""
    ctx.obj["guild_id"] = guild_id


@events.command("list")
@click.option("--user-count/--no-user-count", default=True, help="Include subscriber counts")
@click.pass_context
def list_events(ctx: click.Context, user_count: bool) -> None:
    """List every scheduled event of the guild."""
    fetched = _run(ctx, lambda guild: guild.scheduled_events.fetch(with_user_count=user_count))
    _echo_json([_event_to_payload(event) for event in fetched.values()])


@events.command("get")
@click.argument("event_id")
@click.pass_context
def get_event(ctx: click.Context, event_id: str) -> None:
    """Show one scheduled event."""
    event = _run(ctx, lambda guild: guild.scheduled_events.fetch(event_id, force=True))
    _echo_json(_event_to_payload(event))


@events.command("create")
@click.option("--name", required=True)
@click.option("--start", "start", required=True, help="ISO-8601 start time")
@click.option("--end", "end", default=None, help="ISO-8601 end time")
@click.option("--privacy", default="guild_only", show_default=True)
@click.option(
    "--type",
    "entity_type",
    type=click.Choice(["stage_instance", "voice", "external"], case_sensitive=False),
    required=True,
)
@click.option("--channel", default=None, help="Voice or stage channel id")
@click.option("--location", default=None, help="Location for external events")
@click.option("--description", default=None)
@click.option("--image", type=click.Path(exists=True, path_type=Path), default=None)
@click.option("--reason", default=None, help="Audit log reason")
@click.pass_context
def create_event(
    ctx: click.Context,
    name: str,
    start: str,
    end: str | None,
    privacy: str,
    entity_type: str,
    channel: str | None,
    location: str | None,
    description: str | None,
    image: Path | None,
    reason: str | None,
) -> None:
    """Create a scheduled event."""
    options: dict[str, Any] = {
        "name": name,
        "scheduled_start_time": start,
        "privacy_level": privacy,
        "entity_type": entity_type,
    }
    optional = {
        "scheduled_end_time": end,
        "channel": channel,
        "description": description,
        "image": image,
        "reason": reason,
    }
    options.update({key: value for key, value in optional.items() if value is not None})
    if location is not None:
        options["entity_metadata"] = {"location": location}

    event = _run(ctx, lambda guild: guild.scheduled_events.create(options))
    _echo_json(_event_to_payload(event))


@events.command("edit")
@click.argument("event_id")
@click.option("--name", default=None)
@click.option("--start", "start", default=None, help="ISO-8601 start time")
@click.option("--end", "end", default=None, help="ISO-8601 end time")
@click.option("--clear-end", is_flag=True, help="Remove the end time")
@click.option("--status", default=None, help="scheduled, active, completed, or canceled")
@click.option("--channel", default=None, help="Voice or stage channel id")
@click.option("--clear-channel", is_flag=True, help="Remove the channel")
@click.option("--location", default=None)
@click.option("--description", default=None)
@click.option("--reason", default=None, help="Audit log reason")
@click.pass_context
def edit_event(
    ctx: click.Context,
    event_id: str,
    name: str | None,
    start: str | None,
    end: str | None,
    clear_end: bool,
    status: str | None,
    channel: str | None,
    clear_channel: bool,
    location: str | None,
    description: str | None,
    reason: str | None,
) -> None:
    """Edit a scheduled event. Options left out are not changed."""
    if end is not None and clear_end:
        raise click.UsageError("--end and --clear-end are mutually exclusive")
    if channel is not None and clear_channel:
        raise click.UsageError("--channel and --clear-channel are mutually exclusive")

    supplied = {
        "name": name,
        "scheduled_start_time": start,
        "scheduled_end_time": end,
        "status": status,
        "channel": channel,
        "description": description,
        "reason": reason,
    }
    options: dict[str, Any] = {key: value for key, value in supplied.items() if value is not None}
    if clear_end:
        options["scheduled_end_time"] = None
    if clear_channel:
        options["channel"] = None
    if location is not None:
        options["entity_metadata"] = {"location": location}

    event = _run(ctx, lambda guild: guild.scheduled_events.edit(event_id, options))
    _echo_json(_event_to_payload(event))


@events.command("delete")
@click.argument("event_id")
@click.pass_context
def delete_event(ctx: click.Context, event_id: str) -> None:
    """Delete a scheduled event."""
    _run(ctx, lambda guild: guild.scheduled_events.delete(event_id))
    click.echo(f"Deleted scheduled event {event_id}")


@events.command("subscribers")
@click.argument("event_id")
@click.option("--limit", type=click.IntRange(1, 100), default=None)
@click.option("--with-member", is_flag=True, help="Include guild member data")
@click.option("--before", default=None, help="Only users before this user id")
@click.option("--after", default=None, help="Only users after this user id")
@click.pass_context
def list_subscribers(
    ctx: click.Context,
    event_id: str,
    limit: int | None,
    with_member: bool,
    before: str | None,
    after: str | None,
) -> None:
    """List one page of an event's subscribers."""
    subscribers = _run(
        ctx,
        lambda guild: guild.scheduled_events.fetch_subscribers(
            event_id,
            limit=limit,
            with_member=with_member or None,
            before=before,
            after=after,
        ),
    )
    _echo_json([_subscriber_to_payload(subscriber) for subscriber in subscribers.values()])
