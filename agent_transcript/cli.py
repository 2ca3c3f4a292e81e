#!/usr/bin/env python3
"""CLI interface for agent-transcript."""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import click

from .factories import RawEventsError, parse_raw_events
from .ingest import record_agent_turn, record_user_message
from .models import AGENT_RESPONSE_KIND, Section
from .router import classify_content, classify_message
from .store import TranscriptStore, TranscriptStoreError


def _read_events_file(events_file: Path) -> list[Any]:
    return parse_raw_events(events_file.read_text(encoding="utf-8"))


def format_section(section: Section) -> str:
    """Format a Section as a single plain-text block."""
    line = f"[{section.kind.value}] {section.content}"
    if section.metadata:
        details = ", ".join(
            f"{key}={value}"
            for key, value in section.metadata.items()
            if value is not None and key != "data"
        )
        if details:
            line += f"\n    ({details})"
    return line


def _echo_sections(sections: list[Section], as_json: bool) -> None:
    if as_json:
        click.echo(
            json.dumps(
                [section.to_dict() for section in sections],
                ensure_ascii=False,
                indent=2,
                default=str,
            )
        )
        return
    for section in sections:
        click.echo(format_section(section))


def _open_store(ctx: click.Context) -> TranscriptStore:
    return TranscriptStore(ctx.obj["db_path"])


@click.group()
@click.option(
    "--db-path",
    type=click.Path(path_type=Path),
    default=None,
    help="Transcript database (default: $AGENT_TRANSCRIPT_DB_PATH or ~/.agent-transcript/transcripts.db).",
)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug logging and show full traceback on errors.",
)
@click.pass_context
def main(ctx: click.Context, db_path: Optional[Path], debug: bool) -> None:
    """Classify and store agent conversation transcripts."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path
    ctx.obj["debug"] = debug


def _fail(ctx: click.Context, message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    if ctx.obj.get("debug"):
        import traceback

        traceback.print_exc()
    sys.exit(1)


@main.command()
@click.argument("events_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--content",
    default="",
    help="Flattened content to classify if the events are insufficient.",
)
@click.option("--json", "as_json", is_flag=True, help="Print sections as JSON.")
def classify(events_file: Path, content: str, as_json: bool) -> None:
    """Classify the raw agent events in EVENTS_FILE into sections."""
    raw = events_file.read_text(encoding="utf-8")
    sections = classify_content(
        "assistant", content, raw_events=raw, message_kind=AGENT_RESPONSE_KIND
    )
    _echo_sections(sections, as_json)


@main.command()
@click.argument("conversation_id")
@click.argument("text")
@click.pass_context
def say(ctx: click.Context, conversation_id: str, text: str) -> None:
    """Record TEXT as a user message in CONVERSATION_ID."""
    try:
        result = record_user_message(_open_store(ctx), conversation_id, text)
    except TranscriptStoreError as e:
        _fail(ctx, str(e))
        return

    if result.duplicate:
        click.echo("Duplicate message, not recorded.")
    else:
        click.echo(f"Recorded message {result.message_id}")


@main.command()
@click.argument("conversation_id")
@click.argument("events_file", type=click.Path(exists=True, path_type=Path))
@click.pass_context
def ingest(ctx: click.Context, conversation_id: str, events_file: Path) -> None:
    """Record the agent turn in EVENTS_FILE as an assistant message."""
    try:
        events = _read_events_file(events_file)
        result = record_agent_turn(_open_store(ctx), conversation_id, events)
    except (RawEventsError, TranscriptStoreError) as e:
        _fail(ctx, str(e))
        return

    if result is None:
        click.echo("Agent turn has no content, nothing recorded.")
    elif result.duplicate:
        click.echo("Duplicate message, not recorded.")
    else:
        click.echo(f"Recorded message {result.message_id}")


@main.command()
@click.argument("conversation_id")
@click.option("--json", "as_json", is_flag=True, help="Print messages as JSON.")
@click.pass_context
def show(ctx: click.Context, conversation_id: str, as_json: bool) -> None:
    """Show the messages of CONVERSATION_ID with their classified sections."""
    try:
        messages = _open_store(ctx).list_messages(conversation_id)
    except TranscriptStoreError as e:
        _fail(ctx, str(e))
        return

    if as_json:
        payload = [
            {
                "id": message.id,
                "role": message.role,
                "created_at": message.created_at,
                "sections": [s.to_dict() for s in classify_message(message)],
            }
            for message in messages
        ]
        click.echo(json.dumps(payload, ensure_ascii=False, indent=2, default=str))
        return

    if not messages:
        click.echo(f"No messages in {conversation_id}")
        return
    for message in messages:
        click.echo(f"--- {message.role} ({message.created_at})")
        _echo_sections(classify_message(message), as_json=False)


@main.command()
@click.pass_context
def conversations(ctx: click.Context) -> None:
    """List conversations, most recently updated first."""
    try:
        items = _open_store(ctx).list_conversations()
    except TranscriptStoreError as e:
        _fail(ctx, str(e))
        return

    for conversation in items:
        click.echo(f"{conversation.id}\t{conversation.name}\t{conversation.updated_at}")


if __name__ == "__main__":
    main()
