"""Output formatting utilities for the CLI.

This module turns store records into text tables or JSON-ready dictionaries
for display on stdout.
"""

import json
from dataclasses import asdict
from datetime import datetime
from typing import Any

from messaging_core.store import Message, Reaction, ReactionCount, ReactionType


def print_separator(char: str = "=", width: int = 80) -> None:
    """Print a separator line.

    Args:
        char: Character to use for the separator
        width: Width of the separator line
    """
    print(char * width)


def print_section_header(title: str, width: int = 80) -> None:
    """Print a section header with a title.

    Args:
        title: Title text to display
        width: Total width of the header
    """
    print()
    print_separator("=", width)
    print(title)
    print_separator("=", width)


def print_json(data: Any) -> None:
    """Print data as indented JSON, rendering datetimes in ISO 8601."""
    print(json.dumps(data, indent=2, default=_json_default, ensure_ascii=False))


def to_dict(record: Message | Reaction | ReactionType | ReactionCount) -> dict[str, Any]:
    """Convert a store record to a plain dictionary."""
    return asdict(record)


def format_time(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M:%S")


def print_messages(messages: list[Message], full: bool = False) -> None:
    """Print messages one block each.

    Args:
        messages: Messages to print
        full: Show the whole content instead of truncating long text
    """
    for message in messages:
        status = "read" if message.is_read else "unread"
        print(f"\n[{message.id}] {message.sender_id} -> {message.receiver_id} ({status})")
        print(f"  Sent: {format_time(message.created_at)}")
        content = message.content
        if len(content) > 100 and not full:
            content = content[:97] + "..."
        print(f"  {content}")


def print_reactions(reactions: list[Reaction]) -> None:
    print(f"{'ID':<10} {'User':<10} {'Type':<6} {'Created':<20}")
    print_separator("-")
    for reaction in reactions:
        print(
            f"{reaction.id:<10} {reaction.user_id:<10} {reaction.reaction_type_id:<6} "
            f"{format_time(reaction.created_at):<20}"
        )


def print_reaction_counts(counts: list[ReactionCount]) -> None:
    for entry in counts:
        reaction_type = entry.reaction_type
        print(f"{reaction_type.emoji} {reaction_type.name} ({reaction_type.id}): {entry.count}")


def print_reaction_types(reaction_types: list[ReactionType]) -> None:
    print(f"{'ID':<6} {'Emoji':<6} Name")
    print_separator("-")
    for reaction_type in reaction_types:
        print(f"{reaction_type.id:<6} {reaction_type.emoji:<6} {reaction_type.name}")


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
