"""Command-line interface for the messaging store.

This module provides a CLI for operating the messaging database: applying
the schema, sending and listing direct messages, managing read state and
deletion, and adding, removing, and summarizing reactions.
"""

import argparse
import sys

import psycopg

from messaging_core.config import Config, load_config
from messaging_core.log_setup import configure_logging
from messaging_core.output import (
    print_json,
    print_messages,
    print_reaction_counts,
    print_reaction_types,
    print_reactions,
    print_section_header,
    to_dict,
)
from messaging_core.store import (
    DatabaseClient,
    InvalidArgumentError,
    MessageStore,
    NotFoundError,
    ReactionStore,
    StoreConfig,
    StoreError,
    apply_schema,
    classify_error,
    read_selector,
)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_ARGUMENT = 2


def _convert_db_config(config: Config) -> StoreConfig:
    """Convert config.DatabaseConfig and config.PoolConfig to store.StoreConfig.

    Args:
        config: System configuration

    Returns:
        StoreConfig for the database client
    """
    return StoreConfig(
        host=config.database.host,
        port=config.database.port,
        database=config.database.database,
        user=config.database.user,
        password=config.database.password,
        min_size=config.pool.min_size,
        max_size=config.pool.max_size,
        timeout=config.pool.timeout,
        statement_timeout_ms=config.database.statement_timeout_ms,
    )


def _report_error(e: Exception) -> int:
    """Print an error to stderr and pick the exit code for it."""
    if isinstance(e, psycopg.Error):
        e = classify_error(e)
    if isinstance(e, StoreError):
        print(f"Error [{e.code}]: {e}", file=sys.stderr)
        if isinstance(e, InvalidArgumentError):
            return EXIT_INVALID_ARGUMENT
        return EXIT_ERROR
    print(f"Error: {e}", file=sys.stderr)
    return EXIT_ERROR


def _add_format_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        type=str,
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )


def _add_paging_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--page", type=int, default=1, help="1-based page number (default: 1)", metavar="N"
    )
    parser.add_argument(
        "--per-page", type=int, default=20, help="Messages per page (default: 20)", metavar="N"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured argument parser with all subcommands
    """
    parser = argparse.ArgumentParser(
        prog="messaging-core",
        description="Direct messages and reactions backed by PostgreSQL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file (.env format)",
        metavar="FILE",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-db", help="Create tables and seed the reaction catalog")
    subparsers.add_parser("health", help="Check database connectivity and schema")

    send_parser = subparsers.add_parser("send", help="Send a direct message")
    send_parser.add_argument("sender_id", type=int, help="Sending user ID")
    send_parser.add_argument("receiver_id", type=int, help="Receiving user ID")
    send_parser.add_argument("content", type=str, help="Message text")
    _add_format_argument(send_parser)

    inbox_parser = subparsers.add_parser("inbox", help="List messages received by a user")
    inbox_parser.add_argument("user_id", type=int, help="Receiving user ID")
    inbox_parser.add_argument(
        "--unread-only", action="store_true", help="Only show unread messages"
    )
    _add_paging_arguments(inbox_parser)
    _add_format_argument(inbox_parser)
    inbox_parser.add_argument("--full", action="store_true", help="Do not truncate long messages")

    conversation_parser = subparsers.add_parser(
        "conversation", help="Show messages exchanged between two users, newest first"
    )
    conversation_parser.add_argument("user_id", type=int, help="First user ID")
    conversation_parser.add_argument("peer_id", type=int, help="Second user ID")
    _add_paging_arguments(conversation_parser)
    _add_format_argument(conversation_parser)
    conversation_parser.add_argument(
        "--full", action="store_true", help="Do not truncate long messages"
    )

    read_parser = subparsers.add_parser(
        "mark-read",
        help="Mark messages as read by ID, or everything one user sent another",
    )
    read_parser.add_argument("--message-id", type=int, help="Single message ID", metavar="ID")
    read_parser.add_argument(
        "--message-ids", type=int, nargs="+", default=[], help="Message IDs", metavar="ID"
    )
    read_parser.add_argument("--from-user", type=int, help="Sender user ID", metavar="ID")
    read_parser.add_argument("--to-user", type=int, help="Receiver user ID", metavar="ID")

    delete_parser = subparsers.add_parser("delete", help="Soft-delete a message")
    delete_parser.add_argument("message_id", type=int, help="Message ID")

    react_parser = subparsers.add_parser("react", help="Add a reaction to a message")
    react_parser.add_argument("user_id", type=int, help="Reacting user ID")
    react_parser.add_argument("message_id", type=int, help="Message ID")
    react_parser.add_argument("reaction_type_id", type=int, help="Reaction type ID")
    _add_format_argument(react_parser)

    unreact_parser = subparsers.add_parser("unreact", help="Remove reactions from a message")
    unreact_parser.add_argument("user_id", type=int, help="Reacting user ID")
    unreact_parser.add_argument("message_id", type=int, help="Message ID")
    unreact_parser.add_argument(
        "--type",
        type=int,
        dest="reaction_type_id",
        help="Only remove this reaction type (default: all types)",
        metavar="ID",
    )

    reactions_parser = subparsers.add_parser("reactions", help="Show reactions on a message")
    reactions_parser.add_argument("message_id", type=int, help="Message ID")
    reactions_parser.add_argument(
        "--counts", action="store_true", help="Show counts per reaction type"
    )
    _add_format_argument(reactions_parser)

    types_parser = subparsers.add_parser("reaction-types", help="List available reaction types")
    types_parser.add_argument(
        "--id", type=int, dest="reaction_type_id", help="Show only this reaction type", metavar="ID"
    )
    _add_format_argument(types_parser)

    return parser


def cmd_init_db(args: argparse.Namespace, config: Config) -> int:
    """Handle the 'init-db' command - apply the schema."""
    try:
        with DatabaseClient(_convert_db_config(config)) as client:
            seeded = apply_schema(client)
        print(f"Schema applied ({seeded} reaction types seeded)")
        return EXIT_OK
    except Exception as e:
        return _report_error(e)


def cmd_health(args: argparse.Namespace, config: Config) -> int:
    """Handle the 'health' command - check connectivity and schema."""
    try:
        with DatabaseClient(_convert_db_config(config)) as client:
            healthy = client.health_check()
        print("OK" if healthy else "UNHEALTHY")
        return EXIT_OK if healthy else EXIT_ERROR
    except Exception as e:
        return _report_error(e)


def cmd_send(args: argparse.Namespace, config: Config) -> int:
    """Handle the 'send' command - send a direct message.

    Args:
        args: Parsed command-line arguments
        config: System configuration

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    try:
        with DatabaseClient(_convert_db_config(config)) as client:
            message = MessageStore(client).send(args.sender_id, args.receiver_id, args.content)

        if args.format == "json":
            print_json(to_dict(message))
        else:
            print(f"Message sent with ID: {message.id}")
        return EXIT_OK
    except Exception as e:
        return _report_error(e)


def cmd_inbox(args: argparse.Namespace, config: Config) -> int:
    """Handle the 'inbox' command - list messages received by a user.

    Args:
        args: Parsed command-line arguments
        config: System configuration

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    try:
        with DatabaseClient(_convert_db_config(config)) as client:
            result = MessageStore(client).list_messages(
                args.user_id,
                unread_only=args.unread_only,
                page=args.page,
                per_page=args.per_page,
            )

        if args.format == "json":
            print_json(
                {
                    "messages": [to_dict(m) for m in result.messages],
                    "total_count": result.total_count,
                    "unread_count": result.unread_count,
                }
            )
        else:
            print_section_header(f"Inbox for user {args.user_id} (page {args.page})")
            print(f"Total: {result.total_count}  Unread: {result.unread_count}")
            if not result.messages:
                print("\nNo messages")
            print_messages(result.messages, full=args.full)
        return EXIT_OK
    except Exception as e:
        return _report_error(e)


def cmd_conversation(args: argparse.Namespace, config: Config) -> int:
    """Handle the 'conversation' command - show messages between two users."""
    try:
        with DatabaseClient(_convert_db_config(config)) as client:
            result = MessageStore(client).get_conversation(
                args.user_id, args.peer_id, page=args.page, per_page=args.per_page
            )

        if args.format == "json":
            print_json(
                {
                    "messages": [to_dict(m) for m in result.messages],
                    "total_count": result.total_count,
                }
            )
        else:
            print_section_header(
                f"Conversation between {args.user_id} and {args.peer_id} (page {args.page})"
            )
            print(f"Total: {result.total_count}")
            print_messages(result.messages, full=args.full)
        return EXIT_OK
    except Exception as e:
        return _report_error(e)


def cmd_mark_read(args: argparse.Namespace, config: Config) -> int:
    """Handle the 'mark-read' command.

    Message IDs take precedence over --from-user/--to-user. With neither, the
    command fails before touching the database.
    """
    try:
        selector = read_selector(
            message_id=args.message_id,
            message_ids=args.message_ids,
            from_user_id=args.from_user,
            to_user_id=args.to_user,
        )
        with DatabaseClient(_convert_db_config(config)) as client:
            updated_count = MessageStore(client).mark_as_read(selector)
        print(f"Marked {updated_count} message(s) as read")
        return EXIT_OK
    except Exception as e:
        return _report_error(e)


def cmd_delete(args: argparse.Namespace, config: Config) -> int:
    """Handle the 'delete' command - soft-delete a message."""
    try:
        with DatabaseClient(_convert_db_config(config)) as client:
            deleted = MessageStore(client).delete(args.message_id)
        if deleted:
            print(f"Message {args.message_id} deleted")
        else:
            print(f"Message {args.message_id} not found or already deleted")
        return EXIT_OK
    except Exception as e:
        return _report_error(e)


def cmd_react(args: argparse.Namespace, config: Config) -> int:
    """Handle the 'react' command - add a reaction to a message."""
    try:
        with DatabaseClient(_convert_db_config(config)) as client:
            reaction = ReactionStore(client).add_reaction(
                args.user_id, args.message_id, args.reaction_type_id
            )
        if args.format == "json":
            print_json(to_dict(reaction))
        else:
            print(f"Reaction added with ID: {reaction.id}")
        return EXIT_OK
    except Exception as e:
        return _report_error(e)


def cmd_unreact(args: argparse.Namespace, config: Config) -> int:
    """Handle the 'unreact' command - remove reactions from a message."""
    try:
        with DatabaseClient(_convert_db_config(config)) as client:
            removed_count = ReactionStore(client).remove_reaction(
                args.user_id, args.message_id, args.reaction_type_id
            )
        print(f"Removed {removed_count} reaction(s)")
        return EXIT_OK
    except Exception as e:
        return _report_error(e)


def cmd_reactions(args: argparse.Namespace, config: Config) -> int:
    """Handle the 'reactions' command - show reactions on a message."""
    try:
        with DatabaseClient(_convert_db_config(config)) as client:
            store = ReactionStore(client)
            if args.counts:
                counts = store.count_reactions_by_type(args.message_id)
            else:
                reactions = store.get_reactions_for_message(args.message_id)

        if args.counts:
            if args.format == "json":
                print_json([to_dict(entry) for entry in counts])
            else:
                print_section_header(f"Reaction counts for message {args.message_id}")
                print_reaction_counts(counts)
        else:
            if args.format == "json":
                print_json([to_dict(reaction) for reaction in reactions])
            else:
                print_section_header(f"Reactions on message {args.message_id}")
                print_reactions(reactions)
        return EXIT_OK
    except Exception as e:
        return _report_error(e)


def cmd_reaction_types(args: argparse.Namespace, config: Config) -> int:
    """Handle the 'reaction-types' command - list the catalog or look up one entry."""
    try:
        with DatabaseClient(_convert_db_config(config)) as client:
            store = ReactionStore(client)
            if args.reaction_type_id is None:
                reaction_types = store.list_reaction_types()
            else:
                reaction_type = store.get_reaction_type(args.reaction_type_id)
                if reaction_type is None:
                    raise NotFoundError(f"Reaction type {args.reaction_type_id} not found")
                reaction_types = [reaction_type]
        if args.format == "json":
            print_json([to_dict(reaction_type) for reaction_type in reaction_types])
        else:
            print_reaction_types(reaction_types)
        return EXIT_OK
    except Exception as e:
        return _report_error(e)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments (default: sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_ERROR

    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_ERROR

    configure_logging(config.logging)

    if args.command == "init-db":
        return cmd_init_db(args, config)
    elif args.command == "health":
        return cmd_health(args, config)
    elif args.command == "send":
        return cmd_send(args, config)
    elif args.command == "inbox":
        return cmd_inbox(args, config)
    elif args.command == "conversation":
        return cmd_conversation(args, config)
    elif args.command == "mark-read":
        return cmd_mark_read(args, config)
    elif args.command == "delete":
        return cmd_delete(args, config)
    elif args.command == "react":
        return cmd_react(args, config)
    elif args.command == "unreact":
        return cmd_unreact(args, config)
    elif args.command == "reactions":
        return cmd_reactions(args, config)
    elif args.command == "reaction-types":
        return cmd_reaction_types(args, config)
    else:
        parser.print_help()
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
