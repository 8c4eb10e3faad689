"""
Command-line interface for Webmarks.

This module provides the CLI for choosing which folders of a Chromium
bookmark tree become lists, and for adding, deleting, moving, sorting and
searching the bookmarks of those lists.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from webmarks import __version__
from webmarks.config.configuration import Configuration
from webmarks.config.pydantic_config import ConfigurationManager
from webmarks.core.data_models import Bookmark, BookmarkFormData, BookmarkList, SortOption
from webmarks.core.data_sources import DataSourceError
from webmarks.core.session import WebmarksSession, open_session
from webmarks.utils.error_handler import (
    DiagnosticsLog,
    ErrorSeverity,
    FolderNotEmptyError,
    ValidationError,
    WebmarksError,
)
from webmarks.utils.logging_setup import setup_logging
from webmarks.utils.validation import validate_bookmarks_file, validate_config_file


class CLIInterface:
    """Command line interface for Webmarks."""

    def __init__(self, console: Optional[Console] = None):
        self.parser = self._create_parser()
        self.console = console or Console()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser with one sub-command per operation."""
        parser = argparse.ArgumentParser(
            prog="webmarks",
            description="Webmarks - curate Chromium bookmark folders into flat lists",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  webmarks --bookmarks-file ~/.config/chromium/Default/Bookmarks folders
  webmarks --bookmarks-file Bookmarks select 5 9
  webmarks --bookmarks-file Bookmarks show --list 5 --sort alphabetical
  webmarks --bookmarks-file Bookmarks add --list 5 --title Docs --url https://docs.python.org
  webmarks --bookmarks-file Bookmarks move 12 9
  webmarks --bridge-url http://127.0.0.1:8765 search python
  webmarks create-config --output webmarks_config.toml

Configuration System:
  Settings are read from a TOML or JSON file:

  * webmarks/config/user_config.toml in the application directory
  * or ./webmarks_config.toml in the current directory
  * or the file given with --config
  * Environment variables: WEBMARKS_BRIDGE_TOKEN, WEBMARKS_BOOKMARKS_FILE,
    WEBMARKS_STATE_DIR

  Example configuration (webmarks_config.toml):
  [store]
  backend = "chrome"
  bookmarks_file = "~/.config/chromium/Default/Bookmarks"

  [storage]
  state_dir = ".webmarks"
            """,
        )

        parser.add_argument(
            "--version", "-V", action="version", version=f"%(prog)s {__version__}"
        )
        parser.add_argument(
            "--config",
            "-c",
            help="Custom configuration file path (TOML or JSON format)",
        )
        parser.add_argument(
            "--bookmarks-file",
            "-f",
            help="Chromium 'Bookmarks' profile file (selects the chrome backend)",
        )
        parser.add_argument(
            "--bridge-url",
            help="Browser bridge URL (selects the bridge backend)",
        )
        parser.add_argument(
            "--backend",
            choices=["chrome", "bridge", "none"],
            help="Bookmark tree backend (default: from configuration)",
        )
        parser.add_argument(
            "--state-dir",
            help="Directory for local state and logs (default: .webmarks)",
        )
        parser.add_argument(
            "--verbose",
            "-v",
            action="store_true",
            help="Enable verbose output and debug logging",
        )

        commands = parser.add_subparsers(dest="command", metavar="COMMAND")

        commands.add_parser("folders", help="List every folder and whether it is selected")

        select = commands.add_parser("select", help="Add folders to the selection")
        select.add_argument("folder_ids", nargs="+", metavar="FOLDER_ID")

        deselect = commands.add_parser("deselect", help="Remove folders from the selection")
        deselect.add_argument("folder_ids", nargs="+", metavar="FOLDER_ID")

        show = commands.add_parser("show", help="Show lists, or the bookmarks of one list")
        show.add_argument("--list", "-l", dest="list_id", help="List to show")
        show.add_argument(
            "--sort",
            "-s",
            choices=[option.value for option in SortOption],
            help="Sort the list before showing it",
        )

        search = commands.add_parser("search", help="Search titles and URLs")
        search.add_argument("query")

        add = commands.add_parser("add", help="Add a bookmark to a list")
        add.add_argument("--list", "-l", dest="list_id", required=True)
        add.add_argument("--title", "-t", required=True)
        add.add_argument("--url", "-u", required=True)
        add.add_argument("--description", "-d", default="")
        add.add_argument(
            "--tags", default="", help="Comma-separated tags (kept for this session)"
        )

        delete = commands.add_parser("delete", help="Delete bookmarks")
        delete.add_argument("bookmark_ids", nargs="+", metavar="BOOKMARK_ID")

        move = commands.add_parser("move", help="Move a bookmark to another list")
        move.add_argument("bookmark_id")
        move.add_argument("target_list_id")

        remove = commands.add_parser("remove-folder", help="Remove a list and its folder")
        remove.add_argument("list_id")
        remove.add_argument(
            "--force",
            action="store_true",
            help="Remove the folder even when it still holds bookmarks",
        )

        sort = commands.add_parser("sort", help="Sort the bookmarks of one list")
        sort.add_argument("list_id")
        sort.add_argument("key", choices=[option.value for option in SortOption])

        create_config = commands.add_parser(
            "create-config", help="Write a sample configuration file"
        )
        create_config.add_argument("--output", "-o", default="webmarks_config.toml")
        create_config.add_argument("--format", choices=["toml", "json"], default=None)

        return parser

    def parse_args(self, args=None) -> argparse.Namespace:
        """Parse command line arguments."""
        return self.parser.parse_args(args)

    def validate_args(self, args: argparse.Namespace) -> dict:
        """
        Validate arguments and return processed values.

        Raises:
            ValidationError: If any validation fails
        """
        config_path = validate_config_file(args.config)
        bookmarks_file = validate_bookmarks_file(args.bookmarks_file)

        return {
            "config_path": config_path,
            "bookmarks_file": str(bookmarks_file) if bookmarks_file else None,
            "bridge_url": args.bridge_url,
            "backend": args.backend,
            "state_dir": args.state_dir,
            "verbose": args.verbose,
        }

    def process_arguments(self, validated_args: dict) -> Configuration:
        """Load configuration, apply argument overrides and set up logging."""
        config = Configuration(validated_args["config_path"])
        config.update_from_args(validated_args)
        setup_logging(config.config, verbose=validated_args["verbose"])
        return config

    def _handle_create_config(self, args: argparse.Namespace) -> int:
        """Write a sample configuration file."""
        output_path = Path(args.output)
        file_format = args.format or ("json" if output_path.suffix.lower() == ".json" else "toml")

        if output_path.exists():
            print(f"Configuration file '{output_path}' already exists", file=sys.stderr)
            return 1

        try:
            ConfigurationManager.create_sample_config(output_path, file_format)
        except OSError as e:
            print(f"Error creating configuration file: {e}", file=sys.stderr)
            return 1

        self.console.print(f"Created configuration file: {output_path}")
        self.console.print("Next steps:")
        self.console.print("1. Set bookmarks_file to your browser profile's Bookmarks file")
        self.console.print("2. Or set backend = \"bridge\" and the bridge_url/bridge_token")
        self.console.print(f"3. Use with: webmarks --config {output_path} folders")
        return 0

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _print_lists(self, lists: List[BookmarkList]) -> None:
        if not lists:
            self.console.print("No folders selected. Use 'webmarks folders' and 'webmarks select'.")
            return
        table = Table(show_header=True, header_style="bold")
        table.add_column("ID")
        table.add_column("List")
        table.add_column("Color")
        table.add_column("Bookmarks", justify="right")
        for bookmark_list in lists:
            table.add_row(
                bookmark_list.id,
                escape(bookmark_list.name),
                f"[{bookmark_list.color}]●[/] {bookmark_list.color}",
                str(bookmark_list.bookmark_count),
            )
        self.console.print(table)

    def _print_bookmarks(self, bookmarks: List[Bookmark], title: Optional[str] = None) -> None:
        if not bookmarks:
            self.console.print("No bookmarks.")
            return
        table = Table(title=title, show_header=True, header_style="bold")
        table.add_column("ID")
        table.add_column("Title")
        table.add_column("URL", overflow="fold")
        table.add_column("List")
        table.add_column("Added")
        for bookmark in bookmarks:
            table.add_row(
                bookmark.id,
                escape(bookmark.title),
                escape(bookmark.url),
                bookmark.list_id,
                bookmark.created_at.strftime("%Y-%m-%d %H:%M"),
            )
        self.console.print(table)

    def _print_diagnostics(self, diagnostics: DiagnosticsLog, verbose: bool) -> None:
        entries = [
            entry
            for entry in diagnostics.entries()
            if verbose or entry.severity is not ErrorSeverity.LOW
        ]
        for entry in entries:
            print(f"Warning: {entry}", file=sys.stderr)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def _cmd_folders(self, session: WebmarksSession, args) -> int:
        folders = await session.folders()
        if not folders:
            self.console.print("No folders found.")
            return 0
        table = Table(show_header=True, header_style="bold")
        table.add_column("ID")
        table.add_column("Folder")
        table.add_column("Bookmarks", justify="right")
        table.add_column("Selected", justify="center")
        for folder in folders:
            table.add_row(
                folder.id,
                escape(folder.path),
                str(folder.bookmark_count),
                "✓" if folder.id in session.selection else "",
            )
        self.console.print(table)
        return 0

    async def _cmd_select(self, session: WebmarksSession, args) -> int:
        selection = await session.select(args.folder_ids)
        self.console.print(f"{len(selection)} folders selected")
        self._print_lists(session.lists())
        return 0

    async def _cmd_deselect(self, session: WebmarksSession, args) -> int:
        selection = await session.deselect(args.folder_ids)
        self.console.print(f"{len(selection)} folders selected")
        self._print_lists(session.lists())
        return 0

    async def _cmd_show(self, session: WebmarksSession, args) -> int:
        if not args.list_id:
            self._print_lists(session.lists())
            return 0
        bookmark_list = self._require_list(session, args.list_id)
        if args.sort:
            bookmarks = session.sort(args.list_id, args.sort)
        else:
            bookmarks = session.bookmarks(args.list_id)
        self._print_bookmarks(bookmarks, title=bookmark_list.name)
        return 0

    async def _cmd_search(self, session: WebmarksSession, args) -> int:
        self._print_bookmarks(session.search(args.query), title=f"Search: {args.query}")
        return 0

    async def _cmd_add(self, session: WebmarksSession, args) -> int:
        form = BookmarkFormData(
            title=args.title,
            url=args.url,
            list_id=args.list_id,
            description=args.description,
            tags=[tag.strip() for tag in args.tags.split(",") if tag.strip()],
        )
        bookmark = await session.coordinator.add(form)
        self.console.print(f"Added {bookmark.title} ({bookmark.id}) to list {bookmark.list_id}")
        return 0

    async def _cmd_delete(self, session: WebmarksSession, args) -> int:
        removed = await session.coordinator.delete_many(args.bookmark_ids)
        self.console.print(f"Deleted {len(removed)} bookmarks")
        return 0

    async def _cmd_move(self, session: WebmarksSession, args) -> int:
        moved = await session.coordinator.move(args.bookmark_id, args.target_list_id)
        if moved is None:
            print(f"Bookmark not found: {args.bookmark_id}", file=sys.stderr)
            return 1
        self.console.print(f"Moved {moved.title} to list {moved.list_id}")
        return 0

    async def _cmd_remove_folder(self, session: WebmarksSession, args) -> int:
        self._require_list(session, args.list_id)
        if args.force:
            await session.coordinator.remove_folder(args.list_id)
        else:
            await session.coordinator.remove_empty_folder(args.list_id)
        self.console.print(f"Removed list {args.list_id}")
        return 0

    async def _cmd_sort(self, session: WebmarksSession, args) -> int:
        bookmark_list = self._require_list(session, args.list_id)
        self._print_bookmarks(session.sort(args.list_id, args.key), title=bookmark_list.name)
        return 0

    def _require_list(self, session: WebmarksSession, list_id: str) -> BookmarkList:
        bookmark_list = session.model.get_list(list_id)
        if bookmark_list is None:
            raise ValidationError(f"Unknown list: {list_id}")
        return bookmark_list

    async def execute(self, args: argparse.Namespace, config: Configuration) -> int:
        """Open a session and run one command in it."""
        handler = getattr(self, f"_cmd_{args.command.replace('-', '_')}")
        async with open_session(config) as session:
            try:
                return await handler(session, args)
            finally:
                self._print_diagnostics(session.diagnostics, args.verbose)

    def run(self, args=None) -> int:
        """Execute CLI interface."""
        try:
            parsed_args = self.parse_args(args)

            if parsed_args.command is None:
                self.parser.print_help()
                return 1

            if parsed_args.command == "create-config":
                return self._handle_create_config(parsed_args)

            validated_args = self.validate_args(parsed_args)
            config = self.process_arguments(validated_args)

            logger = logging.getLogger(__name__)
            logger.info(f"Webmarks CLI starting: {parsed_args.command}")
            logger.info(f"Backend: {config.get_backend()}")

            return asyncio.run(self.execute(parsed_args, config))

        except FolderNotEmptyError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except ValidationError as e:
            print(f"Validation Error: {e}", file=sys.stderr)
            return 1
        except DataSourceError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except ValueError as e:
            # Configuration errors arrive already formatted
            print(str(e), file=sys.stderr)
            return 1
        except WebmarksError as e:
            print(f"Error: {e}", file=sys.stderr)
            logging.getLogger(__name__).exception("Unexpected error in CLI")
            return 1


def main(args: Optional[Iterable[str]] = None) -> int:
    """Main entry point for the CLI."""
    cli = CLIInterface()
    return cli.run(args)


if __name__ == "__main__":
    sys.exit(main())
