#!/usr/bin/env python3
"""
bdimport - Browser Data Importer

Command-line interface: import bookmarks and cookies from browser stores
given as explicit paths and print or export the canonical records.
"""
import sys
import csv
import json
import logging
import argparse
import threading
from dataclasses import asdict
from pathlib import Path
from typing import List, Tuple

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from bdimport.browser_import import SafariCookiesAdapter
from bdimport.config import init_config, get_config
from bdimport.coordinator import import_sources
from bdimport.errors import BrowserImportError
from bdimport.exporters import export_bookmarks, export_cookies
from bdimport.models import Bookmark, Cookie, ImportResult, SourceError

logger = logging.getLogger(__name__)


console = Console()
err_console = Console(stderr=True)

# (source kind, argparse destination)
SOURCE_OPTIONS = [
    ("safari-cookies", "safari_cookies"),
    ("safari-bookmarks", "safari_bookmarks"),
    ("safari-plist", "safari_plist"),
    ("chrome", "chrome"),
    ("edge", "edge"),
    ("firefox", "firefox"),
]


def setup_logging(level: str):
    """Route log records through rich on stderr."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def output_bookmarks(bookmarks: List[Bookmark], format: str = "table"):
    """Output bookmarks in the specified format."""
    if format == "table":
        table = Table(title=f"Bookmarks ({len(bookmarks)})")
        table.add_column("Source", style="cyan")
        table.add_column("Folder", style="yellow")
        table.add_column("Title", style="green")
        table.add_column("URL", style="blue")
        table.add_column("Added", style="magenta")

        for b in bookmarks:
            table.add_row(
                b.source.display_name,
                (b.folder or "")[:30],
                b.title[:50],
                b.url[:60],
                b.date_added.strftime("%Y-%m-%d %H:%M") if b.date_added else "",
            )

        console.print(table)
    elif format == "csv":
        writer = csv.writer(sys.stdout)
        writer.writerow(["title", "url", "date_added", "source", "folder"])
        for b in bookmarks:
            writer.writerow([b.title, b.url, b.date_added.isoformat() if b.date_added else "",
                             b.source.display_name, b.folder or ""])


def output_cookies(cookies: List[Cookie], format: str = "table"):
    """Output cookies in the specified format."""
    if format == "table":
        table = Table(title=f"Cookies ({len(cookies)})")
        table.add_column("Domain", style="cyan")
        table.add_column("Name", style="green")
        table.add_column("Value", style="white")
        table.add_column("Path", style="blue")
        table.add_column("Secure", style="red")
        table.add_column("HttpOnly", style="red")

        for c in cookies:
            table.add_row(
                c.domain,
                c.name[:40],
                c.value[:40],
                c.path,
                "✓" if c.is_secure else "",
                "✓" if c.is_http_only else "",
            )

        console.print(table)
    elif format == "csv":
        writer = csv.writer(sys.stdout)
        writer.writerow(["name", "value", "domain", "path", "secure", "http_only", "source"])
        for c in cookies:
            writer.writerow([c.name, c.value, c.domain, c.path, c.is_secure,
                             c.is_http_only, c.source.display_name])


def output_errors(errors: List[SourceError]):
    """Print the per-source failure table."""
    if not errors:
        return
    table = Table(title="Failed sources", title_style="bold red")
    table.add_column("Source", style="cyan")
    table.add_column("Error", style="red")
    table.add_column("Message", style="white")
    table.add_column("Path", style="dim")
    for e in errors:
        table.add_row(e.source, e.kind, e.message, e.path or "")
    err_console.print(table)


def output_result(result: ImportResult, format: str, quiet: bool = False):
    """Output a whole import result."""
    config = get_config()

    if format == "json":
        print(json.dumps(result.to_dict(), indent=2 if config.export_pretty else None,
                         ensure_ascii=False))
        return

    if result.bookmarks:
        output_bookmarks(result.bookmarks, format)
    if result.cookies:
        output_cookies(result.cookies, format)

    if format == "table" and not quiet:
        summary = result.summary()
        for name, counts in summary.items():
            console.print(f"[green]✓ {name}: {counts['bookmarks']} bookmarks, "
                          f"{counts['cookies']} cookies[/green]")
        if result.cancelled:
            console.print("[yellow]Import was cancelled; results are partial[/yellow]")

    output_errors(result.errors)


def collect_requests(args) -> List[Tuple[str, str]]:
    """Source requests from the command line, else from the config file."""
    requests = []
    for kind, dest in SOURCE_OPTIONS:
        for path in getattr(args, dest) or []:
            requests.append((kind, path))

    if not requests:
        requests = list(get_config().sources.items())
    return requests


def cmd_import(args):
    """Import from the given sources."""
    overrides = {"max_workers": args.workers}
    if args.legacy_chrome_epoch:
        overrides["chrome_epoch_shift"] = False
    config = init_config(**overrides)

    requests = collect_requests(args)
    if not requests:
        err_console.print("[red]Error: No sources given (use --chrome, --firefox, ... "
                          "or set 'sources' in the config file)[/red]")
        return 1

    logger.debug(f"Importing {len(requests)} sources with {config.max_workers} workers")
    cancel_event = threading.Event()
    result = import_sources(requests, config, cancel_event)

    output_result(result, args.output, quiet=args.quiet)

    if args.export_bookmarks:
        export_bookmarks(result.bookmarks, Path(args.export_bookmarks), args.bookmark_format,
                         pretty=config.export_pretty)
        if not args.quiet:
            err_console.print(f"[green]✓ Exported {len(result.bookmarks)} bookmarks to "
                              f"{args.export_bookmarks}[/green]")
    if args.export_cookies:
        export_cookies(result.cookies, Path(args.export_cookies), args.cookie_format,
                       pretty=config.export_pretty)
        if not args.quiet:
            err_console.print(f"[green]✓ Exported {len(result.cookies)} cookies to "
                              f"{args.export_cookies}[/green]")

    return 0 if result.ok else 2


def cmd_cookies(args):
    """Decode a single binary cookie file."""
    adapter = SafariCookiesAdapter(args.file, get_config())
    try:
        cookies = adapter.run().cookies
    except BrowserImportError as e:
        err_console.print(f"[red]Error: {e}[/red]")
        return 1

    if args.output == "json":
        print(json.dumps([c.to_dict() for c in cookies], indent=2, ensure_ascii=False))
    else:
        output_cookies(cookies, args.output)
    return 0


def cmd_config(args):
    """Show or write the configuration."""
    config = get_config()

    if args.config_command == "show":
        if args.output == "json":
            print(json.dumps(asdict(config), indent=2))
            return 0
        table = Table(title="Configuration")
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")
        for key, value in asdict(config).items():
            table.add_row(key, str(value))
        console.print(table)
    elif args.config_command == "init":
        path = Path(args.path) if args.path else None
        config.save(path)
        console.print(f"[green]✓ Wrote configuration to "
                      f"{path or '~/.config/bdimport/config.toml'}[/green]")
    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="bdimport - Browser Data Importer: bookmarks and cookies from browser stores",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Import from several browsers at once
  bdimport import --chrome ~/.config/google-chrome/Default/Bookmarks \\
                  --firefox ~/.mozilla/firefox/abcd.default/places.sqlite

  # Decode Safari cookies and export them as cookies.txt
  bdimport import --safari-cookies Cookies.binarycookies \\
                  --export-cookies cookies.txt --cookie-format netscape

  # Machine-readable output
  bdimport -o json import --edge Bookmarks | jq '.bookmarks[].url'

  # Inspect one cookie file
  bdimport cookies Cookies.binarycookies

Configuration:
  Config file: ~/.config/bdimport/config.toml or ./bdimport.toml
  Environment: BDI_MAX_WORKERS, BDI_CHROME_EPOCH_SHIFT, BDI_LOG_LEVEL
        """
    )

    # Global options
    parser.add_argument("--config", help="Config file path")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("-o", "--output", choices=["table", "json", "csv"],
                        help="Output format")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Commands")

    # import
    import_parser = subparsers.add_parser("import", help="Import bookmarks and cookies")
    import_parser.add_argument("--safari-cookies", action="append", metavar="PATH",
                               help="Safari Cookies.binarycookies file")
    import_parser.add_argument("--safari-bookmarks", action="append", metavar="PATH",
                               help="Safari Bookmarks.db database")
    import_parser.add_argument("--safari-plist", action="append", metavar="PATH",
                               help="Safari Bookmarks.plist file")
    import_parser.add_argument("--chrome", action="append", metavar="PATH",
                               help="Chrome Bookmarks JSON file")
    import_parser.add_argument("--edge", action="append", metavar="PATH",
                               help="Edge Bookmarks JSON file")
    import_parser.add_argument("--firefox", action="append", metavar="PATH",
                               help="Firefox places.sqlite database")
    import_parser.add_argument("--workers", type=int, help="Sources imported in parallel")
    import_parser.add_argument("--legacy-chrome-epoch", action="store_true",
                               help="Do not shift Chrome timestamps from the 1601 epoch")
    import_parser.add_argument("--export-bookmarks", metavar="FILE", help="Write bookmarks to FILE")
    import_parser.add_argument("--bookmark-format", choices=["json", "csv", "html"], default="json",
                               help="Bookmark export format (default: json)")
    import_parser.add_argument("--export-cookies", metavar="FILE", help="Write cookies to FILE")
    import_parser.add_argument("--cookie-format", choices=["json", "csv", "netscape"], default="json",
                               help="Cookie export format (default: json)")
    import_parser.set_defaults(func=cmd_import)

    # cookies
    cookies_parser = subparsers.add_parser("cookies", help="Decode a binary cookie file")
    cookies_parser.add_argument("file", help="Cookies.binarycookies file")
    cookies_parser.set_defaults(func=cmd_cookies)

    # config
    config_parser = subparsers.add_parser("config", help="Configuration")
    config_subparsers = config_parser.add_subparsers(dest="config_command", required=True)
    config_subparsers.add_parser("show", help="Show the effective configuration")
    config_init = config_subparsers.add_parser("init", help="Write the configuration file")
    config_init.add_argument("path", nargs="?", help="Target file (default: user config)")
    config_parser.set_defaults(func=cmd_config)

    # Parse arguments
    args = parser.parse_args()

    config_args = {}
    if args.output:
        config_args["output_format"] = args.output
    config = init_config(config_file=Path(args.config) if args.config else None, **config_args)

    setup_logging("DEBUG" if args.verbose else "ERROR" if args.quiet else config.log_level)

    # Set default output format if not specified
    if not args.output:
        args.output = config.output_format
    if not config.color_output:
        console.no_color = True
        err_console.no_color = True

    # Execute command
    try:
        code = args.func(args)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except Exception as e:
        err_console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)
    sys.exit(code or 0)


if __name__ == "__main__":
    main()
