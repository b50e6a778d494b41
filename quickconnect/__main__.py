"""Entry point for running the host registry as a module."""

import argparse
import atexit
import logging
import signal
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from pydantic import ValidationError

from .errors import RegistryError
from .models.config import Config
from .models.host import Host
from .services.query import count_by_status
from .services.registry import HostRegistry

_logger = logging.getLogger(__name__)
_signal_handlers_installed = False


def setup_logging(log_level: str = "INFO", log_dir: Path | None = None) -> None:
    """Configure logging with rotation support.

    Args:
        log_level: The logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for quickconnect.log, or None for stderr only
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_dir is not None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            # Rotate at 10MB, keep 5 backup files
            file_handler = RotatingFileHandler(
                log_dir / "quickconnect.log",
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding="utf-8",
            )
            handlers.append(file_handler)
        except (PermissionError, OSError):
            pass  # Skip file logging if we can't write

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def _signal_handler(signum: int, frame: object) -> None:
    """Handle shutdown signals.

    Args:
        signum: Signal number received
        frame: Current stack frame (unused)
    """
    signal_name = signal.Signals(signum).name
    _logger.info(f"Received {signal_name}, shutting down...")
    sys.exit(128 + signum)


def _cleanup() -> None:
    """Cleanup handler called on exit."""
    _logger.debug("QuickConnect shutdown complete")


def setup_signal_handlers() -> None:
    """Set up signal handlers for graceful shutdown."""
    global _signal_handlers_installed

    if _signal_handlers_installed:
        return
    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)
    atexit.register(_cleanup)
    _signal_handlers_installed = True


def _format_host(host: Host, show_status: bool = False) -> str:
    last = host.last_connected or "never"
    line = f"{host.hostname:<40} {last:<20} {host.description}"
    if show_status:
        line = f"[{host.status.value:<7}] {line}"
    return line.rstrip()


def _print_hosts(hosts: list[Host], show_status: bool = False) -> None:
    for host in hosts:
        print(_format_host(host, show_status))


def _cmd_list(registry: HostRegistry, args: argparse.Namespace) -> int:
    if args.group:
        for domain, hosts in registry.grouped_by_domain().items():
            print(f"{domain} ({len(hosts)})")
            for host in hosts:
                print(f"  {_format_host(host)}")
        return 0

    if args.sort == "recent":
        _print_hosts(registry.sorted_by_last_connected())
    else:
        _print_hosts(registry.sorted_by_hostname())
    return 0


def _cmd_search(registry: HostRegistry, args: argparse.Namespace) -> int:
    matches = registry.search(args.query)
    _print_hosts(matches)
    return 0 if matches else 1


def _cmd_add(registry: HostRegistry, args: argparse.Namespace) -> int:
    host = registry.add_host(args.hostname, args.description, overwrite=args.overwrite)
    print(f"Saved {host.hostname}")
    return 0


def _cmd_remove(registry: HostRegistry, args: argparse.Namespace) -> int:
    host = registry.remove_host(args.hostname)
    print(f"Removed {host.hostname}")
    return 0


def _cmd_clear(registry: HostRegistry, args: argparse.Namespace) -> int:
    removed = registry.remove_all()
    print(f"Removed {removed} hosts")
    return 0


def _cmd_status(registry: HostRegistry, args: argparse.Namespace) -> int:
    results = registry.refresh_status()
    _print_hosts(results, show_status=True)
    counts = count_by_status(results)
    summary = ", ".join(f"{count} {status.value}" for status, count in counts.items() if count)
    print(f"\n{len(results)} hosts: {summary or 'none'}")
    return 0


def _cmd_recent(registry: HostRegistry, args: argparse.Namespace) -> int:
    for entry in registry.recent_connections():
        when = datetime.fromtimestamp(entry.timestamp).strftime("%d/%m/%Y %H:%M")
        print(f"{when}  {entry.hostname}  {entry.description}".rstrip())
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="quickconnect",
        description="QuickConnect - manage and check a list of RDP hosts",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.json"),
        help="Path to configuration file (default: config.json)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="store_true",
        help="Show version and exit",
    )

    commands = parser.add_subparsers(dest="command")

    list_cmd = commands.add_parser("list", help="List registered hosts")
    list_cmd.add_argument("--sort", choices=["name", "recent"], default="name")
    list_cmd.add_argument("--group", action="store_true", help="Group hosts by domain")
    list_cmd.set_defaults(handler=_cmd_list)

    search_cmd = commands.add_parser("search", help="Search hostnames and descriptions")
    search_cmd.add_argument("query")
    search_cmd.set_defaults(handler=_cmd_search)

    add_cmd = commands.add_parser("add", help="Add a host")
    add_cmd.add_argument("hostname")
    add_cmd.add_argument("description", nargs="?", default="")
    add_cmd.add_argument("--overwrite", action="store_true", help="Replace an existing host")
    add_cmd.set_defaults(handler=_cmd_add)

    remove_cmd = commands.add_parser("remove", help="Remove a host")
    remove_cmd.add_argument("hostname")
    remove_cmd.set_defaults(handler=_cmd_remove)

    clear_cmd = commands.add_parser("clear", help="Remove all hosts")
    clear_cmd.set_defaults(handler=_cmd_clear)

    status_cmd = commands.add_parser("status", help="Check which hosts accept RDP connections")
    status_cmd.set_defaults(handler=_cmd_status)

    recent_cmd = commands.add_parser("recent", help="Show recent connections")
    recent_cmd.set_defaults(handler=_cmd_recent)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Handle version flag
    if args.version:
        from . import __version__

        print(f"QuickConnect v{__version__}")
        return 0

    if args.command is None:
        parser.print_help()
        return 2

    # Setup signal handlers for graceful shutdown
    setup_signal_handlers()

    config = Config.load_or_default(args.config)

    # Setup logging
    log_level = "DEBUG" if args.verbose else config.settings.log_level
    log_dir = config.storage.resolved_data_dir / "logs" if config.settings.log_to_file else None
    setup_logging(log_level, log_dir)

    registry = HostRegistry.from_config(config)
    for warning in registry.load():
        _logger.warning(f"{registry.hosts_path}: {warning}")

    try:
        return args.handler(registry, args)
    except ValidationError as e:
        for error in e.errors():
            print(f"Invalid input: {error['msg']}", file=sys.stderr)
        return 1
    except RegistryError as e:
        print(str(e), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
