"""CLI interface for Construct."""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

import yaml

from construct.channels.console import ConsoleTransport
from construct.core.config import Config, load_config
from construct.core.logging import setup_logging
from construct.executor.classification import CommandClassifier
from construct.orchestrator import ConstructOrchestrator

logger = logging.getLogger(__name__)


async def run_orchestrator(config: Config, args: argparse.Namespace) -> None:
    """Run the orchestrator on the console transport until interrupted or stdin closes."""
    transport = ConsoleTransport(room_id=args.room, sender=args.sender)
    orchestrator = ConstructOrchestrator(config, transport)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def signal_handler() -> None:
        stop_event.set()

    loop.add_signal_handler(signal.SIGINT, signal_handler)
    loop.add_signal_handler(signal.SIGTERM, signal_handler)

    await orchestrator.start()
    waiters = [asyncio.create_task(stop_event.wait()), asyncio.create_task(transport.wait_closed())]
    await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
    logger.info("Shutdown requested, stopping...")
    await orchestrator.stop()
    for waiter in waiters:
        waiter.cancel()


def check_config(config: Config) -> int:
    """Print a summary of the loaded configuration."""
    print(f"Projects root: {config.system.projects_dir}")
    print(f"Data directory: {config.system.data_dir}")
    print(f"Admins: {', '.join(config.system.admin) or 'none'}")

    print("\nProviders:")
    if not config.providers:
        print("  (none configured)")
    for name, provider in config.providers.items():
        marker = "*" if name == config.default_provider else " "
        limit = f", {provider.requests_per_minute}/min ({provider.rate_limit_mode})" if provider.requests_per_minute else ""
        key = "key set" if provider.resolve_api_key() else "no key"
        print(f" {marker} {name}: {provider.protocol} {provider.model or '(no model)'}{limit}, {key}")

    commands = config.commands
    classifier = CommandClassifier(commands)
    print("\nCommand classification:")
    print(f"  allowed: {', '.join(commands.allowed) or '-'}")
    print(f"  ask: {', '.join(commands.ask) or '-'}")
    print(f"  blocked: {', '.join(commands.blocked) or '-'}")
    print(f"  default: {commands.default}, precedence: {commands.precedence}")
    timeouts = commands.timeouts
    print(f"  timeouts: short={timeouts.short:g}s medium={timeouts.medium:g}s long={timeouts.long:g}s")
    for sample in ("ls", "git status", "sudo rm -rf build"):
        result = classifier.classify(sample)
        print(f"  {sample!r}: {result.classification.value} ({classifier.tier_for(sample).value})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Construct - chat-driven engineering task orchestrator")
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to configuration file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Start the orchestrator on the console transport")
    run_parser.add_argument("--room", default="console", help="Room id for console input (default: console)")
    run_parser.add_argument("--sender", default="local", help="Principal for console input (default: local)")

    subparsers.add_parser("check-config", help="Validate the configuration and print a summary")
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 2

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    if args.command == "check-config":
        return check_config(config)

    setup_logging(
        level="DEBUG" if args.verbose else config.logging.level,
        directory=config.logging.directory,
        max_size_mb=config.logging.max_size_mb,
        backup_count=config.logging.backup_count,
    )
    asyncio.run(run_orchestrator(config, args))
    return 0


def run() -> None:
    """Entry point for console scripts."""
    sys.exit(main())


if __name__ == "__main__":
    run()
