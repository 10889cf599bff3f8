#!/usr/bin/env python3
"""
LEAKPROBE - Main Entry Point
Detects account identifiers leaked through browser database names.

Passive mode lists the databases visible to the host page and extracts
identifiers from their names. With --force, a background popup on the
target service is opened to provoke the leaking database.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv
from rich.console import Console

from core.exceptions import ConfigError
from core.runner import LeakScanRunner, load_config_file

console = Console()


def print_banner():
    """Display the LeakProbe banner"""
    console.print("[bold cyan]LeakProbe[/bold cyan] [green]- identifier leaks via browser storage names[/green]")
    console.print("[yellow]Only test browsers and accounts you own.[/yellow]\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="LeakProbe - browser storage identifier leak tester")
    parser.add_argument('--config', '-c', default='config/config.yaml', help='Path to config file')
    parser.add_argument('--force', '-f', action='store_true', default=None,
                        help='Force a leak if the passive scan finds nothing')
    parser.add_argument('--force-on-start', action='store_true',
                        help='Force a leak before the passive scan')
    parser.add_argument('--host-url', help='Host page to run the storage enumeration from')
    parser.add_argument('--browser', choices=['webkit', 'chromium', 'firefox'], help='Browser engine')
    parser.add_argument('--headless', action='store_true', default=None, help='Run the browser headless')
    parser.add_argument('--user-data-dir', help='Browser profile directory to reuse (logged-in session)')
    parser.add_argument('--poll-interval-ms', type=int, help='Forced leak poll cadence')
    parser.add_argument('--timeout-ms', type=int, help='Forced leak deadline')
    parser.add_argument('--json', action='store_true', help='Emit a JSON report instead of the console view')
    parser.add_argument('--output', '-o', help='Write the JSON report to this path')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    return parser


def apply_cli_overrides(config: dict, args: argparse.Namespace) -> dict:
    """Fold command-line flags into a raw config dictionary"""
    browser = config.setdefault('browser', {})
    host = config.setdefault('host', {})
    force = config.setdefault('force', {})
    reporting = config.setdefault('reporting', {})

    if args.host_url:
        host['url'] = args.host_url
    if args.browser:
        browser['engine'] = args.browser
    if args.headless:
        browser['headless'] = True
    if args.user_data_dir:
        browser['user_data_dir'] = args.user_data_dir
    if args.force_on_start:
        force['on_start'] = True
    if args.poll_interval_ms is not None:
        force['poll_interval_ms'] = args.poll_interval_ms
    if args.timeout_ms is not None:
        force['timeout_ms'] = args.timeout_ms
    if args.json or args.output:
        reporting['json'] = True
    if args.output:
        reporting['output_path'] = args.output
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not args.json:
        print_banner()

    try:
        raw_config = load_config_file(args.config) if os.path.exists(args.config) else {}
        runner = LeakScanRunner(apply_cli_overrides(raw_config, args))
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        return 2

    try:
        return asyncio.run(runner.run(force=args.force))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
