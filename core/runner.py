"""
LeakProbe - Main Orchestrator
Coordinates the passive storage scan and the forced leak against a live browser
"""

import asyncio
import copy
import logging
import os
from typing import Dict, Optional, Union

import yaml
from rich.console import Console

from .browser import BrowserController
from .controller import IdentifierController
from .exceptions import ConfigError
from .leak_forcer import ForceTarget, LeakForcer
from .reporters import build_report, render_console, write_json
from shared.constants import (
    DEFAULT_FORCE_TARGET,
    DEFAULT_FORCE_TIMEOUT_MS,
    DEFAULT_POLL_INTERVAL_MS,
    FORCE_TARGETS,
    BrowserEngines,
)

console = Console()
logger = logging.getLogger(__name__)


DEFAULT_CONFIG = {
    'browser': {
        'engine': BrowserEngines.WEBKIT.value,
        'headless': False,
        'user_data_dir': None,
        'slow_mo': 0,
        'popup_timeout_ms': 1000,
    },
    'host': {
        'url': 'https://example.com/',
    },
    'force': {
        'enabled': False,      # Force a leak when the passive scan finds nothing
        'on_start': False,     # Force a leak before the passive scan
        'target': DEFAULT_FORCE_TARGET,
        'poll_interval_ms': DEFAULT_POLL_INTERVAL_MS,
        'timeout_ms': DEFAULT_FORCE_TIMEOUT_MS,
    },
    'reporting': {
        'json': False,
        'output_path': None,
    },
}

# Environment variable -> (section, key, type)
ENV_OVERRIDES = {
    'LEAKPROBE_POLL_INTERVAL_MS': ('force', 'poll_interval_ms', int),
    'LEAKPROBE_TIMEOUT_MS': ('force', 'timeout_ms', int),
    'LEAKPROBE_HEADLESS': ('browser', 'headless', bool),
    'LEAKPROBE_BROWSER': ('browser', 'engine', str),
}


def deep_merge(default: Dict, override: Dict) -> Dict:
    """Merge ``override`` into a copy of ``default``, recursing into dicts"""
    result = default.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _parse_env_value(raw: str, kind: type):
    if kind is bool:
        return raw.strip().lower() in ('1', 'true', 'yes', 'on')
    if kind is int:
        try:
            return int(raw)
        except ValueError:
            raise ConfigError(f"Expected an integer, got {raw!r}")
    return raw.strip()


def load_config_file(config_path: str) -> Dict:
    """Load configuration from a YAML file"""
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}")

    if not isinstance(config, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    logger.info(f"Configuration loaded from {config_path}")
    return config


def normalize_config(config: Optional[Dict] = None, environ: Optional[Dict[str, str]] = None) -> Dict:
    """Apply defaults and environment overrides, then validate"""
    normalized = deep_merge(copy.deepcopy(DEFAULT_CONFIG), config or {})

    environ = os.environ if environ is None else environ
    for env_key, (section, key, kind) in ENV_OVERRIDES.items():
        raw = environ.get(env_key)
        if raw:
            try:
                normalized[section][key] = _parse_env_value(raw, kind)
            except ConfigError as e:
                raise ConfigError(f"{env_key}: {e}")
            logger.debug(f"Config override from {env_key}: {section}.{key}")

    force = normalized['force']
    for key in ('poll_interval_ms', 'timeout_ms'):
        value = force.get(key)
        if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
            raise ConfigError(f"force.{key} must be a positive number, got {value!r}")

    target = force.get('target')
    if isinstance(target, str):
        if target not in FORCE_TARGETS:
            raise ConfigError(f"Unknown force target {target!r}; known: {sorted(FORCE_TARGETS)}")
    elif isinstance(target, dict):
        missing = [k for k in ('name', 'url', 'prefix') if not target.get(k)]
        if missing:
            raise ConfigError(f"force.target is missing {missing}")
    else:
        raise ConfigError("force.target must be a target name or a mapping")

    engines = [e.value for e in BrowserEngines]
    if normalized['browser'].get('engine') not in engines:
        raise ConfigError(f"browser.engine must be one of {engines}")

    return normalized


def resolve_target(force_config: Dict) -> ForceTarget:
    target = force_config['target']
    if isinstance(target, str):
        return ForceTarget.from_dict(FORCE_TARGETS[target])
    return ForceTarget.from_dict(target)


class LeakScanRunner:
    """Runs one leak test against a live browser"""

    def __init__(self, config: Union[str, Dict, None] = None, browser: Optional[BrowserController] = None):
        """
        Initialize the runner with configuration.

        Args:
            config: Either a path to a YAML config file or a config dictionary
            browser: Pre-built browser controller (mainly for tests)
        """
        if isinstance(config, str):
            self.config = normalize_config(load_config_file(config))
        elif config is None or isinstance(config, dict):
            self.config = normalize_config(config)
        else:
            raise ConfigError("Config must be a file path or dictionary")

        self.target = resolve_target(self.config['force'])
        self.browser = browser
        self.controller = IdentifierController(forcer_factory=self._build_forcer)
        self.database_names = []
        self.initial_forcer: Optional[LeakForcer] = None

    def _build_forcer(self) -> LeakForcer:
        force = self.config['force']
        return LeakForcer(
            opener=self.browser.open_popup,
            inventory=self.browser.list_databases,
            target=self.target,
            poll_interval_ms=force['poll_interval_ms'],
            timeout_ms=force['timeout_ms'],
        )

    def _say(self, message: str):
        # Keep stdout clean for JSON output
        if not self.config['reporting']['json']:
            console.print(message)

    async def initialize(self):
        """Start the browser and open the host page"""
        if self.browser is None:
            browser_config = self.config['browser']
            self.browser = BrowserController(
                engine=browser_config['engine'],
                headless=browser_config['headless'],
                user_data_dir=browser_config['user_data_dir'],
                slow_mo=browser_config['slow_mo'],
                popup_timeout_ms=browser_config['popup_timeout_ms'],
            )
        await self.browser.start()
        await self.browser.goto(self.config['host']['url'])
        self._say(f"[cyan][OK]  Host page loaded: {self.config['host']['url']}[/cyan]")

    async def scan(self, force: Optional[bool] = None):
        """
        Passive scan, plus forced leaks as configured.

        Args:
            force: Force a leak if the passive scan finds nothing
                   (defaults to the ``force.enabled`` config value)
        """
        force_config = self.config['force']
        force = force_config['enabled'] if force is None else force

        self.controller.set_loading(True)
        try:
            if force_config['on_start']:
                # Out-of-band probe before the passive snapshot, like a page-load probe
                self.initial_forcer = self._build_forcer()
                initial = await self.initial_forcer.force()
                self.controller.on_initial_forced_result(sorted(initial))

            try:
                self.database_names = await self.browser.database_names()
            except Exception as e:
                logger.warning(f"Storage inventory unavailable: {type(e).__name__}: {e}")
                self.database_names = []
            logger.info(f"Storage inventory lists {len(self.database_names)} database(s)")
            self.controller.on_inventory(self.database_names)
        finally:
            self.controller.set_loading(False)

        if force and not self.controller.identifiers:
            self._say(f"[cyan][!]   Forcing a leak via {self.target.url}[/cyan]")
            await self.controller.force_leak()

        return self.controller.identifiers

    def report(self):
        forced_session = None
        forcer = self.controller.last_forcer or self.initial_forcer
        if forcer is not None:
            forced_session = forcer.last_session
        return build_report(
            self.controller,
            host_url=self.config['host']['url'],
            database_names=self.database_names,
            forced_session=forced_session,
        )

    async def cleanup(self):
        if self.browser is not None:
            await self.browser.close()

    async def run(self, force: Optional[bool] = None) -> int:
        """
        Full run: initialize, scan, report, clean up.

        Returns:
            Process exit code (0 = identifiers leaked, 1 = none found, 2 = browser failure)
        """
        try:
            try:
                await self.initialize()
            except Exception as e:
                logger.error(f"Browser start failed: {type(e).__name__}: {e}")
                console.print(f"[red]Browser start failed: {e}[/red]")
                return 2

            await self.scan(force=force)
            report = self.report()

            reporting = self.config['reporting']
            if reporting['json']:
                payload = write_json(report, reporting['output_path'])
                if not reporting['output_path']:
                    console.print_json(payload)
            else:
                render_console(report, console)

            return 0 if report.identifiers else 1
        finally:
            try:
                await self.cleanup()
            except Exception as e:
                logger.warning(f"Cleanup error (non-critical): {type(e).__name__}")


def run_leak_test(config: Union[str, Dict, None] = None, force: Optional[bool] = None) -> int:
    """Convenience wrapper running a LeakScanRunner to completion"""
    runner = LeakScanRunner(config)
    return asyncio.run(runner.run(force=force))
