"""
Tests for the command-line entry point
"""

import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from main import apply_cli_overrides, build_parser, main


class TestParser:
    """Argument parsing and config overrides"""

    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.config == 'config/config.yaml'
        assert args.force is None
        assert args.json is False

    def test_no_flags_leave_config_untouched(self):
        args = build_parser().parse_args([])
        config = apply_cli_overrides({}, args)
        assert config == {'browser': {}, 'host': {}, 'force': {}, 'reporting': {}}

    def test_overrides(self):
        args = build_parser().parse_args([
            '--host-url', 'https://host.example/',
            '--browser', 'chromium',
            '--headless',
            '--user-data-dir', '/tmp/profile',
            '--force-on-start',
            '--poll-interval-ms', '50',
            '--timeout-ms', '5000',
            '--output', 'out/report.json',
        ])
        config = apply_cli_overrides({'force': {'enabled': True}}, args)

        assert config['host']['url'] == 'https://host.example/'
        assert config['browser'] == {'engine': 'chromium', 'headless': True, 'user_data_dir': '/tmp/profile'}
        assert config['force'] == {'enabled': True, 'on_start': True, 'poll_interval_ms': 50, 'timeout_ms': 5000}
        assert config['reporting'] == {'json': True, 'output_path': 'out/report.json'}

    def test_force_flag(self):
        assert build_parser().parse_args(['-f']).force is True


class TestMain:
    """Exit codes that do not need a browser"""

    def test_config_error_exit_code(self, tmp_path, monkeypatch):
        for key in ('LEAKPROBE_POLL_INTERVAL_MS', 'LEAKPROBE_TIMEOUT_MS', 'LEAKPROBE_HEADLESS', 'LEAKPROBE_BROWSER'):
            monkeypatch.delenv(key, raising=False)
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "config.yaml"
        path.write_text("force:\n  timeout_ms: 0\n", encoding="utf-8")

        assert main(['--config', str(path), '--json']) == 2
