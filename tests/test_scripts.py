"""
Launcher script tests.
"""
import importlib.util
import os
import sys
from pathlib import Path

import pytest

SCRIPTS = Path(__file__).resolve().parent.parent / 'scripts'


@pytest.fixture
def run_app():
    spec = importlib.util.spec_from_file_location('run_app', SCRIPTS / 'run_app.py')
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_console_command_targets_streamlit_ui(run_app):
    cmd = run_app.build_command(8600, headless=True)
    assert cmd[:4] == [sys.executable, '-m', 'streamlit', 'run']
    assert cmd[4].endswith('app_streamlit.py')
    assert cmd[5:] == ['--server.port', '8600', '--server.headless', 'true']


def test_console_env_passes_database_url(run_app, monkeypatch):
    monkeypatch.delenv('HVAC_DATABASE_URL', raising=False)
    env = run_app.build_env('sqlite:///demo.db')
    assert env['HVAC_DATABASE_URL'] == 'sqlite:///demo.db'
    assert str(run_app.PROJECT_ROOT / 'src') in env['PYTHONPATH'].split(os.pathsep)

    assert 'HVAC_DATABASE_URL' not in run_app.build_env(None)
