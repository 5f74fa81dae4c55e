import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from envvault.config import Settings
from envvault.core.storage import StorageEngine
from envvault.core.vault import VaultService


@pytest.fixture
def home(tmp_path, monkeypatch):
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    return home_dir


@pytest.fixture
def settings(tmp_path, home):
    return Settings(
        data_dir=tmp_path / "data",
        envvault_file=home / ".envvault",
        shell_hooks=False,
    )


@pytest.fixture
def storage(settings):
    engine = StorageEngine(settings.data_dir)
    engine.init()
    yield engine
    engine.close()


@pytest.fixture
def service(settings):
    svc = VaultService(settings)
    assert svc.init()
    yield svc
    svc.close()
