import pytest
from starlette.testclient import TestClient
from typer.testing import CliRunner

from orchestrator.provisioner import get_orchestrator
from tests.provisioner_utils import FakeCommandRunner, make_orchestrator


@pytest.fixture
def fake_runner():
    return FakeCommandRunner()


@pytest.fixture
def orchestrator(fake_runner):
    return make_orchestrator(fake_runner)


@pytest.fixture
def client(orchestrator):
    from orchestrator.main import app

    app.dependency_overrides[get_orchestrator] = lambda: orchestrator

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture()
def cli_runner(orchestrator, monkeypatch):
    import orchestrator.cli as cli

    monkeypatch.setattr(cli, "build_orchestrator", lambda: orchestrator)
    return CliRunner(), cli.app
