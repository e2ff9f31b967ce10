from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

import typer
import uvicorn
import yaml
from fastapi.encoders import jsonable_encoder

from orchestrator.logging_config import configure_logging
from orchestrator.provisioner import Orchestrator
from orchestrator.services.errors import OrchestratorException
from orchestrator.settings import Settings

configure_logging()
logger = logging.getLogger(__name__)
app = typer.Typer(help="Store orchestrator CLI", pretty_exceptions_show_locals=False)

T = TypeVar("T")


def build_orchestrator() -> Orchestrator:
    return Orchestrator(settings=Settings.from_env())


def _exit_for_domain_error(exc: OrchestratorException) -> None:
    logger.warning("CLI command failed with domain error: %s", exc)
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


def _echo_yaml_entity(entity: object) -> None:
    encoded = jsonable_encoder(entity)
    typer.echo(yaml.safe_dump(encoded, sort_keys=False), nl=False)


def _run(operation: Callable[[Orchestrator], Awaitable[T]]) -> T:
    orchestrator = build_orchestrator()
    try:
        return asyncio.run(operation(orchestrator))
    except OrchestratorException as e:
        _exit_for_domain_error(e)


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", "--host"),
    port: int = typer.Option(3001, "--port"),
) -> None:
    """Run the HTTP API. State is in memory, so always a single worker."""
    uvicorn.run("orchestrator.main:app", host=host, port=port, log_level="info", workers=1)


@app.command("list-instances")
def list_instances() -> None:
    _echo_yaml_entity(_run(lambda o: o.list_instances()))


@app.command("create")
def create(
    names: list[str] = typer.Argument(..., help="One or more store names; they are normalized."),
    no_wait: bool = typer.Option(
        False, "--no-wait", help="Print the submission results right away instead of the final events."
    ),
) -> None:
    """Submit store creations through the provisioning queue.

    The queue only lives as long as this process, so the command always lets
    started installs finish before it exits. By default it then prints the
    results and the events in the order they happened. With ``--no-wait`` the
    submission results are printed as soon as every name is queued and the
    events are left to the application log.
    """

    async def _submit(orchestrator: Orchestrator):
        results = [await orchestrator.submit_create(name) for name in names]
        if no_wait:
            _echo_yaml_entity({"results": results})
        await orchestrator.queue.wait_idle()
        return results, list(reversed(orchestrator.list_events()))

    results, events = _run(_submit)
    if not no_wait:
        _echo_yaml_entity({"results": results, "events": events})
    if any(event.severity == "ERROR" for event in events):
        raise typer.Exit(code=1)


@app.command("upgrade")
def upgrade(name: str) -> None:
    _echo_yaml_entity(_run(lambda o: o.upgrade(name)))


@app.command("rollback")
def rollback(
    name: str,
    revision: int = typer.Option(0, "--revision", min=0, help="0 rolls back to the previous revision."),
) -> None:
    _echo_yaml_entity(_run(lambda o: o.rollback(name, revision=revision)))


@app.command("delete")
def delete(name: str) -> None:
    async def _delete(orchestrator: Orchestrator):
        result = await orchestrator.delete(name)
        # the namespace cleanup is fire-and-forget, but the process must not exit under it
        await asyncio.gather(*orchestrator.lifecycle.cleanup_tasks)
        return result

    _echo_yaml_entity(_run(_delete))


if __name__ == "__main__":
    app()
