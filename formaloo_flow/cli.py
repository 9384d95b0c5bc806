"""Command-line interface for Formaloo Flow."""

import asyncio
import functools
import logging
import sys
from typing import Any, Dict, List, Optional

import click
import httpx
import uvicorn
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from formaloo_flow import __version__
from formaloo_flow.credentials import test_credential
from formaloo_flow.formaloo.catalog import CatalogClient
from formaloo_flow.formaloo.client import FormalooClient
from formaloo_flow.formaloo.errors import FormalooError
from formaloo_flow.formaloo.submission import FieldRow, SubmissionAssembler, SubmissionMetadata
from formaloo_flow.logger import setup_global_logger

console = Console()
logger = logging.getLogger(__name__)


def _transport() -> Optional[httpx.AsyncBaseTransport]:
    """
    HTTP transport for Formaloo calls, taken from the click context object.

    Callers embedding the CLI pass ``obj={"transport": ...}``; None uses the network.
    """
    ctx = click.get_current_context(silent=True)
    if ctx is None or not isinstance(ctx.obj, dict):
        return None
    return ctx.obj.get("transport")


def _credential_data(
    api_key: Optional[str],
    secret_api: Optional[str],
    auth_token: Optional[str],
    workspace: Optional[str],
) -> Dict[str, str]:
    values = {
        "api_key": api_key,
        "apiKey": api_key,
        "secret_api": secret_api,
        "authToken": auth_token,
        "workspace": workspace,
    }
    return {key: value for key, value in values.items() if value}


def credential_options(fn):
    """Add the Formaloo credential options, each with an env var fallback."""
    @click.option("--api-key", envvar="FORMALOO_API_KEY", help="Formaloo API key")
    @click.option("--secret-api", envvar="FORMALOO_SECRET_API", help="Secret exchanged for a JWT")
    @click.option("--auth-token", envvar="FORMALOO_AUTH_TOKEN", help="Pre-issued JWT")
    @click.option("--workspace", envvar="FORMALOO_WORKSPACE", help="Workspace of the pre-issued JWT")
    @functools.wraps(fn)
    def wrapper(api_key, secret_api, auth_token, workspace, **kwargs):
        credential = _credential_data(api_key, secret_api, auth_token, workspace)
        return fn(credential, **kwargs)

    return wrapper


def _run(coro) -> Any:
    """Run a coroutine, turning Formaloo errors into a non-zero exit."""
    try:
        return asyncio.run(coro)
    except FormalooError as e:
        console.print(f"[red]✗ {escape(e.message)}[/red]")
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default="WARNING", show_default=True, help="Log level")
@click.pass_context
def main(ctx: click.Context, log_level: str):
    """
    Formaloo Flow - Formaloo nodes for workflow automation.

    List forms and fields, submit entries and serve the webhook endpoint.
    """
    ctx.ensure_object(dict)
    setup_global_logger(log_level.upper())


@main.command()
@credential_options
def forms(credential: Dict[str, str]):
    """List the account's forms."""

    async def _list():
        async with FormalooClient(credential, transport=_transport()) as client:
            return await CatalogClient(client).list_forms()

    results = _run(_list())

    table = Table(title="Formaloo forms")
    table.add_column("Slug", style="cyan")
    table.add_column("Title")
    table.add_column("Description", style="dim")
    for form in results:
        table.add_row(form.slug, form.title, form.description)
    console.print(table)


@main.command()
@click.argument("form_slug")
@credential_options
def fields(credential: Dict[str, str], form_slug: str):
    """List the submittable fields of FORM_SLUG."""

    async def _fields():
        async with FormalooClient(credential, transport=_transport()) as client:
            return await CatalogClient(client).get_form_fields(form_slug)

    results = _run(_fields())

    table = Table(title=f"Fields of {form_slug}")
    table.add_column("Title")
    table.add_column("Type", style="magenta")
    table.add_column("Reference", style="cyan")
    for field in results:
        table.add_row(field.title, field.type, field.reference.value)
    console.print(table)


def _parse_field_options(values: List[str]) -> List[FieldRow]:
    rows = []
    for value in values:
        reference, sep, raw = value.partition("=")
        if not sep:
            raise click.BadParameter(f"expected REFERENCE=VALUE, got {value!r}", param_hint="--field")
        rows.append(FieldRow(field=reference, value=raw))
    return rows


@main.command()
@click.argument("form_slug")
@click.option("-f", "--field", "field_values", multiple=True, help="REFERENCE=VALUE, e.g. 'abc12 - dropdown=Red'")
@click.option("--submit-code", help="Submit code sent with the entry")
@click.option("--submit-time", help="Submission time, ISO 8601")
@credential_options
def submit(
    credential: Dict[str, str],
    form_slug: str,
    field_values: List[str],
    submit_code: Optional[str],
    submit_time: Optional[str],
):
    """Resolve field values and submit one entry to FORM_SLUG."""
    rows = _parse_field_options(list(field_values))
    metadata = SubmissionMetadata(submit_code=submit_code, submit_time=submit_time)

    async def _submit():
        async with FormalooClient(credential, transport=_transport()) as client:
            return await SubmissionAssembler(client).submit(form_slug, rows, metadata)

    result = _run(_submit())
    console.print_json(data=result.to_json())


@main.command("test-credentials")
@credential_options
def test_credentials(credential: Dict[str, str]):
    """Check that the credentials can reach Formaloo."""
    result = asyncio.run(test_credential(credential, transport=_transport()))
    if result["status"] != "OK":
        console.print(f"[red]✗ {escape(result['message'])}[/red]")
        sys.exit(1)
    console.print(f"[green]✓ {result['message']}[/green]")


@main.command()
@click.option("--host", default="0.0.0.0", help="Host to bind to")
@click.option("--port", default=8000, help="Port to bind to (default: 8000)")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve(host: str, port: int, reload: bool):
    """Serve the Formaloo webhook endpoint."""
    console.print(f"[bold cyan]Formaloo Flow[/bold cyan] webhook endpoint on [link]http://{host}:{port}[/link]")
    uvicorn.run("formaloo_flow.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    main()
