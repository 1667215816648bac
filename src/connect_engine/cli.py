"""Typer CLI for Connect-Engine."""

import importlib
from typing import Optional
from urllib.parse import parse_qsl

import typer
from rich.console import Console

app = typer.Typer(name="connect-engine", help="Connect-Engine: add-on lifecycle and webhook host")
console = Console()

WEBHOOKS_HELP = "Import path of a list of WebhookConfiguration, e.g. myaddon.hooks:WEBHOOKS"


def _load_webhooks(import_path: Optional[str]):
    if not import_path:
        return None
    module_name, _, attr = import_path.partition(":")
    if not attr:
        raise typer.BadParameter("Expected 'module:attribute'", param_hint="--webhooks")
    module = importlib.import_module(module_name)
    return list(getattr(module, attr))


def _registration_client(host, username, api_token):
    from connect_engine.common.config import get_settings
    from connect_engine.registration.client import RegistrationClient

    settings = get_settings()
    host = host or settings.product_host
    username = username or settings.product_username
    api_token = api_token or settings.product_api_token
    if not (host and username and api_token):
        console.print(
            "[bold red]Error:[/bold red] product host, username and API token are required "
            "(options or CONNECT_PRODUCT_* variables)"
        )
        raise typer.Exit(2)
    return RegistrationClient(host, username, api_token)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8080, help="Bind port"),
    webhooks: Optional[str] = typer.Option(None, help=WEBHOOKS_HELP),
):
    """Start the add-on server."""
    import uvicorn
    from connect_engine.app import create_app
    from connect_engine.common.config import get_settings
    from connect_engine.common.logging import setup_logging

    setup_logging(get_settings().log_level)
    console.print(f"[bold green]Starting Connect-Engine on {host}:{port}[/bold green]")
    uvicorn.run(create_app(_load_webhooks(webhooks)), host=host, port=port)


@app.command()
def descriptor(
    webhooks: Optional[str] = typer.Option(None, help=WEBHOOKS_HELP),
):
    """Print the descriptor document the add-on would serve."""
    from connect_engine.app import create_app

    built = create_app(_load_webhooks(webhooks)).state.descriptor
    console.print_json(built.dumps(indent=None))


@app.command()
def token(
    tenant_key: str = typer.Argument(..., help="Tenant (client) key, used as issuer"),
    secret: str = typer.Argument(..., help="The tenant's shared secret"),
    method: str = typer.Option("POST", help="HTTP method the token is bound to"),
    path: str = typer.Option("/", help="Path relative to the add-on base URL"),
    ttl: Optional[int] = typer.Option(None, help="Lifetime in seconds"),
):
    """Mint a signed token as the remote product would (for local testing)."""
    from connect_engine.common.config import get_settings
    from connect_engine.verification.schemas import RequestContext
    from connect_engine.verification.tokens import encode_token

    path_only, _, query_string = path.partition("?")
    query = tuple(parse_qsl(query_string, keep_blank_values=True))
    request = RequestContext(method=method, path=path_only, query=query)
    minted = encode_token(
        tenant_key, secret, request,
        ttl_seconds=ttl if ttl is not None else get_settings().max_token_age,
    )
    console.print(minted, soft_wrap=True)


@app.command()
def register(
    host: Optional[str] = typer.Option(None, help="Remote product URL"),
    username: Optional[str] = typer.Option(None, help="Remote product user"),
    api_token: Optional[str] = typer.Option(None, help="Remote product API token"),
):
    """Install this add-on on a remote product instance."""
    from connect_engine.common.config import get_settings

    settings = get_settings()
    with _registration_client(host, username, api_token) as client:
        if client.register(settings.descriptor_url, settings.addon_name):
            console.print(f"[bold green]Install requested[/bold green] {settings.descriptor_url}")
        else:
            console.print("[bold red]Install failed[/bold red]")
            raise typer.Exit(1)


@app.command()
def unregister(
    host: Optional[str] = typer.Option(None, help="Remote product URL"),
    username: Optional[str] = typer.Option(None, help="Remote product user"),
    api_token: Optional[str] = typer.Option(None, help="Remote product API token"),
):
    """Remove this add-on from a remote product instance."""
    from connect_engine.common.config import get_settings

    settings = get_settings()
    with _registration_client(host, username, api_token) as client:
        if client.remove_app(settings.addon_key):
            console.print(f"[bold green]Removed[/bold green] {settings.addon_key}")
        else:
            console.print("[bold red]Removal failed[/bold red]")
            raise typer.Exit(1)


@app.command()
def status(
    host: Optional[str] = typer.Option(None, help="Remote product URL"),
    username: Optional[str] = typer.Option(None, help="Remote product user"),
    api_token: Optional[str] = typer.Option(None, help="Remote product API token"),
):
    """Check whether this add-on is installed on a remote product instance."""
    from connect_engine.common.config import get_settings

    settings = get_settings()
    with _registration_client(host, username, api_token) as client:
        installed = client.is_installed(settings.addon_key)
    if installed is None:
        console.print("[bold red]Unknown[/bold red]: plugin manager did not answer")
        raise typer.Exit(1)
    label = "[bold green]installed[/bold green]" if installed else "[yellow]not installed[/yellow]"
    console.print(f"{settings.addon_key}: {label}")


@app.command()
def health(
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
):
    """Check add-on server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green] v{data['version']}")
    except (httpx.HTTPError, ValueError, KeyError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
