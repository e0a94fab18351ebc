from __future__ import annotations

from typing import Optional

import typer

from .canonical import canonicalize
from .gateway.config import load_gateway_config
from .proxy_signature import generate_signature, sign_query, verify


app = typer.Typer(add_completion=False, help="proxygate: App Proxy signature gateway CLI")


def _resolve_secret(secret: Optional[str]) -> str:
    if secret:
        return secret
    config = load_gateway_config()
    if not config.shared_secret:
        typer.echo(f"Error: {config.secret_env} environment variable not set (or pass --secret)", err=True)
        raise typer.Exit(1)
    return config.shared_secret


@app.command()
def serve(
    host: str = typer.Option(None, help="Host to bind (overrides config)"),
    port: int = typer.Option(None, help="Port to bind (overrides config)"),
    reload: bool = typer.Option(False, help="Enable auto-reload (dev only)")
):
    """
    Start the gateway server.

    Example:
        proxygate serve --port 7780
    """
    import uvicorn

    config = load_gateway_config()

    if not config.secret_configured:
        typer.echo(f"Error: {config.secret_env} environment variable not set", err=True)
        raise typer.Exit(1)

    final_host = host or config.host
    final_port = port or config.port

    typer.echo(f"Starting proxygate on {final_host}:{final_port}")
    typer.echo(f"Proxy prefix: {config.proxy_prefix or '/'}")
    typer.echo(f"Subscription API: {'configured' if config.subscriptions.configured else 'not configured'}")

    uvicorn.run(
        "proxygate.gateway.app:app",
        host=final_host,
        port=final_port,
        reload=reload
    )


@app.command()
def sign(
    query: str = typer.Argument(..., help="Raw query string, e.g. 'shop=x.myshopify.com&timestamp=1'"),
    secret: Optional[str] = typer.Option(None, "--secret", help="Shared secret (defaults to configured env var)"),
):
    """Print the canonical string and signature for a query."""
    shared_secret = _resolve_secret(secret)
    canonical = canonicalize(query).canonical

    typer.echo(f"Canonical: {canonical}")
    typer.echo(f"Signature: {generate_signature(canonical, shared_secret)}")
    typer.echo(f"Signed query: {sign_query(query, shared_secret)}")


@app.command("verify")
def verify_cmd(
    query: str = typer.Argument(..., help="Raw query string including signature"),
    secret: Optional[str] = typer.Option(None, "--secret", help="Shared secret (defaults to configured env var)"),
):
    """Check a signed query. Exit code 0 if accepted, 1 if rejected."""
    shared_secret = _resolve_secret(secret)

    if verify(query, shared_secret):
        typer.echo("accepted")
        return

    if canonicalize(query).signature is None:
        typer.echo("rejected (no signature)")
    else:
        typer.echo("rejected")
    raise typer.Exit(1)


@app.command()
def status():
    """
    Show gateway configuration without secrets.

    Example:
        proxygate status
    """
    config = load_gateway_config()

    typer.echo("Gateway Configuration:")
    typer.echo(f"  Host: {config.host}")
    typer.echo(f"  Port: {config.port}")
    typer.echo(f"  Proxy prefix: {config.proxy_prefix or '/'}")
    typer.echo(f"  Shared secret configured: {'Yes' if config.secret_configured else 'No'} ({config.secret_env})")
    typer.echo(f"  Debug: {'Enabled' if config.debug else 'Disabled'}")
    typer.echo()
    typer.echo("Subscription API:")
    typer.echo(f"  Base URL: {config.subscriptions.base_url or '(not set)'}")
    typer.echo(f"  Token configured: {'Yes' if config.subscriptions.token else 'No'}")
    typer.echo()
    typer.echo(f"Audit log: {config.audit_log_path or 'disabled'}")


if __name__ == "__main__":
    app()
