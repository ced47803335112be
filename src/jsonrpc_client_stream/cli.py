"""JSON-RPC client CLI.

Connects to a JSON-RPC 2.0 server over TCP or a subprocess's stdio and
sends one request or notification.

Usage:
    jsonrpc-client --tcp 127.0.0.1:4000 call add '[1, 2]'
    jsonrpc-client --command "python server.py" call ping
    jsonrpc-client --tcp 127.0.0.1:4000 --timeout 5000 notify log '{"msg": "hi"}'
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import shlex
import sys
from typing import Any

import click

from .config import ClientTransportConfig, CorrelatorConfig
from .correlator import Correlator
from .errors import JsonRpcProtocolError, ResponseTimeoutError
from .transport import create_transport


def parse_params(raw: str | None) -> list[Any] | dict[str, Any] | None:
    """Parse a params argument; must be a JSON array or object."""
    if raw is None:
        return None
    try:
        params = json.loads(raw)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"Invalid JSON: {e}", param_hint="PARAMS") from e
    if not isinstance(params, list | dict):
        raise click.BadParameter("Must be a JSON array or object", param_hint="PARAMS")
    return params


def parse_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise click.BadParameter(f"Expected HOST:PORT, got {address!r}", param_hint="--tcp")
    return host, int(port)


def build_transport_config(tcp: str | None, command: str | None) -> ClientTransportConfig:
    if bool(tcp) == bool(command):
        raise click.UsageError("Specify exactly one of --tcp or --command")
    if tcp:
        host, port = parse_address(tcp)
        return ClientTransportConfig(mode="tcp", host=host, port=port)
    return ClientTransportConfig(mode="stdio", command=shlex.split(command or ""))


@click.group()
@click.option("--tcp", help="Server address as HOST:PORT")
@click.option("--command", help="Server command to launch, talking over stdio")
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    help="Response timeout in milliseconds",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Log level (logs go to stderr)",
)
@click.pass_context
def main(
    ctx: click.Context,
    tcp: str | None,
    command: str | None,
    timeout: float | None,
    log_level: str,
) -> None:
    """JSON-RPC 2.0 client."""
    # Protocol goes to the channel, logs to stderr
    logging.basicConfig(
        level=log_level.upper(),
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = CorrelatorConfig.from_env()
        if timeout is not None:
            config = dataclasses.replace(config, timeout=timeout)
    except ValueError as e:
        raise click.UsageError(f"Invalid configuration: {e}") from e

    ctx.ensure_object(dict)
    ctx.obj["correlator_config"] = config
    ctx.obj["transport_config"] = build_transport_config(tcp, command)


async def _send(
    ctx_obj: dict[str, Any],
    method: str,
    params: list[Any] | dict[str, Any] | None,
    notify: bool,
) -> Any:
    correlator = Correlator(ctx_obj["correlator_config"])
    correlator.on("error", lambda e: click.echo(f"Warning: {e}", err=True))
    transport = create_transport(ctx_obj["transport_config"], correlator)

    async with transport:
        if notify:
            correlator.notify(method, params)
            # Let the deferred flush run, then push it out
            await asyncio.sleep(0)
            await transport.drain()
            return None
        return await correlator.call(method, params)


@main.command()
@click.argument("method")
@click.argument("params", required=False)
@click.pass_obj
def call(obj: dict[str, Any], method: str, params: str | None) -> None:
    """Send a request and print its result as JSON."""
    try:
        result = asyncio.run(_send(obj, method, parse_params(params), notify=False))
    except ResponseTimeoutError as e:
        click.echo(f"Error: {e.message} (code {e.code})", err=True)
        sys.exit(1)
    except JsonRpcProtocolError as e:
        click.echo(f"Error: {e.message} (code {e.code})", err=True)
        if e.data is not None:
            click.echo(json.dumps(e.data, indent=2), err=True)
        sys.exit(1)
    except ConnectionError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(json.dumps(result, indent=2))


@main.command()
@click.argument("method")
@click.argument("params", required=False)
@click.pass_obj
def notify(obj: dict[str, Any], method: str, params: str | None) -> None:
    """Send a notification (no response expected)."""
    try:
        asyncio.run(_send(obj, method, parse_params(params), notify=True))
    except ConnectionError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
