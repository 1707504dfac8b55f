"""RexPro command line client.

Usage:
    rexpro execute "g.V.count()"                     # Run a script
    rexpro execute "g.V.has('name', n)" -b n=saturn  # With bindings
    rexpro execute "x" --session <uuid>              # Inside a session
    rexpro session open                              # Print a new session UUID
    rexpro session close <uuid>                      # Close a session

Connection options may also come from REXPRO_HOST, REXPRO_PORT,
REXPRO_SERIALIZER and REXPRO_GRAPH.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Coroutine
from typing import Any, TypeVar

import click

from .client import RexProClient
from .config import DEFAULT_PORT
from .errors import RexProError

T = TypeVar("T")


def parse_binding(text: str) -> tuple[str, Any]:
    """Parse NAME=VALUE; VALUE is read as JSON when it parses, else as a string."""
    name, sep, raw = text.partition("=")
    if not sep or not name:
        raise click.BadParameter(f"Expected NAME=VALUE, got {text!r}")
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    return name, value


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a client call, turning RexPro errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except RexProError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.option("--host", default="localhost", envvar="REXPRO_HOST", help="Server host")
@click.option("--port", default=DEFAULT_PORT, envvar="REXPRO_PORT", help="Server port")
@click.option(
    "--serializer",
    type=click.Choice(["json", "msgpack"]),
    default="json",
    envvar="REXPRO_SERIALIZER",
    help="Body encoding",
)
@click.option("--graph", default="tinkerpop", envvar="REXPRO_GRAPH", help="Graph name")
@click.option("--verbose", "-v", is_flag=True, help="Log protocol activity to stderr")
@click.pass_context
def main(
    ctx: click.Context,
    host: str,
    port: int,
    serializer: str,
    graph: str,
    verbose: bool,
) -> None:
    """RexPro client for Rexster graph servers."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.obj = RexProClient(host=host, port=port, serializer=serializer, graph=graph)


@main.command()
@click.argument("script")
@click.option("--binding", "-b", "bindings", multiple=True, help="Binding as NAME=VALUE")
@click.option("--session", "session_id", help="Run inside this session")
@click.option("--language", help="Script language (default: groovy)")
@click.option("--no-isolate", is_flag=True, help="Keep bindings between session requests")
@click.pass_obj
def execute(
    client: RexProClient,
    script: str,
    bindings: tuple[str, ...],
    session_id: str | None,
    language: str | None,
    no_isolate: bool,
) -> None:
    """Execute SCRIPT and print its results as JSON."""
    parsed = dict(parse_binding(b) for b in bindings)
    options: dict[str, Any] = {"language": language}
    if no_isolate:
        options["isolate"] = False
    results = _run(client.execute(script, parsed, session=session_id, **options))
    click.echo(json.dumps(results, indent=2, ensure_ascii=False, default=str))


@main.group()
def session() -> None:
    """Open and close server-side sessions."""


@session.command("open")
@click.option("--username", default="", help="Username (if the server authenticates)")
@click.option("--password", default="", help="Password (if the server authenticates)")
@click.pass_obj
def session_open(client: RexProClient, username: str, password: str) -> None:
    """Open a session and print its UUID."""
    click.echo(_run(client.open_session(username, password)))


@session.command("close")
@click.argument("session_id")
@click.pass_obj
def session_close(client: RexProClient, session_id: str) -> None:
    """Close SESSION_ID."""
    _run(client.close_session(session_id))
    click.echo("closed")


if __name__ == "__main__":
    main()
