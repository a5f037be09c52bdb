"""Ref inspection commands."""

from __future__ import annotations

import click

from ..exceptions import GitCheckoutError
from ..refs import DEFAULT_DEPTH
from ._helpers import main, _dir_option, _open_repo, _fail


@main.command()
@_dir_option
@click.argument("ref")
@click.option("--depth", type=int, default=DEFAULT_DEPTH, show_default=True,
              help="Maximum number of symbolic hops to follow.")
@click.pass_context
def resolve(ctx, ref, depth):
    """Print the object id REF points to."""
    repo = _open_repo(ctx)
    try:
        click.echo(repo.refs.resolve(ref, depth=depth))
    except GitCheckoutError as exc:
        _fail(exc)


@main.command()
@_dir_option
@click.argument("ref")
@click.pass_context
def expand(ctx, ref):
    """Print the full name of REF (e.g. main -> refs/heads/main)."""
    repo = _open_repo(ctx)
    try:
        click.echo(repo.refs.expand(ref))
    except GitCheckoutError as exc:
        _fail(exc)
