"""Shared helpers, option decorators, and the main CLI group."""

from __future__ import annotations

import logging
import os

import click

from ..exceptions import GitCheckoutError
from ..repo import Repo


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _status(ctx, msg):
    """Emit a status message to stderr when verbose mode (-v) is on."""
    if ctx.obj.get("verbose"):
        click.echo(msg, err=True)


def _store_dir(ctx, param, value):
    """Click callback: store --dir value in the context."""
    ctx.ensure_object(dict)
    if value is not None:
        ctx.obj["dir"] = value
    return value


def _dir_option(f):
    """Shared --dir/-C option decorator for all commands."""
    return click.option(
        "--dir", "-C", type=click.Path(file_okay=False), envvar="GITCHECKOUT_DIR",
        help="Working directory of the repository (or set GITCHECKOUT_DIR).",
        expose_value=False, callback=_store_dir, is_eager=True,
    )(f)


def _require_dir(ctx) -> str:
    """Get the working directory from context, defaulting to the cwd."""
    return ctx.obj.get("dir") or os.getcwd()


def _open_repo(ctx) -> Repo:
    try:
        return Repo.open(_require_dir(ctx))
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc))


def _fail(exc: GitCheckoutError):
    """Convert a library error into a ClickException."""
    raise click.ClickException(str(exc)) from exc


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--dir", "-C", type=click.Path(file_okay=False), envvar="GITCHECKOUT_DIR",
              help="Working directory of the repository (or set GITCHECKOUT_DIR).",
              expose_value=False, callback=_store_dir, is_eager=True)
@click.option("-v", "--verbose", is_flag=True, help="Verbose output on stderr.")
@click.pass_context
def main(ctx, verbose):
    """gitcheckout: switch a git working directory between refs.

    \b
    Quick start:
      gitcheckout init -C work
      gitcheckout -C work checkout feature
      gitcheckout -C work current-branch

    \b
    Checkout refuses to run when local changes would be overwritten;
    each conflicting path is printed and the exit status is 1.
    Set GITCHECKOUT_DIR to avoid passing --dir on every call.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
