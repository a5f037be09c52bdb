"""init, checkout and current-branch commands."""

from __future__ import annotations

import os

import click

from ..exceptions import GitCheckoutError
from ..repo import Repo
from ._helpers import main, _dir_option, _open_repo, _require_dir, _status, _fail


@main.command()
@_dir_option
@click.option("-b", "--branch", default="main", show_default=True,
              help="Name of the initial (unborn) branch.")
@click.pass_context
def init(ctx, branch):
    """Create an empty repository in the working directory."""
    path = _require_dir(ctx)
    existed = os.path.isdir(os.path.join(path, ".git", "objects"))
    repo = Repo.init(path, branch=branch)
    if existed:
        _status(ctx, f"Repository already exists: {repo.gitdir}")
    else:
        _status(ctx, f"Initialized empty repository in {repo.gitdir}")


@main.command()
@_dir_option
@click.argument("ref")
@click.option("--remote", default="origin", show_default=True,
              help="Remote to create a tracking branch from when REF is not local.")
@click.option("-n", "--dry-run", is_flag=True, default=False,
              help="Show what would change without touching anything.")
@click.pass_context
def checkout(ctx, ref, remote, dry_run):
    """Check out REF (branch, tag or commit) into the working directory."""
    repo = _open_repo(ctx)
    try:
        result = repo.checkout(ref, remote=remote, dry_run=dry_run)
    except GitCheckoutError as exc:
        _fail(exc)
    if result.conflicts:
        for conflict in result.conflicts:
            click.echo(f"conflict: {conflict.message}", err=True)
        ctx.exit(1)
    for op in result.operations:
        line = f"{'+' if op.op == 'write' else '-'} {op.filepath}"
        if dry_run:
            click.echo(line)
        else:
            _status(ctx, line)
    if not dry_run:
        click.echo(
            f"Switched to {ref}: {len(result.writes)} written, "
            f"{len(result.unlinks)} removed"
        )


@main.command("current-branch")
@_dir_option
@click.option("--full", is_flag=True, default=False,
              help="Print the full ref name (refs/heads/...).")
@click.pass_context
def current_branch(ctx, full):
    """Print the branch HEAD points to. Exits 1 if HEAD is detached."""
    repo = _open_repo(ctx)
    try:
        name = repo.current_branch(fullname=full)
    except GitCheckoutError as exc:
        _fail(exc)
    if name is None:
        _status(ctx, "HEAD is detached")
        ctx.exit(1)
    click.echo(name)
