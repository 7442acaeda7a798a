import logging
import pathlib
import typing

import click

from . import __doc__, __version__
from .context import Context
from .gpg import GPG
from .reencrypt import ReencryptReport
from .spells import vault
from .store import Store
from .utils import find_git_directory

log = logging.getLogger(__name__)


class PathType(click.Path):
    def convert(self, value, param, ctx):
        return pathlib.Path(super().convert(value, param, ctx))


def context() -> Context:
    meta = click.get_current_context().meta
    correlation = meta.get('gringotts.correlation')
    timeout = meta.get('gringotts.timeout')
    if timeout is None:
        return Context(correlation=correlation)
    return Context.with_timeout(timeout, correlation=correlation)


def show(report: ReencryptReport) -> None:
    for path in report.succeeded:
        click.echo(f"Re-encrypted {click.style(path, fg='green')}")


scope_option = click.option(
    '-s', '--scope',
    metavar='DIRECTORY',
    default='',
    help="Directory whose recipients are changed. Defaults to the store root.")

recipient_argument = click.argument(
    'recipient',
    type=click.STRING,
    required=True)


@click.group(help=__doc__)
@click.option(
    '-p', '--path',
    type=PathType(
        file_okay=False,
        dir_okay=True,
        exists=True),
    default=find_git_directory,
    required=True,
    help="Defaults to the current git repository.")
@click.option(
    '-a', '--alias',
    default='',
    help="Name of the store, used in messages.")
@click.option(
    '-d', '--debug', 'debug',
    default=False,
    is_flag=True,
    help="Enable debug logging.")
@click.option(
    '-v', '--verbose', 'gpg_verbose',
    default=False,
    is_flag=True,
    help="Display GPG's normal STDERR output.")
@click.option(
    '--gpg-home',
    type=PathType(file_okay=False, dir_okay=True),
    envvar='GNUPGHOME',
    default=None,
    help="GPG home directory.")
@click.option(
    '--always-trust/--no-always-trust',
    default=False,
    help="Encrypt for recipients whose keys are not trusted.")
@click.option(
    '--correlation',
    envvar='GRINGOTTS_CORRELATION',
    default=None,
    help="Token added to the description of each recorded change.")
@click.option(
    '--timeout',
    type=click.FLOAT,
    envvar='GRINGOTTS_TIMEOUT',
    default=None,
    help="Seconds to allow before stopping, leaving the remaining secrets as they are.")
@click.pass_context
def main(
        ctx,
        path: pathlib.Path,
        alias: str,
        debug: bool,
        gpg_verbose: bool,
        gpg_home: typing.Optional[pathlib.Path],
        always_trust: bool,
        correlation: typing.Optional[str],
        timeout: typing.Optional[float]):
    logging.basicConfig(level=(logging.DEBUG if debug else logging.WARNING))
    ctx.meta['gringotts.correlation'] = correlation
    ctx.meta['gringotts.timeout'] = timeout
    ctx.obj = vault(path, alias=alias, crypto=GPG(
        verbose=gpg_verbose,
        home=gpg_home,
        always_trust=always_trust,
        timeout=timeout))


@main.command()
def version():
    """Show the application version."""
    click.echo(f"gringotts {__version__}")


@main.command()
@click.argument('path', default='', required=False)
@click.pass_obj
def ls(store: Store, path: str):
    """List the recipients of a secret or directory."""
    for recipient in store.get_recipients(path, context()):
        click.echo(recipient)


@main.command()
@click.pass_obj
def ls_all(store: Store):
    """List everyone who can decrypt something in the store."""
    for recipient in store.list_recipients(context()):
        click.echo(recipient)


@main.command()
@click.pass_obj
def scopes(store: Store):
    """List directories with their own recipients."""
    for scope in store.scopes(context()):
        click.echo(store.id_file(scope))


@main.command()
@scope_option
@recipient_argument
@click.pass_obj
def add(store: Store, scope: str, recipient: str):
    """Add a recipient and re-encrypt the secrets they can now read."""
    show(store.add_recipient(recipient, context(), scope=scope))


@main.command()
@scope_option
@recipient_argument
@click.pass_obj
def rm(store: Store, scope: str, recipient: str):
    """Remove a recipient and re-encrypt the secrets they could read."""
    show(store.remove_recipient(recipient, context(), scope=scope))


@main.command()
@click.argument('scope', required=True)
@click.pass_obj
def unscope(store: Store, scope: str):
    """Remove the recipients of a directory so it inherits them again."""
    show(store.remove_scope(scope, context()))


@main.command()
@click.pass_obj
def save(store: Store):
    """Save the recipients of the store root again."""
    store.save_recipients(context())


@main.command()
@scope_option
@click.argument('secrets', required=False, nargs=-1)
@click.pass_obj
def reencrypt(store: Store, scope: str, secrets: typing.Sequence[str]):
    """
    Re-encrypt secrets for their current recipients.

    If no secrets are given, re-encrypts every secret in the scope.
    """
    show(store.reencrypt(scope, context(), paths=(secrets or None)))
