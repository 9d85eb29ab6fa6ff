import asyncio
import dataclasses
import functools
import json
from collections.abc import Callable, Sequence
from typing import Any

import click

from platz._cogs.clients import errors
from platz._cogs.configs import configuration
from platz._cogs.helpers import versions
from platz._cogs.structs import credentials
from platz._core.engines import loggers
from platz._kits import client


@dataclasses.dataclass()
class CLIControls:
    """ Client controls, which are impossible to pass via CLI (e.g. in tests). """
    vault: credentials.Vault | None = None
    settings: configuration.ClientSettings | None = None


class LogFormatParamType(click.Choice):

    def __init__(self) -> None:
        super().__init__(choices=[v.name.lower() for v in loggers.LogFormat])

    def convert(self, value: Any, param: Any, ctx: Any) -> loggers.LogFormat:
        if isinstance(value, loggers.LogFormat):
            return value
        name: str = super().convert(value, param, ctx)
        return loggers.LogFormat[name.upper()]


def logging_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """ A decorator to configure logging in all commands the same way."""
    @click.option('-v', '--verbose', is_flag=True)
    @click.option('-d', '--debug', is_flag=True)
    @click.option('-q', '--quiet', is_flag=True)
    @click.option('--log-format', type=LogFormatParamType(), default='full')
    @click.option('--log-refkey', type=str)
    @click.option('--log-prefix/--no-log-prefix', default=None)
    @functools.wraps(fn)  # to preserve other opts/args
    def wrapper(verbose: bool, quiet: bool, debug: bool,
                log_format: loggers.LogFormat = loggers.LogFormat.FULL,
                log_prefix: bool | None = False,
                log_refkey: str | None = None,
                *args: Any, **kwargs: Any) -> Any:
        loggers.configure(debug=debug, verbose=verbose, quiet=quiet,
                          log_format=log_format, log_refkey=log_refkey, log_prefix=log_prefix)
        return fn(*args, **kwargs)

    return wrapper


class QueryParamType(click.ParamType):
    name = 'key=value'

    def convert(self, value: Any, param: Any, ctx: Any) -> tuple[str, str]:
        if isinstance(value, tuple):
            return value
        key, sep, val = str(value).partition('=')
        if not sep or not key:
            self.fail(f"Expected key=value, got {value!r}.", param, ctx)
        return key, val


@click.version_option(package_name=versions.DISTRIBUTION, prog_name='platz')
@click.group(name='platz', context_settings=dict(
    auto_envvar_prefix='PLATZ',
))
def main() -> None:
    pass


def _make_settings(
        controls: CLIControls,
        *,
        profile: str | None = None,
        page_size: int | None = None,
) -> configuration.ClientSettings:
    settings = controls.settings if controls.settings is not None else configuration.ClientSettings()
    if profile is not None:
        settings.credentials.profile = profile
    if page_size is not None:
        settings.pagination = configuration.PaginationSettings(page_size=page_size)
    return settings


@main.command()
@logging_options
@click.option('--profile', type=str, default=None, help="The profile from the config file.")
@click.make_pass_decorator(CLIControls, ensure=True)
def login(
        __controls: CLIControls,
        profile: str | None,
) -> None:
    """ Resolve the credentials and show where they come from (never the token). """
    settings = _make_settings(__controls, profile=profile)

    async def _login() -> credentials.ConnectionInfo:
        async with client.PlatzClient(settings=settings, vault=__controls.vault) as platz:
            return await platz.connection_info()

    try:
        info = asyncio.run(_login())
    except errors.PlatzError as e:
        raise click.ClickException(str(e))

    click.echo(f"Server: {info.server}")
    click.echo(f"Scheme: {info.scheme.value}")
    click.echo(f"Source: {info.source or 'unknown'}")
    click.echo(f"Expires: {info.expires_at.isoformat() if info.expires_at else 'never'}")


@main.command()
@logging_options
@click.option('--profile', type=str, default=None, help="The profile from the config file.")
@click.option('-p', '--param', 'params', type=QueryParamType(), multiple=True,
              help="A query parameter; can be repeated; the last one wins.")
@click.option('--all', 'mode', flag_value='all', help="Fetch all pages of a listing.")
@click.option('--one', 'mode', flag_value='one', help="Fetch exactly one item of a listing.")
@click.option('--page-size', type=click.IntRange(min=1), default=None)
@click.argument('path')
@click.make_pass_decorator(CLIControls, ensure=True)
def get(
        __controls: CLIControls,
        path: str,
        params: Sequence[tuple[str, str]],
        mode: str | None,
        profile: str | None,
        page_size: int | None,
) -> None:
    """ Send a GET request to the API and print the JSON result. """
    settings = _make_settings(__controls, profile=profile, page_size=page_size)

    async def _get() -> Any:
        async with client.PlatzClient(settings=settings, vault=__controls.vault) as platz:
            if mode == 'all':
                return await platz.list_all(path, query=params)
            elif mode == 'one':
                return await platz.list_one(path, query=params)
            else:
                return await platz.get(path, query=params)

    try:
        result = asyncio.run(_get())
    except errors.PlatzError as e:
        raise click.ClickException(str(e))

    click.echo(json.dumps(result, indent=2))
