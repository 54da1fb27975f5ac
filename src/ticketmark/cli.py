import json
import logging
import sys
from typing import IO

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from ticketmark.config import CONFIGURATION, ApplicationConfiguration
from ticketmark.constants import LOGGER_NAME
from ticketmark.log import setup_logging
from ticketmark.models import DeploymentKind, RenderNode, RenderOptions
from ticketmark.utils.adf_helpers import serialize_adf
from ticketmark.utils.adf_renderer import render_adf
from ticketmark.utils.description import description_to_markdown, markdown_to_native_format
from ticketmark.utils.format_detection import detect_description_format

console = Console()
logger = logging.getLogger(LOGGER_NAME)


def load_configuration() -> ApplicationConfiguration:
    try:
        settings = ApplicationConfiguration()
    except FileNotFoundError as e:
        console.print(e)
        sys.exit(1)
    except ValidationError as e:
        console.print('Configuration validation error. Make sure your config file is correct.')
        for _e in e.errors():
            if location := _e.get('loc'):
                console.print(f'Configuration error at {location[0]}: {_e.get("msg")}')
            else:
                console.print(f'Configuration error: {_e.get("msg")}')
        sys.exit(1)

    CONFIGURATION.set(settings)
    setup_logging(settings)
    return settings


def load_metadata(source: IO[str] | None) -> dict | None:
    if source is None:
        return None
    try:
        metadata = json.load(source)
    except ValueError as e:
        console.print(f'[bold red]Invalid metadata file:[/bold red] {escape(str(e))}')
        sys.exit(1)
    if not isinstance(metadata, dict):
        console.print(
            '[bold red]Invalid metadata file:[/bold red] expected an object keyed by ticket key'
        )
        sys.exit(1)
    return metadata


def build_tree(node: RenderNode, tree: Tree | None = None) -> Tree:
    """Build a rich tree that mirrors a presentation tree."""
    label = f'[bold]{node.tag}[/bold]'
    if node.text is not None and not node.children:
        label += f' {escape(repr(node.text))}'
    if node.style:
        label += f' [dim]{escape(node.style)}[/dim]'
    if node.action is not None:
        label += ' [green](activatable)[/green]'

    branch = Tree(label) if tree is None else tree.add(label)
    for child in node.children:
        build_tree(child, branch)
    return branch


@click.group(invoke_without_command=True)
@click.option(
    '--version',
    is_flag=True,
    default=False,
    help='Show the version of the tool.',
)
@click.pass_context
def cli(ctx: click.Context, version: bool = False):
    """Converts and renders ticket descriptions."""

    if version:
        from importlib.metadata import version as get_version

        console.print(get_version('ticketmark'))
        ctx.exit()

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit()

    ctx.obj = load_configuration()


@cli.command()
@click.argument('source', type=click.File('r', encoding='utf-8'), default='-')
def detect(source: IO[str]):
    """Prints the format of a description: adf, wiki, markdown or plaintext."""
    click.echo(detect_description_format(source.read()).value)


@cli.command('to-markdown')
@click.argument('source', type=click.File('r', encoding='utf-8'), default='-')
@click.pass_obj
def to_markdown(settings: ApplicationConfiguration, source: IO[str]):
    """Converts a description of any format to Markdown."""
    click.echo(description_to_markdown(source.read(), base_url=settings.base_url))


@cli.command('to-native')
@click.argument('source', type=click.File('r', encoding='utf-8'), default='-')
@click.option(
    '--deployment',
    '-d',
    type=click.Choice([kind.value for kind in DeploymentKind], case_sensitive=False),
    default=None,
    help='The kind of ticket store to convert for. Defaults to the configured deployment.',
)
@click.pass_obj
def to_native(settings: ApplicationConfiguration, source: IO[str], deployment: str | None = None):
    """Converts Markdown to the format stored by the ticket store."""
    result = markdown_to_native_format(source.read(), deployment or settings.deployment)
    click.echo(serialize_adf(result) if isinstance(result, dict) else result)


@cli.command()
@click.argument('source', type=click.File('r', encoding='utf-8'), default='-')
@click.option(
    '--metadata',
    '-m',
    type=click.File('r', encoding='utf-8'),
    default=None,
    help='A JSON file mapping ticket keys to objects with a title and a status.',
)
@click.pass_obj
def render(settings: ApplicationConfiguration, source: IO[str], metadata: IO[str] | None = None):
    """Prints the presentation tree of an ADF document."""
    options = RenderOptions(
        enriched_metadata=load_metadata(metadata),
        code_theme=settings.code_theme,
    )
    console.print(build_tree(render_adf(source.read(), options)))


@cli.command()
@click.argument('source', type=click.File('r', encoding='utf-8'), default='-')
@click.option(
    '--metadata',
    '-m',
    type=click.File('r', encoding='utf-8'),
    default=None,
    help='A JSON file mapping ticket keys to objects with a title and a status.',
)
@click.pass_obj
def view(settings: ApplicationConfiguration, source: IO[str], metadata: IO[str] | None = None):
    """Opens an ADF document in the terminal viewer."""
    from ticketmark.app import DocumentViewerApp

    document = source.read()
    DocumentViewerApp(settings, document, enriched_metadata=load_metadata(metadata)).run()


def ticketmarkCLI():
    cli()


if __name__ == '__main__':
    ticketmarkCLI()
