import logging

from ticketmark.constants import LOGGER_NAME
from ticketmark.models import DeploymentKind, DescriptionFormat
from ticketmark.utils.adf_helpers import convert_adf_to_markdown, text_to_adf
from ticketmark.utils.format_detection import detect_description_format
from ticketmark.utils.wiki_markup import markdown_to_wiki, wiki_to_markdown

logger = logging.getLogger(LOGGER_NAME)


def description_to_markdown(raw: str | dict | None, base_url: str | None = None) -> str:
    """Normalize a ticket description of any supported format into Markdown.

    Args:
        raw: the description as stored, or an already parsed ADF document
        base_url: base URL of the instance, used to build mention links

    Returns:
        Markdown text; an empty string when there is no description
    """
    if not raw:
        return ''

    if isinstance(raw, dict):
        return convert_adf_to_markdown(raw, base_url)

    if not isinstance(raw, str):
        logger.warning(f'Unexpected description type: {type(raw).__name__}')
        return ''

    description_format = detect_description_format(raw)
    if description_format is DescriptionFormat.ADF:
        return convert_adf_to_markdown(raw, base_url)
    if description_format is DescriptionFormat.WIKI:
        return wiki_to_markdown(raw)
    return raw


def markdown_to_native_format(markdown: str | None, deployment: DeploymentKind | str) -> str | dict:
    """Convert Markdown into the format stored by the given deployment.

    Args:
        markdown: the Markdown text
        deployment: the kind of ticket store, or its value ('cloud', 'server')

    Returns:
        Wiki markup for server deployments, an ADF document for cloud deployments. An unknown
        deployment is treated as cloud.
    """
    try:
        kind = DeploymentKind(
            deployment.strip().lower() if isinstance(deployment, str) else deployment
        )
    except ValueError:
        logger.warning(f'Unknown deployment kind {deployment!r}, converting for cloud')
        kind = DeploymentKind.CLOUD

    if kind is DeploymentKind.SERVER:
        return markdown_to_wiki(markdown)
    return text_to_adf(markdown or '')
