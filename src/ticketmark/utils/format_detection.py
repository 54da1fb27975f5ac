"""Classification of ticket descriptions into ADF, wiki markup, Markdown or plain text."""

import json
import logging
import re
from typing import Any

from ticketmark.constants import LOGGER_NAME
from ticketmark.models import DescriptionFormat

logger = logging.getLogger(LOGGER_NAME)

WIKI_SIGNATURES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ('heading', re.compile(r'^\s*h[1-6]\.\s', re.MULTILINE)),
    ('code macro', re.compile(r'\{code(:[^}\n]*)?\}')),
    ('quote macro', re.compile(r'\{quote\}')),
    ('panel macro', re.compile(r'\{panel')),
    ('noformat macro', re.compile(r'\{noformat\}')),
    ('monospace', re.compile(r'\{\{[^}\n]+\}\}')),
    ('piped link', re.compile(r'\[[^\]|\n]+\|[^\]\n]+\]')),
    ('nested list', re.compile(r'^(?:\*{2,}|#+\*[*#]*|\*+#[*#]*)\s+\S', re.MULTILINE)),
)
"""Wiki idioms that have no Markdown reading."""

AMBIGUOUS_WIKI_SIGNATURES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ('bullet list', re.compile(r'^\*\s+', re.MULTILINE)),
    ('ordered list', re.compile(r'^#\s+', re.MULTILINE)),
    ('rule', re.compile(r'^-{4,}\s*$', re.MULTILINE)),
    ('bold', re.compile(r'(?<![\w*])\*(?![\s*])[^*\n]+?(?<![\s*])\*(?![\w*])')),
    ('italic', re.compile(r'(?<![\w_])_(?![\s_])[^_\n]+?(?<![\s_])_(?![\w_])')),
    ('strikethrough', re.compile(r'(?<![\w-])-(?![\s-])[^-\n]+?(?<![\s-])-(?![\w-])')),
    ('underline', re.compile(r'(?<![\w+])\+(?![\s+])[^+\n]+?(?<![\s+])\+(?![\w+])')),
    ('superscript', re.compile(r'\^(?!\s)[^^\n]+?\^')),
    ('subscript', re.compile(r'(?<!~)~(?![\s~])[^~\n]+?(?<![\s~])~(?!~)')),
)
"""Wiki idioms that are also valid Markdown, only trusted when no Markdown idiom is present."""

MARKDOWN_SIGNATURES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ('heading', re.compile(r'^#{1,6}\s', re.MULTILINE)),
    ('fenced code', re.compile(r'```[\s\S]*?```')),
    ('bold', re.compile(r'\*\*[^*\n]+\*\*')),
    ('link', re.compile(r'\[[^\]\n]+\]\([^)\n]+\)')),
    ('blockquote', re.compile(r'^>\s', re.MULTILINE)),
    ('bullet list', re.compile(r'^[-*+]\s', re.MULTILINE)),
    ('ordered list', re.compile(r'^\d+\.\s', re.MULTILINE)),
    ('rule', re.compile(r'^ {0,3}(?:-{3,}|\*{3,}|_{3,})\s*$', re.MULTILINE)),
)


def _first_signature(text: str, signatures: tuple[tuple[str, re.Pattern[str]], ...]) -> str | None:
    for name, pattern in signatures:
        if pattern.search(text):
            return name
    return None


def is_adf_document(value: Any) -> bool:
    """Check whether a value is an ADF document or the JSON serialization of one.

    Args:
        value: a parsed document or a string of unknown format

    Returns:
        True if the value has the `{"type": "doc", "content": [...]}` shape
    """
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return False
    return (
        isinstance(value, dict)
        and value.get('type') == 'doc'
        and isinstance(value.get('content'), list)
    )


def is_wiki_markup(text: str) -> bool:
    """Check whether a text carries any wiki markup idiom, ambiguous ones included."""
    if not text or not isinstance(text, str):
        return False
    return bool(
        _first_signature(text, WIKI_SIGNATURES) or _first_signature(text, AMBIGUOUS_WIKI_SIGNATURES)
    )


def has_markdown_syntax(text: str) -> bool:
    if not text or not isinstance(text, str):
        return False
    return _first_signature(text, MARKDOWN_SIGNATURES) is not None


def detect_description_format(description: str | None) -> DescriptionFormat:
    """Detect the format of a ticket description.

    The checks run in priority order and the first one that matches wins: ADF JSON,
    unambiguous wiki idioms, Markdown idioms, wiki idioms that are also valid Markdown.

    Args:
        description: the raw description

    Returns:
        The detected format, `PLAINTEXT` when nothing matches or the input is empty
    """
    if not description or not isinstance(description, str):
        return DescriptionFormat.PLAINTEXT

    if is_adf_document(description):
        return DescriptionFormat.ADF

    if signature := _first_signature(description, WIKI_SIGNATURES):
        logger.debug(f'Detected wiki markup by its {signature} signature')
        return DescriptionFormat.WIKI

    if signature := _first_signature(description, MARKDOWN_SIGNATURES):
        logger.debug(f'Detected Markdown by its {signature} signature')
        return DescriptionFormat.MARKDOWN

    if signature := _first_signature(description, AMBIGUOUS_WIKI_SIGNATURES):
        logger.debug(f'Detected wiki markup by its {signature} signature')
        return DescriptionFormat.WIKI

    return DescriptionFormat.PLAINTEXT
