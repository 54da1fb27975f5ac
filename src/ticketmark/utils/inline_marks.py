"""Inline Markdown span parsing into ADF text runs."""

import re

from ticketmark.models import MarkType

# Tried in this order at every position, so a tie at the same offset goes to the
# earlier entry: `**x**` inside backticks stays a single code run.
INLINE_PATTERNS: tuple[tuple[re.Pattern[str], MarkType], ...] = (
    (re.compile(r'`([^`]+)`'), MarkType.CODE),
    (re.compile(r'\*\*(?!\s)([^*]+?)(?<!\s)\*\*'), MarkType.STRONG),
    (re.compile(r'(?<!\w)__(?!\s)([^_]+?)(?<!\s)__(?!\w)'), MarkType.STRONG),
    (re.compile(r'\*(?!\s)([^*]+?)(?<!\s)\*'), MarkType.EM),
    (re.compile(r'(?<!\w)_(?!\s)([^_]+?)(?<!\s)_(?!\w)'), MarkType.EM),
    (re.compile(r'~~(?!\s)([^~]+?)(?<!\s)~~'), MarkType.STRIKE),
    (re.compile(r'\[([^\]]+)\]\(([^)\s]+)\)'), MarkType.LINK),
)


def _text_node(text: str, mark_type: MarkType | None = None, href: str | None = None) -> dict:
    node: dict = {'type': 'text', 'text': text}
    if mark_type is MarkType.LINK:
        node['marks'] = [{'type': mark_type.value, 'attrs': {'href': href}}]
    elif mark_type is not None:
        node['marks'] = [{'type': mark_type.value}]
    return node


def parse_inline_content(line: str) -> list[dict]:
    """Parse inline Markdown spans of a single line into ADF text nodes.

    The parser scans for the earliest match among a fixed set of patterns and never
    nests marks, so `***both***` is not understood as bold and italic. It never
    fails: in the worst case the whole line becomes one unmarked text node.

    Args:
        line: a line of Markdown text

    Returns:
        List of ADF text nodes, an empty list for an empty line
    """
    if not line:
        return []

    nodes: list[dict] = []
    position = 0

    while position < len(line):
        earliest: tuple[re.Match[str], MarkType] | None = None

        for pattern, mark_type in INLINE_PATTERNS:
            match = pattern.search(line, position)
            if match and (earliest is None or match.start() < earliest[0].start()):
                earliest = (match, mark_type)

        if earliest is None:
            nodes.append(_text_node(line[position:]))
            break

        match, mark_type = earliest
        if match.start() > position:
            nodes.append(_text_node(line[position : match.start()]))

        if mark_type is MarkType.LINK:
            nodes.append(_text_node(match.group(1), mark_type, href=match.group(2)))
        else:
            nodes.append(_text_node(match.group(1), mark_type))

        position = match.end()

    return nodes
