"""Rendering of ADF documents into a presentation tree of `RenderNode`."""

from functools import partial
import logging
from typing import Any, Callable

from ticketmark.constants import LOGGER_NAME, PANEL_STYLES
from ticketmark.exceptions import DocumentException, HighlightingException
from ticketmark.models import (
    EnrichedTicketMetadata,
    MarkType,
    NodeType,
    RenderNode,
    RenderOptions,
)
from ticketmark.utils.adf_helpers import heading_level, load_adf_document, panel_type
from ticketmark.utils.highlighting import highlight_code, resolve_language
from ticketmark.utils.styling import map_status_to_color
from ticketmark.utils.urls import extract_work_item_key_from_url

logger = logging.getLogger(LOGGER_NAME)

MARK_ORDER = (
    MarkType.STRONG,
    MarkType.EM,
    MarkType.CODE,
    MarkType.STRIKE,
    MarkType.UNDERLINE,
    MarkType.LINK,
)
"""Nesting order of mark wrappers, outermost first."""

MARK_STYLES = {
    MarkType.STRONG: 'bold',
    MarkType.EM: 'italic',
    MarkType.CODE: '$text-accent on $surface',
    MarkType.STRIKE: 'strike',
    MarkType.UNDERLINE: 'underline',
    MarkType.LINK: 'underline $text-primary',
}

STATUS_DOT = '●'


def _children(node: dict) -> list[dict]:
    content = node.get('content')
    if not isinstance(content, list):
        return []
    return [child for child in content if isinstance(child, dict)]


def _attrs(node: dict) -> dict:
    attrs = node.get('attrs')
    return attrs if isinstance(attrs, dict) else {}


class AdfRenderer:
    """Renders ADF nodes depth-first through a handler per node type."""

    def __init__(self, options: RenderOptions | None = None):
        self.options = options or RenderOptions()
        self.handlers: dict[NodeType, Callable[[dict], RenderNode]] = {
            NodeType.DOC: lambda node: RenderNode('document', children=self._render_children(node)),
            NodeType.PARAGRAPH: lambda node: RenderNode(
                'paragraph', children=self._render_children(node)
            ),
            NodeType.HEADING: self._heading,
            NodeType.CODE_BLOCK: self._code_block,
            NodeType.BULLET_LIST: lambda node: RenderNode(
                'bullet_list', children=self._render_children(node)
            ),
            NodeType.ORDERED_LIST: self._ordered_list,
            NodeType.LIST_ITEM: lambda node: RenderNode(
                'list_item', children=self._render_children(node)
            ),
            NodeType.BLOCKQUOTE: lambda node: RenderNode(
                'blockquote', children=self._render_children(node)
            ),
            NodeType.PANEL: self._panel,
            NodeType.RULE: lambda node: RenderNode('rule'),
            NodeType.HARD_BREAK: lambda node: RenderNode('line_break', text='\n'),
            NodeType.MENTION: self._mention,
            NodeType.INLINE_CARD: self._inline_card,
            NodeType.TEXT: self._text,
        }

    def render(self, node: Any) -> list[RenderNode]:
        """Render a node, or the content of a node of unknown type."""
        node_type = NodeType.from_node(node)
        if node_type is None:
            return self._render_children(node) if isinstance(node, dict) else []
        return [self.handlers[node_type](node)]

    def _render_children(self, node: dict) -> list[RenderNode]:
        rendered = []
        for child in _children(node):
            rendered.extend(self.render(child))
        return rendered

    def _heading(self, node: dict) -> RenderNode:
        level = heading_level(node)
        return RenderNode(
            'heading',
            children=self._render_children(node),
            attrs={'level': level},
            classes=[f'h{level}'],
        )

    def _ordered_list(self, node: dict) -> RenderNode:
        try:
            start = int(_attrs(node).get('order', 1))
        except (TypeError, ValueError):
            start = 1
        return RenderNode(
            'ordered_list', children=self._render_children(node), attrs={'start': start}
        )

    def _code_block(self, node: dict) -> RenderNode:
        language = _attrs(node).get('language')
        lexer_name = resolve_language(language)
        code = ''.join(
            child['text'] for child in _children(node) if isinstance(child.get('text'), str)
        )
        attrs = {'language': lexer_name, 'highlighted': False}

        try:
            runs = highlight_code(code, lexer_name, self.options.code_theme)
        except HighlightingException as e:
            logger.debug(f'Rendering code block without highlighting: {e}')
            return RenderNode('code_block', children=[RenderNode('text', text=code)], attrs=attrs)

        attrs['highlighted'] = True
        return RenderNode(
            'code_block',
            children=[RenderNode('token', text=text, style=style) for text, style in runs],
            attrs=attrs,
        )

    def _panel(self, node: dict) -> RenderNode:
        kind = panel_type(node)
        return RenderNode(
            'panel',
            children=self._render_children(node),
            attrs={'panel_type': kind.value, **PANEL_STYLES[kind]},
            classes=[f'panel-{kind.value}'],
        )

    def _mention(self, node: dict) -> RenderNode:
        attrs = _attrs(node)
        account_id = attrs.get('id')
        label = attrs.get('text')
        if not label or not isinstance(label, str):
            label = f'@{account_id}' if account_id else '@unknown'
        return RenderNode(
            'mention',
            text=label,
            attrs={'id': account_id},
            style='bold $text-accent',
            classes=['mention'],
        )

    def _inline_card(self, node: dict) -> RenderNode:
        url = _attrs(node).get('url')
        url = url if isinstance(url, str) else ''
        key = extract_work_item_key_from_url(url)

        metadata = None
        if key and self.options.enriched_metadata:
            try:
                value = self.options.enriched_metadata.get(key)
                metadata = EnrichedTicketMetadata.from_value(value)
            except (AttributeError, TypeError) as e:
                logger.warning(f'Ignoring malformed metadata of {key}: {e}')

        callback = self.options.on_reference_activated
        action = partial(callback, key) if callback and key else None

        if key and metadata:
            return self._reference(key, url, metadata, action)

        return RenderNode(
            'link',
            text=key or url,
            attrs={'href': url, 'key': key},
            style=MARK_STYLES[MarkType.LINK] if action else None,
            classes=['reference-link'],
            action=action,
        )

    @staticmethod
    def _reference(
        key: str, url: str, metadata: EnrichedTicketMetadata, action: Callable[[], None] | None
    ) -> RenderNode:
        color = map_status_to_color(metadata.status)
        children = [
            RenderNode('status_dot', text=STATUS_DOT, style=color),
            RenderNode('key', text=key, style='bold'),
            RenderNode('title', text=metadata.title),
        ]
        if metadata.status:
            children.append(RenderNode('status', text=metadata.status, style=f'on {color}'))
        return RenderNode(
            'reference',
            children=children,
            attrs={'href': url, 'key': key, **metadata.as_dict()},
            classes=['reference'],
            action=action,
        )

    def _text(self, node: dict) -> RenderNode:
        text = node.get('text')
        rendered = RenderNode('text', text=text if isinstance(text, str) else '')

        marks: dict[MarkType, dict] = {}
        raw_marks = node.get('marks')
        for mark in raw_marks if isinstance(raw_marks, list) else []:
            if not isinstance(mark, dict):
                continue
            try:
                marks.setdefault(MarkType(mark.get('type')), mark)
            except ValueError:
                continue

        for mark_type in reversed(MARK_ORDER):
            if mark_type not in marks:
                continue
            attrs = {}
            if mark_type is MarkType.LINK:
                attrs['href'] = _attrs(marks[mark_type]).get('href') or ''
            rendered = RenderNode(
                mark_type.value, children=[rendered], attrs=attrs, style=MARK_STYLES[mark_type]
            )

        return rendered


def render_adf(adf: Any, options: RenderOptions | None = None) -> RenderNode:
    """Render an ADF document into a presentation tree.

    Malformed input never raises: it renders as an empty document.

    Args:
        adf: the ADF document, or its JSON serialization
        options: enrichment data, activation callback and code theme

    Returns:
        The root `RenderNode`, tagged 'document'
    """
    try:
        document = load_adf_document(adf)
    except DocumentException as e:
        logger.warning(f'Unable to render document: {e}')
        return RenderNode('document')

    try:
        return AdfRenderer(options).handlers[NodeType.DOC](document)
    except Exception as e:
        logger.error(f'Failed to render document: {e}')
        return RenderNode('document')
