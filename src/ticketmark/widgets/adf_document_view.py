import logging
from typing import Any, Callable, Iterator, Mapping

from textual.app import ComposeResult
from textual.containers import Vertical, VerticalScroll
from textual.content import Content, Span
from textual.markup import parse_style
from textual.message import Message
from textual.style import Style
from textual.widget import Widget
from textual.widgets import Rule, Static

from ticketmark.config import CONFIGURATION
from ticketmark.constants import LOGGER_NAME, PANEL_STYLES
from ticketmark.models import EnrichedTicketMetadata, RenderNode, RenderOptions
from ticketmark.utils.adf_renderer import render_adf

logger = logging.getLogger(LOGGER_NAME)

PANEL_CSS = '\n'.join(
    f"""
    AdfDocumentView .panel-{kind.value} {{
        background: {style['background']};
        border-left: outer {style['border']};
    }}
    """
    for kind, style in PANEL_STYLES.items()
)

LIST_INDENT = '  '


class _ContentBuilder:
    """Accumulates text and spans of a block, keeping the actions of activatable nodes."""

    def __init__(self, resolve_style: Callable[[str], Style | str]):
        self._resolve_style = resolve_style
        self._parts: list[str] = []
        self.spans: list[Span] = []
        self.actions: list[Callable[[], None]] = []
        self.position = 0

    def add_content(self, text: str, style: str | None = None) -> None:
        start = self.position
        self._parts.append(text)
        self.position += len(text)
        if style and text:
            self.spans.append(Span(start, self.position, self._resolve_style(style)))

    def add_node(self, node: RenderNode) -> None:
        start = self.position

        if node.text is not None and not node.children:
            self.add_content(node.text)
        elif node.tag == 'reference':
            for index, child in enumerate(node.children):
                if index:
                    self.add_content(' ')
                self.add_node(child)
        else:
            for child in node.children:
                self.add_node(child)

        if node.style and self.position > start:
            self.spans.append(Span(start, self.position, self._resolve_style(node.style)))
        if node.action is not None and self.position > start:
            meta = {'@click': f'activate({len(self.actions)})'}
            self.spans.append(Span(start, self.position, Style.from_meta(meta)))
            self.actions.append(node.action)

    def add_list(self, node: RenderNode, depth: int = 0) -> None:
        ordered = node.tag == 'ordered_list'
        number = node.attrs.get('start', 1) if ordered else 1

        for item in node.children:
            marker = f'{number}. ' if ordered else '• '
            number += 1
            if self.position:
                self.add_content('\n')
            self.add_content(LIST_INDENT * depth)
            self.add_content(marker, '$text-muted')

            first = True
            for child in item.children:
                if child.tag in ('bullet_list', 'ordered_list'):
                    self.add_list(child, depth + 1)
                    continue
                if not first:
                    self.add_content('\n' + LIST_INDENT * depth + ' ' * len(marker))
                self.add_node(child)
                first = False

    def build(self) -> Content:
        return Content(''.join(self._parts), spans=self.spans)


class DocumentBlock(Static):
    """A block of the document; activatable runs invoke `action_activate` when clicked."""

    def __init__(self, content: Content, actions: list[Callable[[], None]], **kwargs):
        super().__init__(content, **kwargs)
        self._actions = actions

    def action_activate(self, index: int) -> None:
        if 0 <= index < len(self._actions):
            self._actions[index]()


class AdfDocumentView(VerticalScroll):
    """Displays an ADF document with highlighted code, mentions and enriched ticket references."""

    DEFAULT_CSS = (
        """
    AdfDocumentView {
        height: auto;
        max-height: 100%;
        padding: 0 1;
    }

    AdfDocumentView DocumentBlock {
        margin: 0 0 1 0;
    }

    AdfDocumentView .heading {
        text-style: bold;
        color: $primary;
    }

    AdfDocumentView .code-block {
        background: $surface;
        padding: 0 1;
    }

    AdfDocumentView .blockquote {
        height: auto;
        border-left: outer $secondary 50%;
        padding: 0 1;
        margin: 0 0 1 0;
    }

    AdfDocumentView .panel {
        height: auto;
        padding: 0 1;
        margin: 0 0 1 0;
    }
    """
        + PANEL_CSS
    )

    class ReferenceActivated(Message):
        """Posted when the user activates a ticket reference."""

        def __init__(self, key: str) -> None:
            super().__init__()
            self.key = key

    def __init__(
        self,
        document: Any = None,
        enriched_metadata: Mapping[str, EnrichedTicketMetadata | dict] | None = None,
        on_reference_activated: Callable[[str], None] | None = None,
        code_theme: str | None = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.document = document
        self.enriched_metadata = enriched_metadata
        self.on_reference_activated = on_reference_activated
        if code_theme is None and (configuration := CONFIGURATION.get(None)) is not None:
            code_theme = configuration.code_theme
        self.code_theme = code_theme
        self._style_cache: dict[str, Style | str] = {}
        self._css_variables: dict[str, str] | None = None

    def compose(self) -> ComposeResult:
        yield from self._build_blocks(self._render_document().children)

    async def update_document(
        self,
        document: Any,
        enriched_metadata: Mapping[str, EnrichedTicketMetadata | dict] | None = None,
    ) -> None:
        """Replace the displayed document."""
        self.document = document
        if enriched_metadata is not None:
            self.enriched_metadata = enriched_metadata
        await self.remove_children()
        await self.mount_all(list(self._build_blocks(self._render_document().children)))

    def _render_document(self) -> RenderNode:
        return render_adf(
            self.document,
            RenderOptions(
                enriched_metadata=self.enriched_metadata,
                on_reference_activated=self._reference_activated,
                code_theme=self.code_theme,
            ),
        )

    def _reference_activated(self, key: str) -> None:
        if self.on_reference_activated is not None:
            try:
                self.on_reference_activated(key)
            except Exception as e:
                logger.error(f'Reference activation callback failed for {key}: {e}')
        self.post_message(self.ReferenceActivated(key))

    def _resolve_style(self, style: str) -> Style | str:
        if style not in self._style_cache:
            if self._css_variables is None:
                try:
                    self._css_variables = self.app.get_css_variables()
                except Exception as e:
                    logger.debug(f'CSS variables are not available: {e}')
                    self._css_variables = {}
            try:
                self._style_cache[style] = parse_style(style, variables=self._css_variables)
            except Exception as e:
                logger.debug(f'Unable to parse style {style!r}: {e}')
                self._style_cache[style] = ''
        return self._style_cache[style]

    def _inline_block(self, node: RenderNode, classes: str) -> DocumentBlock:
        builder = _ContentBuilder(self._resolve_style)
        if node.tag in ('bullet_list', 'ordered_list'):
            builder.add_list(node)
        else:
            for child in node.children:
                builder.add_node(child)
        return DocumentBlock(builder.build(), builder.actions, classes=classes)

    def _build_blocks(self, nodes: list[RenderNode]) -> Iterator[Widget]:
        for node in nodes:
            if node.tag == 'heading':
                yield self._inline_block(node, f'heading h{node.attrs.get("level", 1)}')
            elif node.tag == 'code_block':
                yield self._inline_block(node, f'code-block language-{node.attrs.get("language")}')
            elif node.tag in ('bullet_list', 'ordered_list'):
                yield self._inline_block(node, 'list')
            elif node.tag == 'blockquote':
                yield Vertical(*self._build_blocks(node.children), classes='blockquote')
            elif node.tag == 'panel':
                yield Vertical(
                    *self._build_blocks(node.children), classes=' '.join(['panel', *node.classes])
                )
            elif node.tag == 'rule':
                yield Rule()
            elif node.tag == 'paragraph':
                yield self._inline_block(node, 'paragraph')
            else:
                yield self._inline_block(RenderNode('fragment', children=[node]), node.tag)
