"""Conversion between Jira wiki markup and Markdown.

Wiki markup is read with a line-oriented regex grammar. Markdown is parsed with
markdown-it-py and its syntax tree is rendered back as wiki markup.
"""

import logging
import re
from typing import Callable

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

from ticketmark.constants import LOGGER_NAME, PANEL_EMOJIS, PANEL_WIKI_MACROS, WIKI_PANEL_MACROS
from ticketmark.exceptions import ConversionException

logger = logging.getLogger(LOGGER_NAME)

PLACEHOLDER = '\x00{}\x00'
PLACEHOLDER_PATTERN = re.compile(r'\x00(\d+)\x00')


def _normalize_newlines(text: str) -> str:
    return text.replace('\r\n', '\n').replace('\r', '\n')


def _quote(text: str) -> str:
    return '\n'.join(f'> {line}' if line else '>' for line in text.split('\n'))


class WikiMarkupConverter:
    """Converts Jira wiki markup to Markdown.

    Code blocks, inline code, links and bare URLs are stashed behind placeholders
    before any text effect is rewritten, so their content is never altered.
    """

    def __init__(self) -> None:
        self.code_pattern = re.compile(r'\{code(?::([^}\n]*))?\}(.*?)\{code\}', re.DOTALL)
        self.noformat_pattern = re.compile(r'\{noformat(?::[^}\n]*)?\}(.*?)\{noformat\}', re.DOTALL)
        self.panel_pattern = re.compile(
            r'\{(panel|info|note|warning|tip)(?::([^}\n]*))?\}(.*?)\{\1\}', re.DOTALL
        )
        self.quote_pattern = re.compile(r'\{quote\}(.*?)\{quote\}', re.DOTALL)

        self.heading_pattern = re.compile(r'^\s*h([1-6])\.\s+(.*)$')
        self.blockquote_pattern = re.compile(r'^\s*bq\.\s*(.*)$')
        self.list_pattern = re.compile(r'^\s*([*#]+|-)\s+(.*)$')
        self.rule_pattern = re.compile(r'^\s*-{4,}\s*$')
        self.table_header_pattern = re.compile(r'^\s*\|\|(.*?)\|\|\s*$')
        self.table_row_pattern = re.compile(r'^\s*\|(.*?)\|\s*$')

        self.monospace_pattern = re.compile(r'\{\{(.+?)\}\}')
        self.mention_pattern = re.compile(r'\[~(?:accountid:)?([^\]\n]+)\]')
        self.link_pattern = re.compile(r'\[(?:([^\]|\n]*)\|)?([^\]|\n]+)\]')
        self.image_pattern = re.compile(r'!([^!\s|]+)(?:\|([^!\n]*))?!')
        self.url_pattern = re.compile(r'https?://[^\s<>\[\]]+')
        self.color_pattern = re.compile(r'\{color(?::[^}\n]*)?\}(.*?)\{color\}', re.DOTALL)
        self.line_break_pattern = re.compile(r'\s*\\\\\s*')
        self.effects_pattern = re.compile(
            r'(?<![\w*])\*(?![\s*])(?P<strong>[^*\n]+?)(?<!\s)\*(?![\w*])'
            r'|(?<![\w_])_(?![\s_])(?P<em>[^_\n]+?)(?<!\s)_(?![\w_])'
            r'|\?\?(?P<cite>[^?\n]+?)\?\?'
            r'|(?<![\w-])-(?![\s-])(?P<strike>[^-\n]+?)(?<!\s)-(?![\w-])'
            r'|(?<![\w+])\+(?![\s+])(?P<underline>[^+\n]+?)(?<!\s)\+(?![\w+])'
            r'|\^(?P<sup>[^^\s][^^\n]*?)\^'
            r'|(?<!~)~(?![\s~])(?P<sub>[^~\n]+?)(?<![\s~])~(?!~)'
        )
        self.effect_delimiters: dict[str, tuple[str, str]] = {
            'strong': ('**', '**'),
            'em': ('*', '*'),
            'cite': ('*', '*'),
            'strike': ('~~', '~~'),
            'underline': ('<u>', '</u>'),
            'sup': ('<sup>', '</sup>'),
            'sub': ('<sub>', '</sub>'),
        }

    def convert(self, wiki: str) -> str:
        """Convert wiki markup to Markdown.

        Args:
            wiki: the wiki markup text

        Returns:
            The Markdown text
        """
        stash: list[str] = []
        try:
            markdown = self._convert_blocks(_normalize_newlines(wiki), stash)
        except (re.error, KeyError, IndexError, ValueError) as e:
            raise ConversionException(
                'Unable to convert wiki markup', extra={'error': str(e)}
            ) from e
        markdown = self._restore(markdown, stash)
        return re.sub(r'\n{3,}', '\n\n', markdown).strip('\n')

    @staticmethod
    def _protect(value: str, stash: list[str]) -> str:
        stash.append(value)
        return PLACEHOLDER.format(len(stash) - 1)

    @staticmethod
    def _restore(text: str, stash: list[str]) -> str:
        # Later entries may wrap earlier placeholders, so unwrap from the end.
        for index in range(len(stash) - 1, -1, -1):
            text = text.replace(PLACEHOLDER.format(index), stash[index])
        return text

    def _convert_blocks(self, text: str, stash: list[str]) -> str:
        def replace_code(match: re.Match[str]) -> str:
            language = (match.group(1) or '').split('|')[0].strip()
            if '=' in language:
                language = ''
            code = match.group(2).strip('\n')
            return '\n' + self._protect(f'```{language}\n{code}\n```', stash) + '\n'

        def replace_noformat(match: re.Match[str]) -> str:
            code = match.group(1).strip('\n')
            return '\n' + self._protect(f'```\n{code}\n```', stash) + '\n'

        def replace_panel(match: re.Match[str]) -> str:
            kind = WIKI_PANEL_MACROS[match.group(1)]
            title = None
            if match.group(2) and (title_match := re.search(r'title=([^|]+)', match.group(2))):
                title = title_match.group(1).strip()
            inner = self._restore(self._convert_blocks(match.group(3).strip('\n'), stash), stash)
            if title:
                inner = f'**{title}**\n\n{inner}' if inner else f'**{title}**'
            emoji = PANEL_EMOJIS[kind]
            body = f'{emoji} {inner}' if inner else emoji
            return '\n' + self._protect(_quote(body), stash) + '\n'

        def replace_quote(match: re.Match[str]) -> str:
            inner = self._restore(self._convert_blocks(match.group(1).strip('\n'), stash), stash)
            return '\n' + self._protect(_quote(inner), stash) + '\n'

        text = self.code_pattern.sub(replace_code, text)
        text = self.noformat_pattern.sub(replace_noformat, text)
        text = self.panel_pattern.sub(replace_panel, text)
        text = self.quote_pattern.sub(replace_quote, text)

        return self._convert_lines(text, stash)

    def _convert_lines(self, text: str, stash: list[str]) -> str:
        lines: list[str] = []
        table: list[tuple[bool, list[str]]] = []
        counters: list[int] = []

        for line in text.split('\n'):
            header_match = self.table_header_pattern.match(line)
            row_match = None if header_match else self.table_row_pattern.match(line)
            if header_match or row_match:
                # Pipes inside a [label|target] link do not separate cells.
                cells = re.split(r'\|\|?(?![^\[]*\])', (header_match or row_match).group(1))
                cells = [self._convert_inline(cell.strip(), stash) for cell in cells]
                table.append((bool(header_match), cells))
                continue
            if table:
                lines.extend(self._format_table(table))
                table = []

            if list_match := self.list_pattern.match(line):
                lines.append(self._list_line(list_match, counters, stash))
                continue
            counters = []

            if PLACEHOLDER_PATTERN.fullmatch(line.strip()):
                lines.append(line.strip())
            elif heading_match := self.heading_pattern.match(line):
                level = int(heading_match.group(1))
                title = self._convert_inline(heading_match.group(2).strip(), stash)
                lines.append(f'{"#" * level} {title}')
            elif self.rule_pattern.match(line):
                lines.append('---')
            elif bq_match := self.blockquote_pattern.match(line):
                lines.append(f'> {self._convert_inline(bq_match.group(1).strip(), stash)}')
            else:
                lines.append(self._convert_inline(line, stash))

        if table:
            lines.extend(self._format_table(table))

        return '\n'.join(lines)

    def _list_line(self, match: re.Match[str], counters: list[int], stash: list[str]) -> str:
        markers = '*' if match.group(1) == '-' else match.group(1)
        depth = len(markers)

        del counters[depth:]
        while len(counters) < depth:
            counters.append(0)
        counters[-1] += 1

        indent = ''.join('   ' if marker == '#' else '  ' for marker in markers[:-1])
        bullet = f'{counters[-1]}.' if markers[-1] == '#' else '-'
        return f'{indent}{bullet} {self._convert_inline(match.group(2).strip(), stash)}'

    @staticmethod
    def _format_table(rows: list[tuple[bool, list[str]]]) -> list[str]:
        width = max(len(cells) for _, cells in rows)
        normalized = [cells + [''] * (width - len(cells)) for _, cells in rows]

        result = [f'| {" | ".join(normalized[0])} |', f'| {" | ".join(["---"] * width)} |']
        if not rows[0][0]:
            # Markdown tables always have a header row.
            result = [f'| {" | ".join([""] * width)} |', result[1], result[0]]
        result.extend(f'| {" | ".join(cells)} |' for cells in normalized[1:])
        return result

    def _convert_inline(self, text: str, stash: list[str]) -> str:
        if not text:
            return text

        def replace_monospace(match: re.Match[str]) -> str:
            code = match.group(1)
            fence = '``' if '`' in code else '`'
            return self._protect(f'{fence}{code}{fence}', stash)

        def replace_mention(match: re.Match[str]) -> str:
            return self._protect(f'@{match.group(1).strip()}', stash)

        def replace_image(match: re.Match[str]) -> str:
            alt = ''
            if match.group(2) and (alt_match := re.search(r'alt=([^,|]+)', match.group(2))):
                alt = alt_match.group(1).strip()
            return self._protect(f'![{alt}]({match.group(1)})', stash)

        def replace_link(match: re.Match[str]) -> str:
            label, target = match.group(1), match.group(2).strip()
            if label is None:
                if not re.match(r'(?:[a-z][a-z0-9+.-]*://|mailto:)', target, re.IGNORECASE):
                    return match.group(0)
                return self._protect(f'[{target}]({target})', stash)
            if target.startswith('#') or target.startswith('^'):
                return match.group(0)
            return self._protect(f'[{self._convert_effects(label.strip())}]({target})', stash)

        def replace_url(match: re.Match[str]) -> str:
            return self._protect(match.group(0), stash)

        text = self.monospace_pattern.sub(replace_monospace, text)
        text = self.mention_pattern.sub(replace_mention, text)
        text = self.image_pattern.sub(replace_image, text)
        text = self.link_pattern.sub(replace_link, text)
        text = self.url_pattern.sub(replace_url, text)
        text = self.color_pattern.sub(r'\1', text)
        text = self.line_break_pattern.sub('\n', text)
        return self._convert_effects(text)

    def _convert_effects(self, text: str) -> str:
        def replace_effect(match: re.Match[str]) -> str:
            effect = match.lastgroup or 'strong'
            opening, closing = self.effect_delimiters[effect]
            return f'{opening}{self._convert_effects(match.group(effect))}{closing}'

        return self.effects_pattern.sub(replace_effect, text)


class WikiRenderer:
    """Renders a markdown-it syntax tree as Jira wiki markup."""

    INLINE_HTML = {
        '<u>': '+',
        '</u>': '+',
        '<ins>': '+',
        '</ins>': '+',
        '<sup>': '^',
        '</sup>': '^',
        '<sub>': '~',
        '</sub>': '~',
        '<del>': '-',
        '</del>': '-',
        '<br>': '\\\\ ',
        '<br/>': '\\\\ ',
        '<br />': '\\\\ ',
    }

    def __init__(self) -> None:
        self.md = MarkdownIt('gfm-like')
        self.block_handlers: dict[str, Callable[[SyntaxTreeNode], str]] = {
            'heading': self._heading,
            'paragraph': self._paragraph,
            'bullet_list': lambda node: self._list(node, ''),
            'ordered_list': lambda node: self._list(node, ''),
            'blockquote': self._blockquote,
            'fence': self._fence,
            'code_block': self._code_block,
            'hr': lambda node: '----',
            'table': self._table,
            'html_block': lambda node: node.content.strip('\n'),
        }
        self.inline_handlers: dict[str, Callable[[SyntaxTreeNode], str]] = {
            'text': lambda node: node.content,
            'softbreak': lambda node: '\n',
            'hardbreak': lambda node: '\\\\\n',
            'strong': lambda node: f'*{self._inline(node)}*',
            'em': lambda node: f'_{self._inline(node)}_',
            's': lambda node: f'-{self._inline(node)}-',
            'code_inline': lambda node: f'{{{{{node.content}}}}}',
            'link': self._link,
            'image': self._image,
            'html_inline': lambda node: self.INLINE_HTML.get(node.content.lower(), node.content),
        }

    def render(self, markdown: str) -> str:
        try:
            root = SyntaxTreeNode(self.md.parse(markdown))
        except (ValueError, AttributeError) as e:
            raise ConversionException(
                'Unable to parse Markdown', extra={'error': str(e)}
            ) from e
        return self._blocks(root)

    def _blocks(self, node: SyntaxTreeNode) -> str:
        blocks = (self._block(child) for child in node.children)
        return '\n\n'.join(block for block in blocks if block)

    def _block(self, node: SyntaxTreeNode) -> str:
        handler = self.block_handlers.get(node.type)
        if handler is None:
            logger.debug(f'Skipping unsupported Markdown block: {node.type}')
            return ''
        return handler(node)

    def _inline(self, node: SyntaxTreeNode) -> str:
        parts = []
        for child in node.children:
            if child.type == 'inline':
                parts.append(self._inline(child))
            elif handler := self.inline_handlers.get(child.type):
                parts.append(handler(child))
            else:
                parts.append(self._inline(child))
        return ''.join(parts)

    def _heading(self, node: SyntaxTreeNode) -> str:
        return f'h{node.tag[1]}. {self._inline(node)}'

    def _paragraph(self, node: SyntaxTreeNode) -> str:
        return self._inline(node)

    def _list(self, node: SyntaxTreeNode, prefix: str) -> str:
        marker = prefix + ('#' if node.type == 'ordered_list' else '*')
        lines = []
        for item in node.children:
            text_parts = []
            for child in item.children:
                if child.type in ('bullet_list', 'ordered_list'):
                    if text_parts:
                        lines.append(f'{marker} {" ".join(text_parts)}')
                        text_parts = []
                    lines.append(self._list(child, marker))
                elif child.type == 'paragraph':
                    text_parts.append(self._inline(child))
                else:
                    text_parts.append(self._block(child))
            if text_parts:
                lines.append(f'{marker} {" ".join(text_parts)}')
        return '\n'.join(lines)

    def _blockquote(self, node: SyntaxTreeNode) -> str:
        inner = self._blocks(node)
        stripped = inner.lstrip()
        for kind, emoji in PANEL_EMOJIS.items():
            for variant in (emoji, emoji.rstrip('\ufe0f')):
                if stripped.startswith(variant):
                    macro = PANEL_WIKI_MACROS[kind]
                    body = stripped[len(variant) :].lstrip()
                    return f'{{{macro}}}\n{body}\n{{{macro}}}'
        return f'{{quote}}\n{inner}\n{{quote}}'

    def _fence(self, node: SyntaxTreeNode) -> str:
        language = node.info.strip().split(' ')[0]
        opening = f'{{code:{language}}}' if language else '{code}'
        return f'{opening}\n{node.content.rstrip(chr(10))}\n{{code}}'

    def _code_block(self, node: SyntaxTreeNode) -> str:
        return f'{{noformat}}\n{node.content.rstrip(chr(10))}\n{{noformat}}'

    def _table(self, node: SyntaxTreeNode) -> str:
        lines = []
        for section in node.children:
            for row in section.children:
                cells = [self._inline(cell).strip() for cell in row.children]
                if section.type == 'thead':
                    lines.append(f'||{"||".join(cells)}||')
                else:
                    lines.append(f'|{"|".join(cells)}|')
        return '\n'.join(lines)

    def _link(self, node: SyntaxTreeNode) -> str:
        href = str(node.attrGet('href') or '')
        label = self._inline(node)
        if node.markup == 'linkify':
            return label
        if label == href:
            return f'[{href}]'
        return f'[{label}|{href}]'

    def _image(self, node: SyntaxTreeNode) -> str:
        src = str(node.attrGet('src') or '')
        return f'!{src}|alt={node.content}!' if node.content else f'!{src}!'


def wiki_to_markdown(wiki: str | None) -> str:
    """Convert Jira wiki markup to Markdown.

    Args:
        wiki: the wiki markup text

    Returns:
        The Markdown text, an empty string for empty input, or the input unchanged if the
        conversion fails
    """
    if not wiki or not isinstance(wiki, str):
        return ''
    try:
        return WikiMarkupConverter().convert(wiki)
    except ConversionException as e:
        logger.warning(f'Failed to convert wiki markup to Markdown: {e}', extra=e.extra)
    except Exception as e:
        logger.error(f'Failed to convert wiki markup to Markdown: {e}')
    return wiki


def markdown_to_wiki(markdown: str | None) -> str:
    """Convert Markdown to Jira wiki markup.

    Args:
        markdown: the Markdown text

    Returns:
        The wiki markup, an empty string for empty input, or the input unchanged if the
        conversion fails
    """
    if not markdown or not isinstance(markdown, str):
        return ''
    try:
        return WikiRenderer().render(_normalize_newlines(markdown))
    except ConversionException as e:
        logger.warning(f'Failed to convert Markdown to wiki markup: {e}', extra=e.extra)
    except Exception as e:
        logger.error(f'Failed to convert Markdown to wiki markup: {e}')
    return markdown
