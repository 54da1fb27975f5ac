import json
import logging
import re
from typing import Any, Callable

from ticketmark.constants import ADF_DOCUMENT_VERSION, LOGGER_NAME, PANEL_EMOJIS, PanelType
from ticketmark.exceptions import MalformedDocumentException, UnsupportedDocumentVersionException
from ticketmark.models import MarkType, NodeType
from ticketmark.utils.inline_marks import parse_inline_content
from ticketmark.utils.urls import (
    build_profile_url,
    extract_account_id_from_url,
    extract_work_item_key_from_url,
)

logger = logging.getLogger(LOGGER_NAME)

FENCE_PATTERN = re.compile(r'^ {0,3}(?P<fence>`{3,}|~{3,})\s*(?P<info>[^`]*?)\s*$')
HEADING_PATTERN = re.compile(r'^ {0,3}(?P<hashes>#{1,6})\s+(?P<text>.+?)\s*$')
RULE_PATTERN = re.compile(r'^ {0,3}(?:-{3,}|\*{3,}|_{3,})\s*$')
LIST_ITEM_PATTERN = re.compile(r'^(?P<indent>[ \t]*)(?P<marker>[-*+]|\d+\.)\s+(?P<text>.*)$')
QUOTE_PATTERN = re.compile(r'^ {0,3}>\s?(?P<text>.*)$')
BACKTICK_RUN_PATTERN = re.compile(r'`+')

EMPHASIS_DELIMITERS = {
    MarkType.STRONG.value: '**',
    MarkType.EM.value: '*',
    MarkType.STRIKE.value: '~~',
}


def empty_document() -> dict:
    return {'type': NodeType.DOC.value, 'version': ADF_DOCUMENT_VERSION, 'content': []}


def _children(node: dict) -> list[dict]:
    content = node.get('content')
    if not isinstance(content, list):
        return []
    return [child for child in content if isinstance(child, dict)]


def _attrs(node: dict) -> dict:
    attrs = node.get('attrs')
    return attrs if isinstance(attrs, dict) else {}


def heading_level(node: dict) -> int:
    try:
        level = int(_attrs(node).get('level', 1))
    except (TypeError, ValueError):
        level = 1
    return min(max(level, 1), 6)


def panel_type(node: dict) -> PanelType:
    try:
        return PanelType(_attrs(node).get('panelType'))
    except ValueError:
        return PanelType.INFO


def load_adf_document(value: dict | str, strict: bool = False) -> dict:
    """Parse and validate an ADF document.

    Args:
        value: ADF document or its JSON serialization
        strict: If True, documents with a version other than the supported one are rejected

    Returns:
        The ADF document

    Raises:
        MalformedDocumentException: the value is not valid JSON or lacks the document shape
        UnsupportedDocumentVersionException: `strict` is set and the version is not supported
    """
    document: Any = value
    if isinstance(value, str):
        try:
            document = json.loads(value)
        except ValueError as e:
            raise MalformedDocumentException(
                'The value is not valid JSON', extra={'error': str(e)}
            ) from e

    if (
        not isinstance(document, dict)
        or document.get('type') != NodeType.DOC.value
        or not isinstance(document.get('content'), list)
    ):
        raise MalformedDocumentException('The value is not an ADF document')

    version = document.get('version')
    if version != ADF_DOCUMENT_VERSION:
        if strict:
            raise UnsupportedDocumentVersionException(
                f'Unsupported ADF version: {version!r}', extra={'version': version}
            )
        logger.warning(f'Converting ADF document with unsupported version {version!r}')

    return document


def _original_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return str(value)


def serialize_adf(document: dict) -> str:
    """Serialize an ADF document to the JSON string stored by cloud deployments."""
    return json.dumps(document, ensure_ascii=False)


class AdfMarkdownWriter:
    """Writes ADF nodes as Markdown, depth-first."""

    def __init__(self, base_url: str | None = None):
        self.base_url = base_url
        self.handlers: dict[NodeType, Callable[[dict], str]] = {
            NodeType.DOC: self._document,
            NodeType.PARAGRAPH: self._paragraph,
            NodeType.HEADING: self._heading,
            NodeType.CODE_BLOCK: self._code_block,
            NodeType.BULLET_LIST: self._bullet_list,
            NodeType.ORDERED_LIST: self._ordered_list,
            NodeType.LIST_ITEM: self._list_item,
            NodeType.BLOCKQUOTE: self._blockquote,
            NodeType.PANEL: self._panel,
            NodeType.RULE: lambda node: '---',
            NodeType.HARD_BREAK: lambda node: '\n',
            NodeType.MENTION: self._mention,
            NodeType.INLINE_CARD: self._inline_card,
            NodeType.TEXT: self._text,
        }

    def write(self, node: dict) -> str:
        node_type = NodeType.from_node(node)
        if node_type is None:
            return self._inline(node) if isinstance(node, dict) else ''
        return self.handlers[node_type](node)

    def _inline(self, node: dict) -> str:
        return ''.join(self.write(child) for child in _children(node))

    def _blocks(self, node: dict) -> str:
        blocks = (self.write(child) for child in _children(node))
        return '\n\n'.join(block for block in blocks if block)

    def _document(self, node: dict) -> str:
        return self._blocks(node)

    def _paragraph(self, node: dict) -> str:
        return self._inline(node)

    def _heading(self, node: dict) -> str:
        return f'{"#" * heading_level(node)} {self._inline(node)}'

    def _code_block(self, node: dict) -> str:
        language = _attrs(node).get('language')
        language = language if isinstance(language, str) else ''
        code = ''.join(
            child.get('text', '')
            for child in _children(node)
            if isinstance(child.get('text'), str)
        )
        longest = max((len(run) for run in BACKTICK_RUN_PATTERN.findall(code)), default=0)
        fence = '`' * max(3, longest + 1)
        return f'{fence}{language}\n{code}\n{fence}'

    def _bullet_list(self, node: dict) -> str:
        return self._list(node, lambda index: '- ')

    def _ordered_list(self, node: dict) -> str:
        try:
            start = int(_attrs(node).get('order', 1))
        except (TypeError, ValueError):
            start = 1
        return self._list(node, lambda index: f'{start + index}. ')

    def _list(self, node: dict, marker_for: Callable[[int], str]) -> str:
        lines = []
        for index, item in enumerate(_children(node)):
            marker = marker_for(index)
            item_lines = self._list_item(item).split('\n')
            lines.append(f'{marker}{item_lines[0]}')
            lines.extend(f'{" " * len(marker)}{line}' if line else line for line in item_lines[1:])
        return '\n'.join(lines)

    def _list_item(self, node: dict) -> str:
        if NodeType.from_node(node) is not NodeType.LIST_ITEM:
            return self.write(node)

        parts = []
        for child in _children(node):
            if NodeType.from_node(child) is NodeType.PARAGRAPH:
                parts.append(self._inline(child))
            else:
                parts.append(self.write(child))
        return '\n'.join(parts)

    @staticmethod
    def _quote(text: str) -> str:
        return '\n'.join(f'> {line}' if line else '>' for line in text.split('\n'))

    def _blockquote(self, node: dict) -> str:
        return self._quote(self._blocks(node))

    def _panel(self, node: dict) -> str:
        emoji = PANEL_EMOJIS[panel_type(node)]
        inner = self._blocks(node)
        return self._quote(f'{emoji} {inner}' if inner else emoji)

    def _mention(self, node: dict) -> str:
        attrs = _attrs(node)
        account_id = attrs.get('id')
        label = attrs.get('text') or attrs.get('displayName') or f'@{account_id or "unknown"}'
        if not account_id:
            return str(label)
        return f'[{label}]({build_profile_url(str(account_id), self.base_url)})'

    def _inline_card(self, node: dict) -> str:
        url = _attrs(node).get('url')
        if not url or not isinstance(url, str):
            return ''
        return f'[{url}]({url})'

    def _text(self, node: dict) -> str:
        text = node.get('text')
        if not isinstance(text, str) or not text:
            return ''

        marks = node.get('marks')
        if not isinstance(marks, list):
            marks = []
        marks = [mark for mark in marks if isinstance(mark, dict)]
        mark_types = [mark.get('type') for mark in marks]

        if MarkType.CODE.value in mark_types:
            fence = '``' if '`' in text else '`'
            padding = ' ' if fence == '``' else ''
            leading, core, trailing = '', f'{fence}{padding}{text}{padding}{fence}', ''
        else:
            core = text.strip()
            if not core or not any(t in EMPHASIS_DELIMITERS for t in mark_types):
                leading, core, trailing = '', text, ''
            else:
                leading = text[: len(text) - len(text.lstrip())]
                trailing = text[len(text.rstrip()) :]
                for mark_type in mark_types:
                    if delimiter := EMPHASIS_DELIMITERS.get(mark_type):
                        core = f'{delimiter}{core}{delimiter}'

        for mark in marks:
            if mark.get('type') == MarkType.LINK.value:
                href = _attrs(mark).get('href') or ''
                core = f'[{core}]({href})'
                break

        return f'{leading}{core}{trailing}'


def convert_adf_to_markdown(value: dict | str, base_url: str | None = None) -> str:
    """Convert Atlassian Document Format (ADF) to Markdown.

    Args:
        value: The ADF document, or its JSON serialization
        base_url: Optional base URL of the instance used to build absolute mention links
                  (e.g., 'https://example.atlassian.net')

    Returns:
        Markdown string, or the original input unchanged when it is not a valid ADF document
    """
    try:
        document = load_adf_document(value)
        return AdfMarkdownWriter(base_url).write(document)
    except MalformedDocumentException as e:
        logger.warning(f'Failed to convert ADF to Markdown: {e}')
    except Exception as e:
        logger.error(f'Failed to convert ADF to Markdown: {e}')
    return _original_value(value)


def _starts_block(line: str) -> bool:
    return bool(
        not line.strip()
        or FENCE_PATTERN.match(line)
        or HEADING_PATTERN.match(line)
        or RULE_PATTERN.match(line)
        or LIST_ITEM_PATTERN.match(line)
        or QUOTE_PATTERN.match(line)
    )


def _link_runs_to_nodes(nodes: list[dict]) -> list[dict]:
    """Turn link runs pointing at profiles or work items back into mention and inlineCard nodes."""
    converted = []
    for node in nodes:
        marks = node.get('marks', [])
        if len(marks) == 1 and marks[0]['type'] == MarkType.LINK.value:
            href = marks[0]['attrs']['href']
            if account_id := extract_account_id_from_url(href):
                converted.append(
                    {
                        'type': NodeType.MENTION.value,
                        'attrs': {'id': account_id, 'text': node['text']},
                    }
                )
                continue
            if node['text'] == href and extract_work_item_key_from_url(href):
                converted.append({'type': NodeType.INLINE_CARD.value, 'attrs': {'url': href}})
                continue
        converted.append(node)
    return converted


class MarkdownAdfParser:
    """Line-oriented, single pass Markdown to ADF parser."""

    def __init__(self, text: str, line_offset: int = 0):
        self._lines = text.split('\n')
        self._index = 0
        self._line_offset = line_offset
        self.warnings: list[str] = []

    @property
    def _line_number(self) -> int:
        return self._line_offset + self._index + 1

    def parse(self) -> list[dict]:
        content: list[dict] = []

        while self._index < len(self._lines):
            line = self._lines[self._index]

            if fence_match := FENCE_PATTERN.match(line):
                content.append(self._code_block(fence_match))
            elif heading_match := HEADING_PATTERN.match(line):
                content.append(
                    {
                        'type': NodeType.HEADING.value,
                        'attrs': {'level': len(heading_match.group('hashes'))},
                        'content': self._inline(heading_match.group('text')),
                    }
                )
                self._index += 1
            elif RULE_PATTERN.match(line):
                content.append({'type': NodeType.RULE.value})
                self._index += 1
            elif item_match := LIST_ITEM_PATTERN.match(line):
                content.append(
                    self._list(
                        len(item_match.group('indent')), item_match.group('marker')[0].isdigit()
                    )
                )
            elif QUOTE_PATTERN.match(line):
                content.append(self._blockquote())
            elif not line.strip():
                self._index += 1
            else:
                content.append(self._paragraph())

        return content

    def _inline(self, text: str, line_number: int | None = None) -> list[dict]:
        nodes = parse_inline_content(text)
        line_number = line_number or self._line_number

        for node in nodes:
            if node.get('marks'):
                continue
            plain = node['text']
            if plain.count('**') % 2 != 0:
                self.warnings.append(
                    f'Line {line_number}: Unclosed bold marker (**) in "{plain[:50]}"'
                )
            if plain.count('`') % 2 != 0:
                self.warnings.append(
                    f'Line {line_number}: Unclosed code marker (`) in "{plain[:50]}"'
                )

        return _link_runs_to_nodes(nodes)

    def _lines_to_inline(self, lines: list[str], first_line_number: int) -> list[dict]:
        content: list[dict] = []
        for offset, line in enumerate(lines):
            if content:
                content.append({'type': NodeType.HARD_BREAK.value})
            content.extend(self._inline(line.strip(), first_line_number + offset))
        return content

    def _code_block(self, fence_match: re.Match[str]) -> dict:
        fence = fence_match.group('fence')
        language = fence_match.group('info').split(' ')[0]
        start_line = self._line_number
        self._index += 1

        code_lines = []
        closed = False
        while self._index < len(self._lines):
            line = self._lines[self._index]
            self._index += 1
            stripped = line.strip()
            if stripped.startswith(fence) and not stripped.lstrip(fence[0]).strip():
                closed = True
                break
            code_lines.append(line)

        if not closed:
            self.warnings.append(f'Line {start_line}: Unclosed code block fence ({fence})')

        code = '\n'.join(code_lines)
        return {
            'type': NodeType.CODE_BLOCK.value,
            'attrs': {'language': language} if language else {},
            'content': [{'type': NodeType.TEXT.value, 'text': code}] if code else [],
        }

    def _is_continuation(self, line: str, indent: int) -> bool:
        stripped = line.lstrip()
        return (
            bool(stripped)
            and len(line) - len(stripped) > indent
            and not _starts_block(stripped)
        )

    def _list(self, indent: int, ordered: bool) -> dict:
        items: list[dict] = []
        start = 1

        while self._index < len(self._lines):
            line = self._lines[self._index]
            item_match = LIST_ITEM_PATTERN.match(line)

            if not item_match:
                if items and self._is_continuation(line, indent):
                    paragraph = items[-1]['content'][0]
                    paragraph['content'].append({'type': NodeType.HARD_BREAK.value})
                    paragraph['content'].extend(self._inline(line.strip()))
                    self._index += 1
                    continue
                break

            item_indent = len(item_match.group('indent'))
            item_ordered = item_match.group('marker')[0].isdigit()

            if item_indent < indent:
                break
            if item_indent > indent and items:
                items[-1]['content'].append(self._list(item_indent, item_ordered))
                continue
            if item_ordered != ordered:
                break

            if ordered and not items:
                start = int(item_match.group('marker')[:-1])
            items.append(
                {
                    'type': NodeType.LIST_ITEM.value,
                    'content': [
                        {
                            'type': NodeType.PARAGRAPH.value,
                            'content': self._inline(item_match.group('text').strip()),
                        }
                    ],
                }
            )
            self._index += 1

        if ordered:
            node: dict = {'type': NodeType.ORDERED_LIST.value, 'content': items}
            if start != 1:
                node['attrs'] = {'order': start}
            return node
        return {'type': NodeType.BULLET_LIST.value, 'content': items}

    def _blockquote(self) -> dict:
        start_index = self._index
        quote_lines = []
        while self._index < len(self._lines):
            quote_match = QUOTE_PATTERN.match(self._lines[self._index])
            if not quote_match:
                break
            quote_lines.append(quote_match.group('text'))
            self._index += 1

        kind = None
        first_line = quote_lines[0].lstrip()
        for candidate, emoji in PANEL_EMOJIS.items():
            for variant in (emoji, emoji.rstrip('\ufe0f')):
                if first_line.startswith(variant):
                    kind = candidate
                    quote_lines[0] = first_line[len(variant) :].lstrip()
                    break
            if kind:
                break

        nested = MarkdownAdfParser('\n'.join(quote_lines), self._line_offset + start_index)
        content = nested.parse()
        self.warnings.extend(nested.warnings)

        if kind is not None:
            return {
                'type': NodeType.PANEL.value,
                'attrs': {'panelType': kind.value},
                'content': content,
            }
        return {'type': NodeType.BLOCKQUOTE.value, 'content': content}

    def _paragraph(self) -> dict:
        first_line_number = self._line_number
        lines = [self._lines[self._index]]
        self._index += 1
        while self._index < len(self._lines) and not _starts_block(self._lines[self._index]):
            lines.append(self._lines[self._index])
            self._index += 1
        return {
            'type': NodeType.PARAGRAPH.value,
            'content': self._lines_to_inline(lines, first_line_number),
        }


def text_to_adf(text: str, track_warnings: bool = False) -> dict | tuple[dict, list[str]]:
    """Convert markdown text to ADF (Atlassian Document Format).

    Args:
        text: Markdown or plain text string
        track_warnings: If True, returns tuple of (adf_dict, warnings_list)

    Returns:
        ADF document structure, or tuple of (ADF document, list of warning messages) if track_warnings=True
    """
    if not text or not isinstance(text, str) or not text.strip():
        result = empty_document()
        return (result, []) if track_warnings else result

    text = text.replace('\r\n', '\n').replace('\r', '\n')

    result = empty_document()
    try:
        parser = MarkdownAdfParser(text)
        result['content'] = parser.parse()
        warnings = parser.warnings
    except Exception as e:
        logger.error(f'Failed to convert Markdown to ADF: {e}')
        result['content'] = [
            {'type': NodeType.PARAGRAPH.value, 'content': [{'type': 'text', 'text': text}]}
        ]
        warnings = [f'Conversion failed, the text was kept as a single paragraph: {e}']

    return (result, warnings) if track_warnings else result
