import json
from unittest.mock import Mock

import pytest

from ticketmark.models import EnrichedTicketMetadata, NodeType, RenderNode, RenderOptions
from ticketmark.utils.adf_renderer import AdfRenderer, render_adf
from ticketmark.utils.styling import map_status_to_color


def _doc(*content):
    return {'type': 'doc', 'version': 1, 'content': list(content)}


def _paragraph(*content):
    return {'type': 'paragraph', 'content': list(content)}


def _card(key):
    return {'type': 'inlineCard', 'attrs': {'url': f'https://example.atlassian.net/browse/{key}'}}


class TestRenderAdf:
    def test_render_description(self, work_item_adf_description):
        root = render_adf(work_item_adf_description)

        assert root.tag == 'document'
        assert [child.tag for child in root.children] == [
            'heading',
            'paragraph',
            'paragraph',
            'heading',
            'ordered_list',
            'code_block',
            'panel',
            'blockquote',
            'rule',
            'bullet_list',
        ]

        heading = root.children[0]
        assert heading.attrs == {'level': 1}
        assert heading.classes == ['h1']
        assert heading.plain == 'Checkout fails for guest users'

        ordered_list = root.children[4]
        assert ordered_list.attrs == {'start': 1}
        nested = ordered_list.children[1].children[1]
        assert nested.tag == 'bullet_list'
        assert nested.plain == 'as a guest'

        assert root.children[6].attrs['panel_type'] == 'warning'
        assert root.children[6].classes == ['panel-warning']

    def test_render_serialized_document(self, work_item_adf_description):
        assert render_adf(json.dumps(work_item_adf_description)) == render_adf(
            work_item_adf_description
        )

    @pytest.mark.parametrize(
        'adf',
        [
            None,
            '',
            'not json',
            '{"type": "doc"}',
            42,
            {'type': 'paragraph', 'content': []},
            {'type': 'doc', 'content': 'oops'},
        ],
    )
    def test_malformed_input_renders_empty_document(self, adf):
        assert render_adf(adf) == RenderNode('document')

    def test_render_never_raises(self, monkeypatch):
        def fail(self, node):
            raise RuntimeError('boom')

        monkeypatch.setattr(AdfRenderer, '_heading', fail)
        document = _doc({'type': 'heading', 'attrs': {'level': 1}, 'content': []})

        assert render_adf(document) == RenderNode('document')

    def test_unknown_nodes_render_their_children(self):
        document = _doc(
            {'type': 'expand', 'content': [_paragraph({'type': 'text', 'text': 'inside'})]},
            {'type': 'mediaSingle'},
            'not a node',
        )

        root = render_adf(document)

        assert [child.tag for child in root.children] == ['paragraph']
        assert root.plain == 'inside'

    def test_hard_break(self):
        root = render_adf(
            _doc(
                _paragraph(
                    {'type': 'text', 'text': 'one'},
                    {'type': 'hardBreak'},
                    {'type': 'text', 'text': 'two'},
                )
            )
        )

        assert [child.tag for child in root.children[0].children] == [
            'text',
            'line_break',
            'text',
        ]
        assert root.plain == 'one\ntwo'

    def test_ordered_list_start(self):
        root = render_adf(_doc({'type': 'orderedList', 'attrs': {'order': 5}, 'content': []}))

        assert root.children[0].attrs == {'start': 5}

    def test_panel_defaults_to_info(self):
        root = render_adf(_doc({'type': 'panel', 'attrs': {'panelType': 'custom'}, 'content': []}))

        panel = root.children[0]
        assert panel.attrs['panel_type'] == 'info'
        assert panel.attrs['background'] == '$primary 10%'
        assert panel.attrs['border'] == '$primary 50%'


class TestTextMarks:
    def test_marks_nest_in_fixed_order(self):
        node = {
            'type': 'text',
            'text': 'styled',
            'marks': [
                {'type': 'link', 'attrs': {'href': 'https://example.com'}},
                {'type': 'underline'},
                {'type': 'em'},
                {'type': 'strong'},
            ],
        }

        rendered = AdfRenderer().render(node)[0]

        tags = []
        while rendered.children:
            tags.append(rendered.tag)
            rendered = rendered.children[0]
        assert tags == ['strong', 'em', 'underline', 'link']
        assert rendered == RenderNode('text', text='styled')

    def test_link_mark_keeps_href(self):
        node = {
            'type': 'text',
            'text': 'docs',
            'marks': [{'type': 'link', 'attrs': {'href': 'https://example.com'}}],
        }

        rendered = AdfRenderer().render(node)[0]

        assert rendered.tag == 'link'
        assert rendered.attrs == {'href': 'https://example.com'}
        assert rendered.style == 'underline $text-primary'

    def test_unknown_and_duplicate_marks_are_ignored(self):
        node = {
            'type': 'text',
            'text': 'x',
            'marks': [{'type': 'strong'}, {'type': 'strong'}, {'type': 'textColor'}, 'bad'],
        }

        rendered = AdfRenderer().render(node)[0]

        assert rendered.tag == 'strong'
        assert rendered.children == [RenderNode('text', text='x')]


class TestCodeBlocks:
    def test_highlighted_tokens_reassemble_the_code(self, work_item_adf_description):
        code_block = render_adf(work_item_adf_description).children[5]

        assert code_block.attrs == {'language': 'python', 'highlighted': True}
        assert all(token.tag == 'token' for token in code_block.children)
        assert ''.join(token.text for token in code_block.children) == (
            'def checkout(cart):\n    return cart.total()'
        )
        assert any(token.style for token in code_block.children)

    def test_language_alias(self):
        document = _doc(
            {
                'type': 'codeBlock',
                'attrs': {'language': 'Shell'},
                'content': [{'type': 'text', 'text': 'echo "hi"'}],
            }
        )

        code_block = render_adf(document).children[0]

        assert code_block.attrs['language'] == 'bash'
        assert code_block.plain == 'echo "hi"'

    @pytest.mark.parametrize('language', [None, 'text', 'brainfudge'])
    def test_plain_code_is_a_single_text_node(self, language):
        attrs = {'language': language} if language else {}
        document = _doc(
            {'type': 'codeBlock', 'attrs': attrs, 'content': [{'type': 'text', 'text': 'a = 1'}]}
        )

        code_block = render_adf(document).children[0]

        assert code_block.attrs == {'language': 'text', 'highlighted': False}
        assert code_block.children == [RenderNode('text', text='a = 1')]

    def test_unknown_theme_falls_back_to_plain_text(self):
        document = _doc(
            {
                'type': 'codeBlock',
                'attrs': {'language': 'python'},
                'content': [{'type': 'text', 'text': 'pass'}],
            }
        )

        code_block = render_adf(document, RenderOptions(code_theme='no-such-theme')).children[0]

        assert code_block.attrs['highlighted'] is False
        assert code_block.children == [RenderNode('text', text='pass')]


class TestMentions:
    def test_mention_with_label(self, work_item_adf_description):
        mention = render_adf(work_item_adf_description).find_all('mention')[0]

        assert mention.text == '@Ada Lovelace'
        assert mention.attrs == {'id': '5b10ac8d82e05b22cc7d4ef5'}

    @pytest.mark.parametrize(
        'attrs, label',
        [
            ({'id': 'abc'}, '@abc'),
            ({'id': 'abc', 'text': ''}, '@abc'),
            ({}, '@unknown'),
        ],
    )
    def test_mention_label_fallback(self, attrs, label):
        root = render_adf(_doc(_paragraph({'type': 'mention', 'attrs': attrs})))

        assert root.find_all('mention')[0].text == label


class TestInlineCards:
    def test_enriched_reference(self, enriched_metadata):
        callback = Mock()
        options = RenderOptions(enriched_metadata=enriched_metadata, on_reference_activated=callback)

        root = render_adf(_doc(_paragraph(_card('ENG-42'))), options)

        reference = root.find_all('reference')[0]
        assert [child.tag for child in reference.children] == [
            'status_dot',
            'key',
            'title',
            'status',
        ]
        assert reference.attrs == {
            'href': 'https://example.atlassian.net/browse/ENG-42',
            'key': 'ENG-42',
            'title': 'Guest checkout',
            'status': 'In Progress',
        }
        assert reference.children[0].text == '●'
        assert reference.children[0].style == '$primary'
        assert reference.children[3].style == 'on $primary'

        reference.action()

        callback.assert_called_once_with('ENG-42')

    def test_enriched_reference_without_status(self):
        options = RenderOptions(enriched_metadata={'ENG-1': EnrichedTicketMetadata('Untitled')})

        reference = render_adf(_doc(_paragraph(_card('ENG-1'))), options).find_all('reference')[0]

        assert [child.tag for child in reference.children] == ['status_dot', 'key', 'title']
        assert reference.children[0].style == '$surface'
        assert reference.action is None

    def test_reference_without_metadata_is_a_link(self, enriched_metadata):
        callback = Mock()
        options = RenderOptions(enriched_metadata=enriched_metadata, on_reference_activated=callback)

        root = render_adf(_doc(_paragraph(_card('ENG-999'))), options)

        assert root.find_all('reference') == []
        link = root.find_all('link')[0]
        assert link.text == 'ENG-999'
        assert link.attrs == {
            'href': 'https://example.atlassian.net/browse/ENG-999',
            'key': 'ENG-999',
        }

        link.action()

        callback.assert_called_once_with('ENG-999')

    def test_link_without_callback_is_not_activatable(self):
        link = render_adf(_doc(_paragraph(_card('ENG-42')))).find_all('link')[0]

        assert link.action is None
        assert link.style is None

    def test_card_to_other_site_is_not_activatable(self):
        callback = Mock()
        card = {'type': 'inlineCard', 'attrs': {'url': 'https://example.com/page'}}

        link = render_adf(
            _doc(_paragraph(card)), RenderOptions(on_reference_activated=callback)
        ).find_all('link')[0]

        assert link.text == 'https://example.com/page'
        assert link.attrs['key'] is None
        assert link.action is None

    def test_malformed_metadata_is_ignored(self):
        options = RenderOptions(enriched_metadata={'ENG-42': {'status': 'Done'}})

        root = render_adf(_doc(_paragraph(_card('ENG-42'))), options)

        assert root.find_all('reference') == []
        assert root.find_all('link')[0].text == 'ENG-42'


class TestHandlers:
    def test_every_node_type_has_a_handler(self):
        assert set(AdfRenderer().handlers) == set(NodeType)


class TestMapStatusToColor:
    @pytest.mark.parametrize(
        'status, color',
        [
            ('Done', '$success'),
            ('Closed', '$success'),
            ('In Progress', '$primary'),
            ('Code Review', '$primary'),
            ('Blocked', '$error'),
            ('To Do', '$text-muted'),
            (None, '$surface'),
            ('', '$surface'),
        ],
    )
    def test_map_status_to_color(self, status, color):
        assert map_status_to_color(status) == color
