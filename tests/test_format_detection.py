import json

import pytest

from ticketmark.models import DescriptionFormat
from ticketmark.utils.format_detection import (
    detect_description_format,
    has_markdown_syntax,
    is_adf_document,
    is_wiki_markup,
)


class TestDetectDescriptionFormat:
    def test_adf_document(self, work_item_adf_description):
        raw = json.dumps(work_item_adf_description)

        assert detect_description_format(raw) == DescriptionFormat.ADF

    def test_json_without_document_shape_is_not_adf(self):
        assert detect_description_format('{"foo": 1}') == DescriptionFormat.PLAINTEXT
        assert detect_description_format('{"type": "doc", "content": {}}') != DescriptionFormat.ADF

    def test_wiki_heading(self):
        assert detect_description_format('h1. Title') == DescriptionFormat.WIKI

    def test_markdown_heading(self):
        assert detect_description_format('# Title') == DescriptionFormat.MARKDOWN

    def test_plain_text(self):
        assert detect_description_format('Just a sentence.') == DescriptionFormat.PLAINTEXT

    @pytest.mark.parametrize('value', [None, ''])
    def test_empty_input(self, value):
        assert detect_description_format(value) == DescriptionFormat.PLAINTEXT

    @pytest.mark.parametrize(
        'wiki',
        [
            '{code:java}\nint x = 1;\n{code}',
            '{quote}\nquoted\n{quote}',
            '{panel:title=Note}\ncontent\n{panel}',
            '{noformat}\nraw\n{noformat}',
            'Run {{make build}} first',
            'See [the docs|https://example.com]',
            '** nested bullet',
        ],
    )
    def test_unambiguous_wiki_signatures(self, wiki):
        assert detect_description_format(wiki) == DescriptionFormat.WIKI

    @pytest.mark.parametrize(
        'wiki',
        [
            'This is *important* to know',
            'This is _emphasized_ text',
            'This is -removed- text',
            'This is +inserted+ text',
            'E = mc^2^',
            'H~2~O',
        ],
    )
    def test_ambiguous_wiki_signatures_without_markdown(self, wiki):
        assert detect_description_format(wiki) == DescriptionFormat.WIKI

    def test_markdown_wins_over_ambiguous_wiki(self):
        markdown = '## Summary\n\nThis is *important* to know\n\n* first\n* second'

        assert detect_description_format(markdown) == DescriptionFormat.MARKDOWN

    def test_unambiguous_wiki_wins_over_markdown(self):
        text = 'h2. Summary\n\n- a list item\n\n**not bold in wiki**'

        assert detect_description_format(text) == DescriptionFormat.WIKI

    @pytest.mark.parametrize(
        'markdown',
        [
            '```\ncode\n```',
            'Some **bold** words',
            'A [link](https://example.com)',
            '> a quote',
            '- item',
            '+ item',
            '1. first',
            '# Title\n# Second title',
            'Intro paragraph\n\n----\n\nMore text',
            'Above\n---\nBelow',
        ],
    )
    def test_markdown_signatures(self, markdown):
        assert detect_description_format(markdown) == DescriptionFormat.MARKDOWN

    def test_snake_case_is_not_italic(self):
        assert detect_description_format('rename user_id_field today') == DescriptionFormat.PLAINTEXT

    def test_hyphenated_words_are_not_strikethrough(self):
        assert detect_description_format('a well-known, long-standing bug') == (
            DescriptionFormat.PLAINTEXT
        )


class TestSignatureChecks:
    def test_is_adf_document(self, work_item_adf_description):
        assert is_adf_document(work_item_adf_description)
        assert is_adf_document(json.dumps(work_item_adf_description))
        assert not is_adf_document('not json')
        assert not is_adf_document('[1, 2]')
        assert not is_adf_document(None)

    def test_is_wiki_markup(self):
        assert is_wiki_markup('h3. Title')
        assert is_wiki_markup('This is *bold*')
        assert is_wiki_markup('Above\n----\nBelow')
        assert not is_wiki_markup('Just words')
        assert not is_wiki_markup('')

    def test_has_markdown_syntax(self):
        assert has_markdown_syntax('### Title')
        assert not has_markdown_syntax('h3. Title')
        assert not has_markdown_syntax(None)
