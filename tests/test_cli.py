import json
from unittest.mock import Mock

from click.testing import CliRunner
import pytest

from ticketmark.app import DocumentViewerApp
from ticketmark.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def metadata_file(tmp_path, enriched_metadata):
    path = tmp_path / 'metadata.json'
    path.write_text(json.dumps(enriched_metadata))
    return path


class TestCli:
    def test_help_without_command(self, runner):
        result = runner.invoke(cli, [])

        assert result.exit_code == 0
        assert 'Converts and renders ticket descriptions.' in result.output
        for command in ('detect', 'to-markdown', 'to-native', 'render', 'view'):
            assert command in result.output

    def test_version(self, runner, monkeypatch):
        monkeypatch.setattr('importlib.metadata.version', lambda name: '1.2.3')

        result = runner.invoke(cli, ['--version'])

        assert result.exit_code == 0
        assert result.output.strip() == '1.2.3'

    def test_invalid_configuration(self, runner, monkeypatch):
        monkeypatch.setenv('TICKETMARK_DEPLOYMENT', 'mainframe')

        result = runner.invoke(cli, ['detect'], input='text')

        assert result.exit_code == 1
        assert 'Configuration error at deployment' in result.output

    def test_configuration_file(self, runner, monkeypatch, tmp_path):
        config_file = tmp_path / 'config.yaml'
        config_file.write_text('deployment: server\nbase_url: https://jira.example.com\n')
        monkeypatch.setenv('TICKETMARK_CONFIG_FILE', str(config_file))

        result = runner.invoke(cli, ['to-native'], input='**bold**')

        assert result.exit_code == 0
        assert result.output.strip() == '*bold*'


class TestDetectCommand:
    @pytest.mark.parametrize(
        'text, description_format',
        [
            ('{"type": "doc", "version": 1, "content": []}', 'adf'),
            ('h1. Title', 'wiki'),
            ('# Title', 'markdown'),
            ('Just text', 'plaintext'),
        ],
    )
    def test_detect(self, runner, text, description_format):
        result = runner.invoke(cli, ['detect'], input=text)

        assert result.exit_code == 0
        assert result.output.strip() == description_format

    def test_detect_file(self, runner, tmp_path):
        path = tmp_path / 'description.txt'
        path.write_text('{code}\nx\n{code}')

        result = runner.invoke(cli, ['detect', str(path)])

        assert result.exit_code == 0
        assert result.output.strip() == 'wiki'


class TestToMarkdownCommand:
    def test_adf(
        self, runner, monkeypatch, work_item_adf_description, work_item_markdown_description
    ):
        monkeypatch.setenv('TICKETMARK_BASE_URL', 'https://example.atlassian.net')

        result = runner.invoke(cli, ['to-markdown'], input=json.dumps(work_item_adf_description))

        assert result.exit_code == 0
        assert result.output == work_item_markdown_description + '\n'

    def test_wiki(self, runner):
        result = runner.invoke(cli, ['to-markdown'], input='h2. Title\n\n{{code}}')

        assert result.exit_code == 0
        assert result.output == '## Title\n\n`code`\n'


class TestToNativeCommand:
    def test_cloud(self, runner):
        result = runner.invoke(cli, ['to-native', '--deployment', 'cloud'], input='# Title')

        assert result.exit_code == 0
        assert json.loads(result.output) == {
            'type': 'doc',
            'version': 1,
            'content': [
                {
                    'type': 'heading',
                    'attrs': {'level': 1},
                    'content': [{'type': 'text', 'text': 'Title'}],
                }
            ],
        }

    def test_server(self, runner):
        result = runner.invoke(cli, ['to-native', '-d', 'SERVER'], input='# Title\n\n*em*')

        assert result.exit_code == 0
        assert result.output == 'h1. Title\n\n_em_\n'

    def test_configured_deployment_is_the_default(self, runner, monkeypatch):
        monkeypatch.setenv('TICKETMARK_DEPLOYMENT', 'server')

        result = runner.invoke(cli, ['to-native'], input='`code`')

        assert result.exit_code == 0
        assert result.output == '{{code}}\n'

    def test_unknown_deployment_option(self, runner):
        result = runner.invoke(cli, ['to-native', '-d', 'mainframe'], input='text')

        assert result.exit_code == 2


class TestRenderCommand:
    def test_render(self, runner, work_item_adf_description, metadata_file):
        result = runner.invoke(
            cli,
            ['render', '--metadata', str(metadata_file)],
            input=json.dumps(work_item_adf_description),
        )

        assert result.exit_code == 0
        assert 'document' in result.output
        assert 'code_block' in result.output
        assert 'reference' in result.output
        assert "'Guest checkout'" in result.output
        assert '(activatable)' not in result.output

    def test_render_malformed_document(self, runner):
        result = runner.invoke(cli, ['render'], input='not json')

        assert result.exit_code == 0
        assert result.output.strip() == 'document'

    def test_invalid_metadata(self, runner, tmp_path):
        path = tmp_path / 'metadata.json'
        path.write_text('[1, 2]')

        result = runner.invoke(cli, ['render', '-m', str(path)], input='{}')

        assert result.exit_code == 1
        assert 'Invalid metadata file' in result.output


class TestViewCommand:
    def test_view(self, runner, monkeypatch, work_item_adf_description, metadata_file):
        run = Mock()
        monkeypatch.setattr(DocumentViewerApp, 'run', run)

        result = runner.invoke(
            cli,
            ['view', '--metadata', str(metadata_file)],
            input=json.dumps(work_item_adf_description),
        )

        assert result.exit_code == 0
        run.assert_called_once_with()
