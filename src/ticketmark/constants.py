from enum import Enum
from types import MappingProxyType

LOGGER_NAME = 'ticketmark'
"""Application logger name identifier."""

LOG_FILE_FILE_NAME = 'ticketmark.log'
"""Default log file name."""

CONFIG_FILE_NAME = 'config.yaml'
"""Default configuration file name."""

ADF_DOCUMENT_VERSION = 1
"""The only version of the Atlassian Document Format this package produces."""

DEFAULT_CODE_THEME = 'monokai'
"""Pygments style used to color highlighted code blocks."""

PLAIN_TEXT_LANGUAGE = 'text'
"""Language identifier that disables syntax highlighting."""

PEOPLE_PATH_SEGMENT = '/jira/people/'
"""Path segment of a user profile URL, used to encode mentions as Markdown links."""

LANGUAGE_ALIASES = MappingProxyType(
    {
        'typescript': 'typescript',
        'tsx': 'typescript',
        'javascript': 'javascript',
        'jsx': 'javascript',
        'python': 'python',
        'java': 'java',
        'go': 'go',
        'rust': 'rust',
        'c': 'c',
        'c++': 'cpp',
        'cpp': 'cpp',
        'csharp': 'csharp',
        'ruby': 'ruby',
        'php': 'php',
        'swift': 'swift',
        'kotlin': 'kotlin',
        'scala': 'scala',
        'shell': 'bash',
        'bash': 'bash',
        'json': 'json',
        'yaml': 'yaml',
        'markdown': 'markdown',
        'sql': 'sql',
        'graphql': 'graphql',
        'css': 'css',
        'sass': 'scss',
        'scss': 'scss',
        'html': 'xml',
        'xml': 'xml',
        'text': PLAIN_TEXT_LANGUAGE,
    }
)
"""Code block language tags mapped to the highlighter's lexer names."""


class PanelType(Enum):
    """Kinds of ADF panels."""

    INFO = 'info'
    NOTE = 'note'
    WARNING = 'warning'
    ERROR = 'error'
    SUCCESS = 'success'


PANEL_EMOJIS = MappingProxyType(
    {
        PanelType.INFO: 'ℹ️',
        PanelType.NOTE: '📝',
        PanelType.WARNING: '⚠️',
        PanelType.ERROR: '❌',
        PanelType.SUCCESS: '✅',
    }
)
"""Emoji prefixed to the blockquote that represents a panel in Markdown."""

PANEL_STYLES = MappingProxyType(
    {
        PanelType.INFO: MappingProxyType({'background': '$primary 10%', 'border': '$primary 50%'}),
        PanelType.NOTE: MappingProxyType(
            {'background': '$secondary 10%', 'border': '$secondary 50%'}
        ),
        PanelType.WARNING: MappingProxyType(
            {'background': '$warning 10%', 'border': '$warning 50%'}
        ),
        PanelType.ERROR: MappingProxyType({'background': '$error 10%', 'border': '$error 50%'}),
        PanelType.SUCCESS: MappingProxyType(
            {'background': '$success 10%', 'border': '$success 50%'}
        ),
    }
)
"""Background and border treatment of each panel kind."""

WIKI_PANEL_MACROS = MappingProxyType(
    {
        'info': PanelType.INFO,
        'note': PanelType.NOTE,
        'warning': PanelType.WARNING,
        'tip': PanelType.SUCCESS,
        'panel': PanelType.INFO,
    }
)
"""Wiki panel macros and the panel kind they map to."""

PANEL_WIKI_MACROS = MappingProxyType(
    {
        PanelType.INFO: 'info',
        PanelType.NOTE: 'note',
        PanelType.WARNING: 'warning',
        PanelType.ERROR: 'warning',
        PanelType.SUCCESS: 'tip',
    }
)
"""Panel kinds mapped to the wiki macro used to write them."""

STATUS_COLOR_KEYWORDS = (
    (('done', 'complete', 'closed'), '$success'),
    (('progress', 'review', 'active'), '$primary'),
    (('blocked', 'impediment'), '$error'),
)
"""Status name fragments and the color of the status dot they select."""

STATUS_DEFAULT_COLOR = '$text-muted'
"""Color of the status dot for statuses that match no keyword."""

STATUS_MISSING_COLOR = '$surface'
"""Color of the status dot when no status is known."""
