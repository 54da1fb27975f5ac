"""Syntax highlighting of code blocks with Pygments."""

from pygments.lexers import get_lexer_by_name
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from ticketmark.constants import DEFAULT_CODE_THEME, LANGUAGE_ALIASES, PLAIN_TEXT_LANGUAGE
from ticketmark.exceptions import HighlightingException


def resolve_language(language: str | None) -> str:
    """Map the language tag of a code block to the name of a lexer.

    Args:
        language: the language tag as written in the document, e.g. 'shell'

    Returns:
        The lexer name, e.g. 'bash', or `PLAIN_TEXT_LANGUAGE` for missing and unknown tags
    """
    if not language or not isinstance(language, str):
        return PLAIN_TEXT_LANGUAGE
    return LANGUAGE_ALIASES.get(language.strip().lower(), PLAIN_TEXT_LANGUAGE)


def _token_style(style_for_token: dict) -> str | None:
    parts = []
    if style_for_token.get('bold'):
        parts.append('bold')
    if style_for_token.get('italic'):
        parts.append('italic')
    if style_for_token.get('underline'):
        parts.append('underline')
    if color := style_for_token.get('color'):
        parts.append(f'#{color}')
    if bgcolor := style_for_token.get('bgcolor'):
        parts.append(f'on #{bgcolor}')
    return ' '.join(parts) or None


def highlight_code(
    code: str, lexer_name: str, theme: str | None = None
) -> list[tuple[str, str | None]]:
    """Split code into runs of text with the style the theme gives them.

    Adjacent tokens with the same style are merged into a single run.

    Args:
        code: the source code
        lexer_name: a lexer name as returned by `resolve_language`
        theme: a Pygments style name, `DEFAULT_CODE_THEME` when omitted

    Returns:
        List of (text, style) tuples; the style is a Textual style string or None for unstyled text

    Raises:
        HighlightingException: no lexer or style by that name, or the lexer failed
    """
    if lexer_name == PLAIN_TEXT_LANGUAGE:
        raise HighlightingException('Highlighting is disabled for plain text')

    try:
        lexer = get_lexer_by_name(lexer_name, stripnl=False, ensurenl=False)
        style = get_style_by_name(theme or DEFAULT_CODE_THEME)
    except ClassNotFound as e:
        raise HighlightingException(
            f'Unable to highlight {lexer_name} code', extra={'theme': theme}
        ) from e

    runs: list[tuple[str, str | None]] = []
    styles: dict[object, str | None] = {}
    try:
        for token_type, value in lexer.get_tokens(code):
            if not value:
                continue
            if token_type not in styles:
                styles[token_type] = _token_style(style.style_for_token(token_type))
            token_style = styles[token_type]
            if runs and runs[-1][1] == token_style:
                runs[-1] = (runs[-1][0] + value, token_style)
            else:
                runs.append((value, token_style))
    except Exception as e:
        raise HighlightingException(f'The {lexer_name} lexer failed: {e}') from e

    return runs
