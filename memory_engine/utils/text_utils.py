"""
Text utilities for cleaning LLM replies before they reach the user.
"""

import re

CODE_FENCE = re.compile(r'```.*?```', re.DOTALL)
BOLD = re.compile(r'\*\*(.*?)\*\*')
ITALIC = re.compile(r'\*(.*?)\*')
HYPHEN_BULLET = re.compile(r'^[ \t]*-[ \t]+', re.MULTILINE)
TRAILING_SPACE = re.compile(r'[ \t]+\n')


def strip_markdown(text: str) -> str:
    """Normalize a reply into plain chat text.

    Removes fenced code blocks, unwraps bold and italic markers, turns
    leading '- ' bullets into '• ' bullets and drops spaces before newlines.

    Args:
        text: Raw LLM reply

    Returns:
        Cleaned reply text
    """
    text = CODE_FENCE.sub('', text or '')
    text = BOLD.sub(r'\1', text)
    text = ITALIC.sub(r'\1', text)
    text = HYPHEN_BULLET.sub('• ', text)
    text = TRAILING_SPACE.sub('\n', text)
    return text.strip()


def truncate(text: str, max_chars: int, marker: str = '…') -> str:
    """Cut text to max_chars characters, appending marker when anything was cut."""
    if len(text) <= max_chars:
        return text
    return f'{text[:max_chars]}{marker}'
