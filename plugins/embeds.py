"""Optional regex plugins for embedded media."""

import re

from plugins.plugin_types import Plugin, RegexMarkdownModification

gif_embed = Plugin(
    name='gif',
    regex_modifications=[
        RegexMarkdownModification(
            regex=re.compile(r'\[.*?\]\((.*?\.gif)\)'),
            replacement_pattern='![]($1)',
        ),
    ],
)

__all__ = ['gif_embed']
