"""Field formatting: markdown field text to flashcard HTML.

Math and code are masked with placeholder tokens before any rewriting so
that cloze conversion, highlight handling and the markdown renderer never
see them; the originals are restored afterwards in the order they were
found. Math is restored last and HTML-escaped because it lands inside
rendered markup.
"""
from __future__ import annotations

import html
import itertools
import posixpath
from typing import Dict, Iterator, List, Optional, Tuple
from urllib.parse import quote

import markdown

from notesync.notes.models import DocumentMetadata, NotePayload
from notesync.patterns import (
    ANKI_MATH_REGEXP,
    CLOZE_REGEXP,
    CODE_CSS_URL,
    HIGHLIGHT_REGEXP,
    OBS_CODE_REGEXP,
    OBS_DISPLAY_CODE_REGEXP,
    OBS_DISPLAY_MATH_REGEXP,
    OBS_INLINE_MATH_REGEXP,
)
from notesync.utils import get_logger

LOG = get_logger()

MATH_REPLACE = 'NOTESYNCMATH'
INLINE_CODE_REPLACE = 'NOTESYNCCODEINLINE'
DISPLAY_CODE_REPLACE = 'NOTESYNCCODEDISPLAY'

IMAGE_EXTS = ['.png', '.jpg', '.jpeg', '.gif', '.bmp', '.svg', '.tiff']
AUDIO_EXTS = ['.wav', '.m4a', '.flac', '.mp3', '.wma', '.aac', '.webm']

PARA_OPEN = '<p>'
PARA_CLOSE = '</p>'

# attr_list is left out: it would read a {...} after an inline element as attributes
MARKDOWN_EXTENSIONS = ['tables', 'fenced_code', 'nl2br', 'sane_lists', 'codehilite']
MARKDOWN_EXTENSION_CONFIGS = {'codehilite': {'use_pygments': False}}


def render_markdown(text: str) -> str:
    return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS, extension_configs=MARKDOWN_EXTENSION_CONFIGS)


def escape_html(text: str) -> str:
    # single quote as &#039;, matching notes written by earlier syncs
    return html.escape(text).replace('&#x27;', '&#039;')


class FieldFormatter:
    def __init__(self, metadata: Optional[DocumentMetadata] = None, vault_name: str = ''):
        self.metadata = metadata or DocumentMetadata()
        self.vault_name = vault_name
        # insertion-ordered set of embed links seen in formatted fields
        self.detected_media: Dict[str, None] = {}

    def url_from_link(self, link: str) -> str:
        return 'obsidian://open?vault=' + quote(self.vault_name, safe="!~*'()") + '&file=' + quote(link, safe="!~*'()")

    def format_note_with_url(self, note: NotePayload, url: str, field: str) -> None:
        note.fields[field] = note.fields.get(field, '') + '<br><a href="' + url + '" class="obsidian-link">Obsidian</a>'

    def format_note_with_frozen_fields(self, note: NotePayload, frozen_fields: Dict[str, Dict[str, str]]) -> None:
        frozen = frozen_fields.get(note.note_type, {})
        for field in note.fields:
            note.fields[field] += frozen.get(field, '')

    def normalize_math(self, text: str) -> str:
        text = OBS_DISPLAY_MATH_REGEXP.sub(lambda m: '\\[' + m.group(1) + '\\]', text)
        return OBS_INLINE_MATH_REGEXP.sub(lambda m: '\\(' + m.group(1) + '\\)', text)

    def curly_to_cloze(self, text: str, counter: Iterator[int]) -> str:
        """Change text in curly brackets to numbered cloze deletions.

        `{c2:text}` and `{2:text}` keep their number; a bare `{text}` takes
        the next value from `counter`.
        """
        def cloze_repl(match):
            number = match.group(1)
            if number is None:
                number = next(counter)
            return '{{c' + str(number) + '::' + match.group(2) + '}}'

        return CLOZE_REGEXP.sub(cloze_repl, text)

    def format_medias(self, text: str) -> str:
        if not self.metadata.embeds:
            return text
        for embed in self.metadata.embeds:
            if embed.original not in text:
                continue
            self.detected_media[embed.link] = None
            ext = posixpath.splitext(embed.link)[1].lower()
            filename = posixpath.basename(embed.link)
            if ext in AUDIO_EXTS:
                text = text.replace(embed.original, '[sound:' + filename + ']')
            elif ext in IMAGE_EXTS:
                text = text.replace(embed.original, '<img src="' + filename + '" alt="' + embed.display_text + '">')
            else:
                LOG.warning('unsupported_media_extension', extra={'extension': ext, 'link': embed.link})
        return text

    def format_links(self, text: str) -> str:
        if not self.metadata.links:
            return text
        for link in self.metadata.links:
            text = text.replace(link.original, '<a href="' + self.url_from_link(link.link) + '">' + link.display_text + '</a>')
        return text

    @staticmethod
    def censor(text: str, pattern, mask: str) -> Tuple[str, List[str]]:
        """Replace every match of pattern with mask, returning the originals in order."""
        matches = [m.group(0) for m in pattern.finditer(text)]
        return pattern.sub(mask, text), matches

    @staticmethod
    def decensor(text: str, mask: str, replacements: List[str], escape: bool) -> str:
        for replacement in replacements:
            text = text.replace(mask, escape_html(replacement) if escape else replacement, 1)
        return text

    def format(self, text: str, cloze: bool = False, highlights_to_cloze: bool = False, counter: Optional[Iterator[int]] = None) -> str:
        # numbering restarts for every field unless the caller shares a counter
        if counter is None:
            counter = itertools.count(1)
        text = self.normalize_math(text)
        add_highlight_css = bool(OBS_DISPLAY_CODE_REGEXP.search(text))
        text, math_matches = self.censor(text, ANKI_MATH_REGEXP, MATH_REPLACE)
        text, display_code_matches = self.censor(text, OBS_DISPLAY_CODE_REGEXP, DISPLAY_CODE_REPLACE)
        text, inline_code_matches = self.censor(text, OBS_CODE_REGEXP, INLINE_CODE_REPLACE)
        if cloze:
            if highlights_to_cloze:
                text = HIGHLIGHT_REGEXP.sub(lambda m: '{' + m.group(1) + '}', text)
            text = self.curly_to_cloze(text, counter)
        text = self.format_medias(text)
        text = self.format_links(text)
        # highlights are handled here so that == inside code is left alone
        text = HIGHLIGHT_REGEXP.sub(lambda m: '<mark>' + m.group(1) + '</mark>', text)
        text = self.decensor(text, DISPLAY_CODE_REPLACE, display_code_matches, False)
        text = self.decensor(text, INLINE_CODE_REPLACE, inline_code_matches, False)
        text = render_markdown(text)
        text = self.decensor(text, MATH_REPLACE, math_matches, True).strip()
        if text.startswith(PARA_OPEN) and text.endswith(PARA_CLOSE) and text.count(PARA_OPEN) == 1:
            text = text[len(PARA_OPEN):-len(PARA_CLOSE)]
        if add_highlight_css:
            text = '<link href="' + CODE_CSS_URL + '" rel="stylesheet">' + text
        return text
