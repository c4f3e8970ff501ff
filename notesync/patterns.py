"""Regular expressions making up the document grammar.

Fixed patterns (math, code, cloze, identifier and tag markers) live at
module level. Patterns built from the configurable marker lines are
compiled once per scan by `DocumentPatterns`.
"""
import re

TAG_PREFIX = 'Tags: '
TAG_SEP = ' '

# suffixes appended to a user-supplied note pattern
ID_REGEXP_STR = r'\n?(?:<!--)?(?:ID: (\d+).*)'
TAG_REGEXP_STR = r'(Tags: .*)'

ID_REGEXP = re.compile(r'(?:<!--)?ID: (\d+)')
ID_LINE_REGEXP = re.compile(r'(?:\r\n|\r|\n)((?:\r\n|\r|\n)(?:<!--)?ID: \d+)')
ANKI_CLOZE_REGEXP = re.compile(r'{{c\d+::[\s\S]+?}}')
OBS_TAG_REGEXP = re.compile(r'(?<![&\w])#(\w+)')
TAG_TOKEN_REGEXP = re.compile(r'(?<!\S)#(\S+)')
BLOCKQUOTE_REGEXP = re.compile(r'^>\s?', re.MULTILINE)

OBS_INLINE_MATH_REGEXP = re.compile(r'(?<!\$)\$((?=[\S])(?=[^$])[\s\S]*?\S)\$')
OBS_DISPLAY_MATH_REGEXP = re.compile(r'\$\$([\s\S]*?)\$\$')
OBS_CODE_REGEXP = re.compile(r'(?<!`)`(?=[^`])[\s\S]*?`')
OBS_DISPLAY_CODE_REGEXP = re.compile(r'```[\s\S]*?```')

ANKI_MATH_REGEXP = re.compile(r'(\\\[[\s\S]*?\\\])|(\\\([\s\S]*?\\\))')
HIGHLIGHT_REGEXP = re.compile(r'==(.*?)==')
CLOZE_REGEXP = re.compile(r'(?:(?<!\{)\{(?:c?(\d+)[:|])?(?!\{))((?:[^\n][\n]?)+?)(?:(?<!\})\}(?!\}))')

INLINE_TYPE_REGEXP = re.compile(r'\[(.*?)\]')
INLINE_TAG_REGEXP = re.compile(r'Tags: (.*)')
CALLOUT_REGEXP = re.compile(r'^(> \[!anki[^\]\n]*\][^\n]*(?:\n>[^\n]*)*\n?)', re.MULTILINE)
CALLOUT_TYPE_REGEXP = re.compile(r'\[!anki:?([^\]]*)\]')
CALLOUT_FIELDS_REGEXP = re.compile(r'^> \[!anki[^\]]*\](?:-*[ \t]*)?([^\n]*)\n([\s\S]*)')

CODE_CSS_URL = 'https://cdnjs.cloudflare.com/ajax/libs/highlight.js/11.0.1/styles/default.min.css'


class DocumentPatterns:
    """Marker-line patterns compiled from a `SyntaxConfig`."""

    def __init__(self, syntax):
        begin_note = re.escape(syntax.begin_note)
        end_note = re.escape(syntax.end_note)
        self.note = re.compile(r'^' + begin_note + r'\n([\s\S]*?\n)' + end_note, re.MULTILINE)
        self.inline = re.compile(re.escape(syntax.begin_inline_note) + r'(.*?)' + re.escape(syntax.end_inline_note))
        self.frozen = re.compile(re.escape(syntax.frozen_fields_line) + r' - (.*?):\n((?:[^\n][\n]?)+)')
        self.deck = re.compile(r'^' + re.escape(syntax.target_deck_line) + r'(?:\n|: )(.*)', re.MULTILINE)
        self.tags = re.compile(r'^' + re.escape(syntax.file_tags_line) + r'(?:\n|: )(.*)', re.MULTILINE)
        self.deletion = re.compile(re.escape(syntax.delete_note_line) + ID_REGEXP_STR)
        self.callout = CALLOUT_REGEXP
