import pytest

from notesync.config import SyntaxConfig
from notesync.notes import NoteKind
from notesync.patterns import DocumentPatterns
from notesync.scanning import RewriteError, collapse_id_lines, id_to_str, marker_for, remove_deletions, string_insert, write_ids


class Pending:
    def __init__(self, kind, position):
        self.kind = kind
        self.position = position


def test_id_to_str_variants():
    assert id_to_str(5) == 'ID: 5\n'
    assert id_to_str(5, inline=True) == 'ID: 5 '
    assert id_to_str(5, comment=True) == '<!--ID: 5-->\n'


def test_marker_for_each_kind():
    assert marker_for(NoteKind.BLOCK, 1) == 'ID: 1\n'
    assert marker_for(NoteKind.INLINE, 1) == 'ID: 1 '
    assert marker_for(NoteKind.REGEX, 1) == '\nID: 1\n'
    assert marker_for(NoteKind.CALLOUT, 1, True) == '> <!--ID: 1-->\n'


def test_string_insert_uses_original_positions():
    assert string_insert('abcdef', [(3, 'X'), (0, 'Y'), (6, 'Z')]) == 'YabcXdefZ'


def test_collapse_id_lines():
    assert collapse_id_lines('text\n\nID: 5\n') == 'text\nID: 5\n'
    assert collapse_id_lines('text\n\n<!--ID: 5-->') == 'text\n<!--ID: 5-->'


def test_write_ids_without_inserts_is_identity():
    text = 'START\nBasic\nq\nEND\n\n\n'
    assert write_ids(text, [], []) == text
    assert write_ids(text, [Pending(NoteKind.BLOCK, 17)], [None]) == text


def test_write_ids_length_mismatch():
    with pytest.raises(RewriteError):
        write_ids('abc', [Pending(NoteKind.BLOCK, 0)], [1, 2])


def test_write_ids_callout_at_end_of_text():
    text = '> [!anki] Q\n> A'
    out = write_ids(text, [Pending(NoteKind.CALLOUT, len(text))], [9])
    assert out == '> [!anki] Q\n> A\n> ID: 9\n'


def test_write_ids_multiple_kinds():
    text = 'START\nBasic\nq\nEND\nSTARTI [Basic] a Back: b ENDI\n'
    block_pos = text.index('END\n')
    inline_pos = text.index('ENDI')
    out = write_ids(text, [Pending(NoteKind.BLOCK, block_pos), Pending(NoteKind.INLINE, inline_pos)], [11, 12])
    assert out == 'START\nBasic\nq\nID: 11\nEND\nSTARTI [Basic] a Back: b ID: 12 ENDI\n'


def test_remove_deletions_drops_block_and_markers():
    patterns = DocumentPatterns(SyntaxConfig())
    text = 'keep\nSTART\nDELETE\nID: 77\nEND\nalso keep\nDELETE\nID: 78\n'
    out = remove_deletions(text, patterns)
    assert 'ID: 77' not in out
    assert 'ID: 78' not in out
    assert 'START' not in out
    assert out.startswith('keep\n')
    assert 'also keep' in out
