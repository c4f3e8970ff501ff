import pytest

from notesync.config import ScanConfig
from notesync.notes import DocumentMetadata, NoteIssue, NoteKind
from notesync.notes.models import EmbedRef, HeadingRef
from notesync.scanning import PatternError, RewriteError
from tests.fixtures.sample_data import BLOCK_WITH_ID, DANGLING_BLOCK, DELETION_DOCUMENT, QA_REGEXP


def test_sample_document(make_scanner, sample_document):
    result = make_scanner(sample_document).scan()
    assert result.target_deck == 'Biology'
    assert result.global_tags == ['science', 'cells']
    assert [n.kind for n in result.notes_to_add] == [NoteKind.BLOCK, NoteKind.INLINE, NoteKind.CALLOUT]
    block, inline, callout = result.notes_to_add
    assert block.fields == {'Front': 'What is the powerhouse of the cell?', 'Back': 'The mitochondrion'}
    assert block.tags == ['notesync', 'science', 'cells']
    assert block.note.deck_name == 'Biology'
    assert inline.fields == {'Front': 'Largest organelle?', 'Back': 'The nucleus'}
    assert callout.fields == {'Front': 'What is 2+2?', 'Back': '4'}
    assert result.notes_to_edit == []
    assert result.issues == []


def test_written_ids_are_read_back_as_edits(make_scanner, sample_document):
    scanner = make_scanner(sample_document)
    scanner.scan()
    text = scanner.write_ids([1, 2, 3])
    assert 'Back: The mitochondrion\nID: 1\nEND' in text
    assert 'Back: The nucleus ID: 2 ENDI' in text
    assert text.endswith('> 4\n> ID: 3\n')

    rescan = make_scanner(text, existing_ids=[1, 2, 3]).scan()
    assert rescan.notes_to_add == []
    assert sorted(rescan.edit_ids()) == [1, 2, 3]


def test_store_rejections_leave_no_marker(make_scanner, sample_document):
    scanner = make_scanner(sample_document)
    scanner.scan()
    text = scanner.write_ids([None, 5, None])
    assert 'ID: 5 ENDI' in text
    assert text.count('ID:') == 1


def test_comment_markers(make_scanner, sample_document):
    scanner = make_scanner(sample_document, ScanConfig(comment=True))
    scanner.scan()
    text = scanner.write_ids([1, 2, 3])
    assert '<!--ID: 1-->\nEND' in text
    assert '> <!--ID: 3-->\n' in text


def test_known_identifier_is_an_edit(make_scanner):
    result = make_scanner(BLOCK_WITH_ID, existing_ids=[42]).scan()
    assert result.notes_to_add == []
    assert result.edit_ids() == [42]
    assert result.tag_updates() == [(42, 'notesync old')]


def test_dangling_identifier_is_reported(make_scanner):
    result = make_scanner(DANGLING_BLOCK, existing_ids=[1]).scan()
    assert result.notes_to_add == []
    assert result.notes_to_edit == []
    assert [(i.issue, i.identifier) for i in result.issues] == [(NoteIssue.DANGLING_IDENTIFIER, 999)]


def test_unknown_block_type_is_reported(make_scanner):
    result = make_scanner('START\nMystery\nsome text\nEND\n').scan()
    assert result.notes_to_add == []
    assert result.issues[0].issue == NoteIssue.UNKNOWN_NOTE_TYPE
    assert result.issues[0].note_type == 'Mystery'


def test_deletions(make_scanner):
    scanner = make_scanner(DELETION_DOCUMENT)
    result = scanner.scan()
    assert result.notes_to_delete == [77]
    assert result.notes_to_add == []
    assert result.issues == []
    cleaned = scanner.remove_deletions()
    assert 'ID: 77' not in cleaned
    assert cleaned.startswith('Keep this line\n')
    assert 'And this one' in cleaned


def test_target_deck_colon_form_and_default(make_scanner):
    assert make_scanner('TARGET DECK: Maths\n').scan().target_deck == 'Maths'
    assert make_scanner('nothing here\n').scan().target_deck == 'Default'


def test_frozen_fields_are_appended(make_scanner):
    text = 'FROZEN - Basic:\nBack: frozen text\n\nSTART\nBasic\nq\nBack: a\nEND\n'
    result = make_scanner(text).scan()
    assert result.frozen_fields['Basic'] == {'Front': '', 'Back': 'frozen text'}
    assert result.frozen_fields['Cloze'] == {'Text': '', 'Back Extra': ''}
    assert result.notes_to_add[0].fields['Back'] == 'afrozen text'


def test_regex_note_creation_and_marker(make_scanner):
    config = ScanConfig(custom_regexps={'Basic': QA_REGEXP})
    scanner = make_scanner('Q: What?\nA: That.\n', config)
    result = scanner.scan()
    assert len(result.notes_to_add) == 1
    assert result.notes_to_add[0].fields == {'Front': 'What?', 'Back': 'That.'}
    assert scanner.write_ids([3]) == 'Q: What?\nA: That.\nID: 3\n\n'


def test_regex_note_with_identifier(make_scanner):
    config = ScanConfig(custom_regexps={'Basic': QA_REGEXP})
    result = make_scanner('Q: a\nA: b\nID: 5\n', config, existing_ids=[5]).scan()
    assert result.notes_to_add == []
    assert result.edit_ids() == [5]
    assert result.notes_to_edit[0].fields['Back'] == 'b'


def test_regex_tag_suffix_is_taken_by_tag_pass(make_scanner):
    config = ScanConfig(custom_regexps={'Basic': QA_REGEXP})
    result = make_scanner('Q: a\nA: b Tags: x y\n', config).scan()
    assert len(result.notes_to_add) == 1
    note = result.notes_to_add[0]
    assert note.fields['Back'] == 'b'
    assert note.tags == ['notesync', 'x', 'y']


def test_regex_inside_block_note_not_extracted_twice(make_scanner):
    config = ScanConfig(custom_regexps={'Basic': QA_REGEXP})
    result = make_scanner('START\nBasic\nQ: a\nA: b\nEND\n', config).scan()
    assert len(result.notes_to_add) == 1
    assert result.notes_to_add[0].kind == NoteKind.BLOCK


def test_regex_cloze_without_deletion_is_skipped_silently(make_scanner):
    config = ScanConfig(custom_regexps={'Cloze': r'^C: (.*)'})
    result = make_scanner('C: plain\nC: a {{c1::b}}\n', config).scan()
    assert result.issues == []
    assert [n.fields['Text'] for n in result.notes_to_add] == ['a {{c1::b}}']


def test_unknown_custom_type_is_reported(make_scanner):
    config = ScanConfig(custom_regexps={'Nope': r'^N: (.*)', 'Basic': ''})
    result = make_scanner('N: x\n', config).scan()
    assert result.notes_to_add == []
    assert [(i.issue, i.kind) for i in result.issues] == [(NoteIssue.UNKNOWN_NOTE_TYPE, NoteKind.REGEX)]


def test_invalid_custom_pattern_raises(make_scanner):
    config = ScanConfig(custom_regexps={'Basic': '(unclosed'})
    with pytest.raises(PatternError) as excinfo:
        make_scanner('anything', config).scan()
    assert excinfo.value.note_type == 'Basic'


def test_callout_inside_code_block_is_ignored(make_scanner):
    result = make_scanner('```\n> [!anki] Q\n> A\n```\n').scan()
    assert result.notes_to_add == []


def test_context_breadcrumb(make_scanner):
    headings = [
        HeadingRef(level=1, heading='Cells', offset=0),
        HeadingRef(level=2, heading='Organelles', offset=8),
        HeadingRef(level=2, heading='Membranes', offset=40),
    ]
    scanner = make_scanner('', metadata=DocumentMetadata(headings=headings), path='bio.md')
    assert scanner.context_at(20) == 'bio.md > Cells > Organelles'
    assert scanner.context_at(50) == 'bio.md > Cells > Membranes'
    assert make_scanner('', path='bio.md').context_at(5) == 'bio.md'


def test_context_added_when_enabled(make_scanner):
    text = '# Cells\nSTART\nBasic\nq\nBack: a\nEND\n'
    metadata = DocumentMetadata(headings=[HeadingRef(level=1, heading='Cells', offset=0)])
    result = make_scanner(text, ScanConfig(add_context=True), metadata=metadata, path='bio.md').scan()
    assert result.notes_to_add[0].fields['Front'] == 'qbio.md > Cells'


def test_media_links_collected(make_scanner):
    metadata = DocumentMetadata(embeds=[EmbedRef(original='![[cell.png]]', link='cell.png')])
    result = make_scanner('START\nBasic\n![[cell.png]]\nBack: a cell\nEND\n', metadata=metadata).scan()
    assert result.media_links == ['cell.png']


def test_content_hash_is_stable(make_scanner):
    assert make_scanner('abc').content_hash() == make_scanner('abc').content_hash()
    assert make_scanner('abc').content_hash() != make_scanner('abd').content_hash()


def test_custom_pattern_skips_reserved_regions(make_scanner):
    text = (
        'TARGET DECK\nBiology\n\n'
        'FILE TAGS\nscience\n\n'
        'FROZEN - Basic:\nBack: frozen\n\n'
        '```\ncode line\n```\n\n'
        '$$\nx\n$$\n\n'
        'real q\nreal a\n'
    )
    config = ScanConfig(custom_regexps={'Basic': r'^(.+)\n(.+)'})
    result = make_scanner(text, config).scan()
    assert result.issues == []
    assert len(result.notes_to_add) == 1
    note = result.notes_to_add[0]
    assert note.fields['Front'] == 'real q'
    assert note.fields['Back'] == 'real afrozen'
    assert note.tags == ['notesync', 'science']
    assert note.note.deck_name == 'Biology'


def test_write_ids_before_scan(make_scanner, sample_document):
    scanner = make_scanner(sample_document)
    assert scanner.write_ids([]) == sample_document
    with pytest.raises(RewriteError):
        scanner.write_ids([1])
