"""Writing store-assigned identifiers back into document text.

Positions come from a scan of the unmodified text, so all insertions are
applied in one left-to-right pass that shifts each position by the length
of everything inserted before it.
"""
from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple

from notesync.notes.models import NoteKind, NoteSyncError
from notesync.patterns import ID_LINE_REGEXP


class RewriteError(NoteSyncError):
    pass


def id_to_str(identifier: int, inline: bool = False, comment: bool = False) -> str:
    result = 'ID: ' + str(identifier)
    if comment:
        result = '<!--' + result + '-->'
    if inline:
        result += ' '
    else:
        result += '\n'
    return result


def marker_for(kind: NoteKind, identifier: int, comment: bool = False) -> str:
    if kind == NoteKind.INLINE:
        return id_to_str(identifier, inline=True, comment=comment)
    if kind == NoteKind.REGEX:
        return '\n' + id_to_str(identifier, comment=comment)
    if kind == NoteKind.CALLOUT:
        return '> ' + id_to_str(identifier, comment=comment)
    return id_to_str(identifier, comment=comment)


def string_insert(text: str, position_inserts: Sequence[Tuple[int, str]]) -> str:
    """Insert strings into text at the given (original) indices.

    position_inserts looks like [(0, 'hi'), (3, 'hello'), (5, 'beep')].
    """
    offset = 0
    for position, insert in sorted(position_inserts, key=lambda item: item[0]):
        text = text[:position + offset] + insert + text[position + offset:]
        offset += len(insert)
    return text


def collapse_id_lines(text: str) -> str:
    """Drop a blank line left between content and an identifier line."""
    return ID_LINE_REGEXP.sub(lambda m: m.group(1), text)


def write_ids(text: str, pending: Sequence, note_ids: Sequence[Optional[int]], comment: bool = False, marker: Callable[[NoteKind, int, bool], str] = None) -> str:
    """Insert identifier markers for newly created notes.

    `pending` holds the created notes (anything with `kind` and `position`)
    in submission order and `note_ids` the identifiers the store assigned
    to them, position for position. A falsy identifier means the store did
    not create that note; nothing is written for it.
    """
    if len(pending) != len(note_ids):
        raise RewriteError(f'{len(note_ids)} identifiers for {len(pending)} pending notes')
    marker = marker or marker_for
    inserts: List[Tuple[int, str]] = []
    for note, identifier in zip(pending, note_ids):
        if not identifier:
            continue
        insert = marker(note.kind, identifier, comment)
        # a callout at the very end of the text may lack its final newline
        if note.kind == NoteKind.CALLOUT and note.position > 0 and text[note.position - 1] != '\n':
            insert = '\n' + insert
        inserts.append((note.position, insert))
    if not inserts:
        return text
    return collapse_id_lines(string_insert(text, inserts))


def remove_deletions(text: str, patterns) -> str:
    """Strip deletion markers, together with a begin/end block holding nothing else."""
    def drop_block(match):
        if patterns.deletion.fullmatch(match.group(1).strip()):
            return ''
        return match.group(0)

    text = patterns.note.sub(drop_block, text)
    return patterns.deletion.sub('', text)
