"""
notesync: extract flashcard notes from markdown documents, render their
fields to HTML and write store-assigned identifiers back into the text.
"""
from .config import ScanConfig, SyntaxConfig, Settings, load_scan_config
from .notes import DocumentMetadata, ExtractedNote, FieldFormatter, NoteIssue, NoteKind, NoteSyncError
from .scanning import DocumentScanner, PatternError, RewriteError, ScanResult

__version__ = '1.0.0'

__all__ = [
	'ScanConfig', 'SyntaxConfig', 'Settings', 'load_scan_config',
	'DocumentMetadata', 'ExtractedNote', 'FieldFormatter', 'NoteIssue', 'NoteKind', 'NoteSyncError',
	'DocumentScanner', 'PatternError', 'RewriteError', 'ScanResult',
]
