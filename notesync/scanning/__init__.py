"""
Document scanning: span bookkeeping, the multi-extractor scanner and the
identifier rewriter.
"""
from .spans import SpanRegistry
from .rewriter import RewriteError, id_to_str, marker_for, string_insert, collapse_id_lines, write_ids, remove_deletions
from .scanner import DocumentScanner, ScanResult, PatternError

__all__ = [
	'SpanRegistry',
	'RewriteError', 'id_to_str', 'marker_for', 'string_insert', 'collapse_id_lines', 'write_ids', 'remove_deletions',
	'DocumentScanner', 'ScanResult', 'PatternError',
]
