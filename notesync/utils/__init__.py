"""Utility subpackage for notesync"""

from .logger import (
	get_logger,
	log_request,
	log_error,
	log_scan_result,
	log_note_skipped,
	log_ids_written,
	set_request_context,
	get_request_context,
)

__all__ = [
	'get_logger',
	'log_request',
	'log_error',
	'log_scan_result',
	'log_note_skipped',
	'log_ids_written',
	'set_request_context',
	'get_request_context',
]
