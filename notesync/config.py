"""Configuration for document scans.

`ScanConfig` is the per-scan bundle handed to the scanner: the note-type
schema, custom note patterns, per-type field choices, the note template
and the behaviour toggles. Scalar toggles default from the environment
through `Settings` (prefix NOTESYNC_, optional .env file).
"""
from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from notesync.notes.models import NotePayload


def _default_fields_dict() -> Dict[str, List[str]]:
    return {
        'Basic': ['Front', 'Back'],
        'Basic (and reversed card)': ['Front', 'Back'],
        'Cloze': ['Text', 'Back Extra'],
    }


def _default_template() -> NotePayload:
    return NotePayload(deck_name='Default', note_type='', fields={}, tags=['notesync'])


class SyntaxConfig(BaseModel):
    begin_note: str = 'START'
    end_note: str = 'END'
    begin_inline_note: str = 'STARTI'
    end_inline_note: str = 'ENDI'
    target_deck_line: str = 'TARGET DECK'
    file_tags_line: str = 'FILE TAGS'
    delete_note_line: str = 'DELETE'
    frozen_fields_line: str = 'FROZEN'

    @field_validator('*')
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('syntax markers must not be blank')
        return v


class ScanConfig(BaseModel):
    fields_dict: Dict[str, List[str]] = Field(default_factory=_default_fields_dict, description='Note type -> ordered field names')
    custom_regexps: Dict[str, str] = Field(default_factory=dict, description='Note type -> pattern; empty disables the type')
    file_link_fields: Dict[str, str] = Field(default_factory=dict)
    context_fields: Dict[str, str] = Field(default_factory=dict)
    template: NotePayload = Field(default_factory=_default_template)
    vault_name: str = ''
    curly_cloze: bool = False
    highlights_to_cloze: bool = False
    add_context: bool = False
    add_obs_tags: bool = False
    comment: bool = False
    syntax: SyntaxConfig = Field(default_factory=SyntaxConfig)

    @field_validator('fields_dict')
    @classmethod
    def unique_field_names(cls, v):
        for note_type, names in v.items():
            if not names:
                raise ValueError(f'note type {note_type!r} has no fields')
            if len(set(names)) != len(names):
                raise ValueError(f'note type {note_type!r} has duplicate field names')
        return v

    def file_link_field(self, note_type: str) -> str:
        return self.file_link_fields.get(note_type) or self.fields_dict[note_type][0]

    def context_field(self, note_type: str) -> str:
        return self.context_fields.get(note_type) or self.fields_dict[note_type][0]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix='NOTESYNC_', env_file='.env', extra='ignore')

    vault_name: str = ''
    default_deck: str = 'Default'
    curly_cloze: bool = False
    highlights_to_cloze: bool = False
    add_context: bool = False
    add_obs_tags: bool = False
    comment: bool = False


def load_scan_config(settings: Settings = None, **overrides) -> ScanConfig:
    settings = settings or Settings()
    values = {
        'vault_name': settings.vault_name,
        'curly_cloze': settings.curly_cloze,
        'highlights_to_cloze': settings.highlights_to_cloze,
        'add_context': settings.add_context,
        'add_obs_tags': settings.add_obs_tags,
        'comment': settings.comment,
    }
    values.update(overrides)
    if 'template' not in values:
        template = _default_template()
        template.deck_name = settings.default_deck
        values['template'] = template
    return ScanConfig(**values)
