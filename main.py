import os
import time
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from notesync.config import ScanConfig, load_scan_config
from notesync.notes import DocumentMetadata, FieldFormatter, NoteKind
from notesync.scanning import DocumentScanner, PatternError, RewriteError, ScanResult, write_ids
from notesync.utils import get_logger, log_error, log_request, set_request_context

LOG = get_logger()


class Settings(BaseSettings):
    HOST: str = os.getenv('HOST', '0.0.0.0')
    PORT: int = int(os.getenv('PORT', '8000'))
    ENVIRONMENT: str = os.getenv('ENVIRONMENT', 'development')
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')
    CORS_ORIGIN: str = os.getenv('CORS_ORIGIN', '*')
    MAX_DOCUMENT_LENGTH: int = int(os.getenv('MAX_DOCUMENT_LENGTH', '1000000'))


settings = Settings()

app = FastAPI(title='notesync', version='1.0.0', description='Flashcard note extraction service')

# CORS config
origins = [o.strip() for o in settings.CORS_ORIGIN.split(',') if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware('http')
async def add_request_id_and_logging(request: Request, call_next):
    # prefer incoming X-Request-ID header for cross-service tracing
    request_id = request.headers.get('x-request-id') or os.urandom(8).hex()
    request.state.request_id = request_id
    set_request_context(request_id)
    start = time.time()
    LOG.info('http_request_start', extra={'method': request.method, 'path': request.url.path, 'request_id': request_id, 'client': request.client.host if request.client else None})
    try:
        response: Response = await call_next(request)
    except Exception:
        LOG.exception('Unhandled exception in request', exc_info=True)
        body = {'success': False, 'error': {'message': 'Internal server error', 'request_id': request_id}}
        return JSONResponse(status_code=500, content=body)
    duration = int((time.time() - start) * 1000)
    log_request(request_id, request.method, request.url.path, response.status_code, duration, request.client.host if request.client else None)
    response.headers['X-Request-ID'] = request_id
    return response


@app.get('/health')
async def health():
    return {'status': 'ok', 'timestamp': datetime.utcnow().isoformat() + 'Z', 'service': 'notesync'}


class ScanRequest(BaseModel):
    text: str = Field(..., description='Markdown document text')
    path: str = Field('', description='Document path, used for context breadcrumbs')
    url: str = Field('', description='Deep link to the document, appended to notes when set')
    existing_ids: List[int] = Field(default_factory=list, description='Identifiers known to the flashcard store')
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    config: Optional[ScanConfig] = None


class ScanResponse(BaseModel):
    success: bool
    result: ScanResult
    content_hash: str
    request_id: str


class FormatRequest(BaseModel):
    text: str
    cloze: bool = False
    highlights_to_cloze: bool = False
    vault_name: str = ''
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)


class FormatResponse(BaseModel):
    success: bool
    html: str
    media_links: List[str]
    request_id: str


class PendingWrite(BaseModel):
    kind: NoteKind
    position: int = Field(..., ge=0)


class WriteIdsRequest(BaseModel):
    text: str
    pending: List[PendingWrite]
    note_ids: List[Optional[int]]
    comment: bool = False


class WriteIdsResponse(BaseModel):
    success: bool
    text: str
    request_id: str


def _request_id(fastapi_request: Request) -> str:
    return getattr(fastapi_request.state, 'request_id', None) or os.urandom(8).hex()


@app.post('/notes/scan', response_model=ScanResponse)
async def scan_notes(req: ScanRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    if len(req.text) > settings.MAX_DOCUMENT_LENGTH:
        return JSONResponse(status_code=400, content={'success': False, 'error': 'Document too large', 'details': f'text must be at most {settings.MAX_DOCUMENT_LENGTH} characters', 'request_id': request_id})
    LOG.info('scan_start', extra={'request_id': request_id, 'path': req.path, 'text_length': len(req.text)})
    try:
        config = req.config or load_scan_config()
        scanner = DocumentScanner(req.text, req.path, config, metadata=req.metadata, url=req.url, existing_ids=req.existing_ids)
        result = scanner.scan()
        return ScanResponse(success=True, result=result, content_hash=scanner.content_hash(), request_id=request_id)
    except PatternError as e:
        LOG.exception('scan_pattern_error', exc_info=True)
        return JSONResponse(status_code=422, content={'success': False, 'error': 'Invalid note pattern', 'details': str(e), 'request_id': request_id})
    except Exception as e:
        log_error(e, {'event': 'scan_unknown_error', 'request_id': request_id})
        return JSONResponse(status_code=500, content={'success': False, 'error': 'Unexpected error', 'details': str(e), 'request_id': request_id})


@app.post('/notes/format', response_model=FormatResponse)
async def format_field(req: FormatRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    try:
        formatter = FieldFormatter(req.metadata, req.vault_name)
        rendered = formatter.format(req.text.strip(), req.cloze, req.highlights_to_cloze).strip()
        return FormatResponse(success=True, html=rendered, media_links=list(formatter.detected_media), request_id=request_id)
    except Exception as e:
        log_error(e, {'event': 'format_unknown_error', 'request_id': request_id})
        return JSONResponse(status_code=500, content={'success': False, 'error': 'Unexpected error', 'details': str(e), 'request_id': request_id})


@app.post('/notes/write-ids', response_model=WriteIdsResponse)
async def write_note_ids(req: WriteIdsRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    if any(p.position > len(req.text) for p in req.pending):
        return JSONResponse(status_code=400, content={'success': False, 'error': 'Invalid position', 'details': 'positions must lie within the text', 'request_id': request_id})
    try:
        text = write_ids(req.text, req.pending, req.note_ids, comment=req.comment)
        return WriteIdsResponse(success=True, text=text, request_id=request_id)
    except RewriteError as e:
        LOG.exception('write_ids_mismatch', exc_info=True)
        return JSONResponse(status_code=422, content={'success': False, 'error': 'Identifier count mismatch', 'details': str(e), 'request_id': request_id})
    except Exception as e:
        log_error(e, {'event': 'write_ids_unknown_error', 'request_id': request_id})
        return JSONResponse(status_code=500, content={'success': False, 'error': 'Unexpected error', 'details': str(e), 'request_id': request_id})


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(
        'main:app',
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.ENVIRONMENT == 'development',
    )
