"""
The two submission paths.

submit_gameplay_text:  text -> prompt -> model -> parsed result -> stored record
upload_gameplay_file:  bytes -> object storage -> stored record

Each call is one independent task. The model call, the storage upload and the
store write are the only awaits; the store write only happens once a result
(real or degraded) exists, so a failed submission leaves nothing behind.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from analysis_schema import AnalysisResult
from audit import write_event
from errors import AuthenticationError, InputValidationError
from prompt_builder import build_analysis_request
from response_parser import parse_generation
from result_store import GameplayLogRecord, RecordDraft
from services import ServiceBundle
from storage import object_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisRequest:
    raw_text: str
    submitter_id: str


@dataclass(frozen=True)
class UploadOutcome:
    file_url: str
    record: GameplayLogRecord

    def to_dict(self) -> dict:
        return {"message": "File uploaded and metadata saved.", "fileUrl": self.file_url}


def _require_user(user_id: Optional[str]) -> str:
    if not user_id:
        raise AuthenticationError()
    return user_id


async def submit_gameplay_text(services: ServiceBundle, raw_text: str, submitter_id: Optional[str]) -> AnalysisResult:
    request = AnalysisRequest(raw_text=raw_text, submitter_id=_require_user(submitter_id))
    settings = services.settings

    payload = build_analysis_request(
        request.raw_text,
        request.submitter_id,
        temperature=settings.GENAI_TEMPERATURE,
        max_tokens=settings.GENAI_MAX_TOKENS,
    )

    envelope = await services.generation_client.generate(payload)
    result = parse_generation(envelope)

    record = await asyncio.to_thread(
        services.result_store.append,
        RecordDraft(
            owner_id=request.submitter_id,
            source_text=request.raw_text,
            result=result,
            model_name=envelope.model,
        ),
    )
    write_event("GAMEPLAY_ANALYSIS_CREATED", {
        "id": record.id,
        "owner": record.owner_id,
        "model": envelope.model,
        "input_chars": len(request.raw_text),
    }, path=settings.AUDIT_LOG_PATH)
    return result


async def upload_gameplay_file(
    services: ServiceBundle,
    file_bytes: Optional[bytes],
    file_name: Optional[str],
    mime_type: Optional[str],
    owner_id: Optional[str],
) -> UploadOutcome:
    owner_id = _require_user(owner_id)
    if not file_bytes:
        raise InputValidationError("No file uploaded.")

    file_name = file_name or "gameplay.log"
    mime_type = mime_type or "application/octet-stream"
    storage = services.object_storage
    key = object_key(services.settings.APP_ID, owner_id, file_name)

    await asyncio.to_thread(storage.upload, key, file_bytes, mime_type)
    file_url = storage.public_url(key)

    record = await asyncio.to_thread(
        services.result_store.append,
        RecordDraft(
            owner_id=owner_id,
            source_file_url=file_url,
            source_file_name=file_name,
            source_file_mime_type=mime_type,
        ),
    )
    write_event("GAMEPLAY_FILE_UPLOADED", {
        "id": record.id,
        "owner": owner_id,
        "file": file_name,
        "bytes": len(file_bytes),
    }, path=services.settings.AUDIT_LOG_PATH)
    logger.info("Stored gameplay file %s for owner=%s (%d bytes)", key, owner_id, len(file_bytes))
    return UploadOutcome(file_url=file_url, record=record)
