"""
Recordbook Backend: Record Route Handlers
==========================================

What:  GET /api/init, GET/POST /api/records, DELETE /api/records/{id}, GET /api/stats.
How:   Each handler decodes what it needs from the request and delegates to
       the injected RecordStore. Errors propagate as RecordbookError
       subclasses and are formatted by the global exception handlers.
Who:   Called by the records frontend.

Status codes:
    200  every success, including a delete that matched no row
    400  ValidationError (missing field, unknown grade)
    500  DatabaseError / StoreNotBoundError / RequestBodyError
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request

from recordbook.database import get_record_store
from recordbook.exceptions import RequestBodyError
from recordbook.schemas.record import (
    CreateRecordResponse,
    DeleteRecordResponse,
    ErrorResponse,
    InitResponse,
    RecordListResponse,
    StatsResponse,
)
from recordbook.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Records"])


async def read_json_body(request: Request) -> Any:
    """
    Decode the request body as JSON.

    Raises:
        RequestBodyError: empty body, invalid JSON, or undecodable bytes.
    """
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise RequestBodyError(message=str(e), context={"path": request.url.path}) from e


@router.get(
    "/init",
    response_model=InitResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Create the records table if it does not exist",
)
async def init_schema(store: RecordStore = Depends(get_record_store)) -> InitResponse:
    return await store.initialize()


@router.get(
    "/records",
    response_model=RecordListResponse,
    responses={500: {"model": ErrorResponse}},
    summary="List all records, newest first",
)
async def list_records(store: RecordStore = Depends(get_record_store)) -> RecordListResponse:
    return await store.list_records()


@router.post(
    "/records",
    response_model=CreateRecordResponse,
    responses={
        400: {"description": "Missing field or unknown grade"},
        500: {"model": ErrorResponse},
    },
    summary="Create a record",
    description=(
        "Body: {date, grade, department, content}, all non-empty strings. "
        "grade must be 高一 or 高二."
    ),
)
async def create_record(
    request: Request,
    store: RecordStore = Depends(get_record_store),
) -> CreateRecordResponse:
    payload = await read_json_body(request)
    return await store.create_record(payload)


@router.delete(
    "/records/{record_id:int}",
    response_model=DeleteRecordResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Delete a record by id",
    description="Succeeds even when no record has the given id.",
)
async def delete_record(
    record_id: int,
    store: RecordStore = Depends(get_record_store),
) -> DeleteRecordResponse:
    return await store.delete_record(record_id)


@router.get(
    "/stats",
    response_model=StatsResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Record counts: total, today, by department, by grade",
)
async def get_stats(store: RecordStore = Depends(get_record_store)) -> StatsResponse:
    return await store.compute_stats()
