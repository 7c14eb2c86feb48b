"""Upload API routes."""

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Query, status

from common.types import UploadStrategy
from gateway.auth import get_current_user
from gateway.schemas.common import ErrorResponse
from gateway.schemas.uploads import (
    ChunkUploadRequest,
    ChunkUploadResponse,
    DirectUploadRequest,
    FileRecordResponse,
    FileMetadataModel,
    PlanUploadRequest,
    PlanUploadResponse,
    UploadProgressResponse
)
from gateway.service_locator import GatewayServices, get_services

router = APIRouter(prefix="/uploads", tags=["Uploads"])


@router.post(
    "/plan",
    response_model=PlanUploadResponse,
    responses={
        400: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def plan_upload(
    request: PlanUploadRequest,
    current_user: str = Depends(get_current_user),
    services: GatewayServices = Depends(get_services)
):
    """
    Decide how a file should be uploaded.

    Files at or below the direct-upload threshold are sent in one request;
    larger files get a remote upload session and are sent in chunks. A
    chunked plan starts a fresh upload: any earlier progress and chunks for
    the same file are discarded.

    Raises:
        - 400: Invalid file name, size or missing drive id
        - 502: Token exchange or session creation failed
        - 503: Earlier upload state could not be cleared
    """
    plan = await services.session_manager.plan_upload(request.to_metadata())

    if plan.strategy == UploadStrategy.CHUNKED:
        await asyncio.to_thread(services.ingestor.reset_upload, current_user, request.file_name)

    return PlanUploadResponse(
        strategy=plan.strategy.value,
        max_chunk_size=plan.max_chunk_size,
        direct_upload_threshold=plan.direct_upload_threshold,
        total_chunks=plan.total_chunks,
        upload_url=plan.upload_url,
        expiration_date_time=plan.expires_at,
        next_expected_ranges=plan.accepted_ranges or None,
    )


@router.post(
    "/chunk",
    response_model=ChunkUploadResponse,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
def upload_chunk(
    request: ChunkUploadRequest,
    current_user: str = Depends(get_current_user),
    services: GatewayServices = Depends(get_services)
):
    """
    Accept one chunk of a chunked upload.

    Raises:
        - 400: Invalid indices or payload
        - 413: Chunk larger than the configured chunk size
        - 500: Upload complete but finalize failed (retransmit to retry)
        - 503: Chunk could not be stored (safe to retransmit)
    """
    metadata = request.file_metadata or FileMetadataModel()
    ack = services.ingestor.ingest(
        user_id=current_user,
        file_name=request.file_name,
        chunk_index=request.chunk_index,
        total_chunks=request.total_chunks,
        payload=request.payload,
        file_metadata=metadata.to_document(request.file_name),
    )

    return ChunkUploadResponse(
        chunk_index=ack.chunk_index,
        total_chunks=ack.total_chunks,
        accepted=ack.accepted,
        completed=ack.completed,
        file_id=ack.file_id,
    )


@router.post(
    "/direct",
    response_model=FileRecordResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
def upload_direct(
    request: DirectUploadRequest,
    current_user: str = Depends(get_current_user),
    services: GatewayServices = Depends(get_services)
):
    """
    Upload a small file in one request.

    Raises:
        - 400: Invalid name or payload
        - 413: File above the direct-upload threshold (use a chunked upload)
    """
    metadata = (request.file_metadata or FileMetadataModel()).to_metadata(request.file_name)
    record = services.direct_uploads.upload(current_user, metadata, payload=request.payload)
    return FileRecordResponse.from_record(record)


@router.get("/progress", response_model=UploadProgressResponse)
def get_progress(
    file_name: str = Query(..., alias="fileName"),
    current_user: str = Depends(get_current_user),
    services: GatewayServices = Depends(get_services)
):
    """
    Return the progress record of a chunked upload.

    Raises:
        - 404: No upload known for this file
    """
    progress = services.progress_repo.get(current_user, file_name)
    if progress is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No upload found for {file_name}"
        )
    return UploadProgressResponse.from_progress(progress)
