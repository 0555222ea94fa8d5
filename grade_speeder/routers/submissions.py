import logging
from typing import Union

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from grade_speeder.clients.canvas import CanvasClient
from grade_speeder.core.deps import get_canvas_client, remote_failure
from grade_speeder.core.errors import RemoteAPIError
from grade_speeder.schemas.submission import SubmissionsResponse
from grade_speeder.schemas.sync import SubmissionUpdate, SyncRequest, SyncResponse
from grade_speeder.services.sync_gateway import SyncGateway, count_results

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/submissions", response_model=SubmissionsResponse)
def list_submissions(client: CanvasClient = Depends(get_canvas_client)):
    try:
        return client.fetch_submissions()
    except RemoteAPIError as exc:
        logger.warning("Failed to fetch submissions (status=%s)", exc.status_code)
        raise remote_failure("Failed to fetch submissions")


@router.get("/submissions/{user_id}/file/{file_id}")
def stream_attachment(
    user_id: int,
    file_id: int,
    client: CanvasClient = Depends(get_canvas_client),
):
    try:
        remote = client.fetch_file(file_id)
    except RemoteAPIError:
        logger.warning("Failed to stream file (file=%s)", file_id)
        raise remote_failure("Failed to fetch file")

    media_type = remote.content_type
    if not media_type and remote.file_name and remote.file_name.lower().endswith(".pdf"):
        media_type = "application/pdf"

    headers = {
        "X-Content-Type-Options": "nosniff",
        "Cache-Control": "public, max-age=3600",
    }
    if remote.content_length:
        headers["Content-Length"] = remote.content_length
    if remote.file_name:
        headers["Content-Disposition"] = f'inline; filename="{remote.file_name}"'

    return StreamingResponse(remote.chunks, media_type=media_type, headers=headers)


@router.post("/submissions/sync", response_model=SyncResponse)
def sync_submissions(
    payload: Union[list[SubmissionUpdate], SyncRequest] = Body(...),
    client: CanvasClient = Depends(get_canvas_client),
):
    updates = payload.updates if isinstance(payload, SyncRequest) else payload
    if not updates:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Expected a non-empty array of updates",
        )

    results = SyncGateway(client).push(updates)
    synced, failed = count_results(results)
    return SyncResponse(results=results, synced=synced, failed=failed)
