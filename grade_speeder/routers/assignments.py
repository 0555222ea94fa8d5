import logging

from fastapi import APIRouter, Depends

from grade_speeder.clients.canvas import CanvasClient
from grade_speeder.core.deps import get_canvas_client, get_course_client, remote_failure
from grade_speeder.core.errors import RemoteAPIError
from grade_speeder.schemas.assignment import AssignmentDetails, AssignmentsResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/assignments", response_model=AssignmentsResponse)
def list_assignments(client: CanvasClient = Depends(get_course_client)):
    try:
        assignments = client.fetch_assignments()
    except RemoteAPIError as exc:
        logger.warning("Failed to fetch assignments (status=%s)", exc.status_code)
        raise remote_failure("Failed to fetch assignments")

    return AssignmentsResponse(assignments=assignments, course_id=client.course_id)


@router.get("/assignment-details", response_model=AssignmentDetails)
def assignment_details(client: CanvasClient = Depends(get_canvas_client)):
    try:
        return client.fetch_assignment_details()
    except RemoteAPIError as exc:
        logger.warning("Failed to fetch assignment details (status=%s)", exc.status_code)
        raise remote_failure("Failed to fetch assignment details")
