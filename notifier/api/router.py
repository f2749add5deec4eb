from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse
import structlog
from .schemas import EventRequest, EventResponse, QueueStatusResponse, ErrorResponse
from ..services.notification_service import NotificationService

router = APIRouter(prefix="/api")
log = structlog.get_logger()


def _service(request: Request) -> NotificationService:
    return request.app.state.service


@router.post(
    "/events",
    status_code=201,
    response_model=EventResponse,
    response_model_by_alias=True,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def create_event(req: EventRequest, request: Request):
    event_id = await _service(request).submit(req.event_type, req.payload, req.callback_url)
    log.info("event.accepted", event_id=event_id, event_type=req.event_type.value)
    return EventResponse(event_id=event_id, message="Event accepted for processing.")


@router.get("/queues", response_model=QueueStatusResponse)
async def queue_status(request: Request):
    return QueueStatusResponse(**_service(request).status())


@router.get("/health", response_class=PlainTextResponse)
async def api_health(request: Request):
    if _service(request).shutting_down:
        return PlainTextResponse("Event Notification System is shutting down", status_code=503)
    return "Event Notification System is running"
