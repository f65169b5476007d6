from fastapi import APIRouter

from core import topics
from core.event_hub import event_hub
from core.service_manager import service_manager
from schemas import NotificationIn, SystemStatusResponse

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/status", response_model=SystemStatusResponse)
async def get_system_status() -> SystemStatusResponse:
    """State of the sample data generator, each of its periodic tasks, and the stored point count."""
    total = await service_manager.data_point_service.get_total_count()
    return SystemStatusResponse(**service_manager.data_generator.status(), dataPoints=total)


@router.post("/notifications", status_code=204)
async def send_notification(body: NotificationIn) -> None:
    """Broadcast a free-text message to subscribers of `notifications`."""
    event_hub.publish(topics.NOTIFICATIONS, body.message)
