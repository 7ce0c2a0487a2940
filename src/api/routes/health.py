"""Health check endpoint."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.dependencies import get_task_queue
from port.task_queue import TaskQueuePort

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health(task_queue: TaskQueuePort = Depends(get_task_queue)):
    """Health check with background queue status."""
    running = getattr(task_queue, "running", True)
    health_status = {
        "status": "healthy" if running else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
        "services": {
            "background_queue": {
                "status": "healthy" if running else "unhealthy",
                "pending": getattr(task_queue, "pending", 0),
            }
        },
    }

    status_code = status.HTTP_200_OK if running else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=health_status, status_code=status_code)
