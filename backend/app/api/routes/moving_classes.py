import logging

from fastapi import APIRouter

from app.schemas.moving_class import InstancePreview, MovingClassScheduleRequest, ScheduleResult
from app.services.moving_class_scheduler import MovingClassScheduler

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/moving-classes/schedule", response_model=ScheduleResult)
def schedule_moving_classes(payload: MovingClassScheduleRequest) -> ScheduleResult:
    return MovingClassScheduler(payload).run()


@router.post("/moving-classes/instances", response_model=InstancePreview)
def preview_moving_class_instances(payload: MovingClassScheduleRequest) -> InstancePreview:
    preview = MovingClassScheduler(payload).preview()
    logger.info("Previewed %d moving-class instance(s)", len(preview.instances))
    return preview
