from src.models.complaint import (
    ComplaintAggregate,
    ComplaintEventRecord,
    ComplaintMediaRecord,
    ComplaintRecord,
    ComplaintSubmission,
    CreatedComplaint,
)
from src.models.enums import (
    ActorType,
    Channel,
    ComplaintStatus,
    EventType,
    MediaType,
    Priority,
)

__all__ = [
    "ActorType",
    "Channel",
    "ComplaintAggregate",
    "ComplaintEventRecord",
    "ComplaintMediaRecord",
    "ComplaintRecord",
    "ComplaintStatus",
    "ComplaintSubmission",
    "CreatedComplaint",
    "EventType",
    "MediaType",
    "Priority",
]
