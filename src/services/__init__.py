from src.services import (
    analytics_service,
    reminder_service,
    task_service,
    user_service,
)


__all__ = [
    "analytics_service",
    "reminder_service",
    "task_service",
    "user_service",
]
