"""Task models."""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class TaskItem:
    """A to-do entry with an optional deadline.

    Attributes:
        id: Unique identifier for the task.
        title: Short description shown in alerts.
        deadline: Calendar date the task is due, if any.
        is_done: Whether the task is completed.
        project_id: Project the task belongs to.
        description: Longer free-text description.
        completed_at: When the task was marked done.
        created_at: When the task was created.
        updated_at: When the task was last edited.
    """

    id: str
    title: str
    deadline: Optional[date] = None
    is_done: bool = False
    project_id: Optional[str] = None
    description: str = ""
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        """Validate required fields."""
        if not self.id:
            raise ValueError("id cannot be empty")
        if not self.title:
            raise ValueError("title cannot be empty")

    def days_left(self, today: date) -> Optional[int]:
        """Whole days until the deadline; negative when overdue."""
        if self.deadline is None:
            return None
        return (self.deadline - today).days
