"""Task repository."""
import aiosqlite
from datetime import date, datetime, timezone
from typing import Optional

from sharbox.state.models.task import TaskItem


class TaskRepository:
    """Manages to-do entries in the tasks table."""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def upsert(self, task: TaskItem) -> None:
        """Insert or replace a task."""
        await self._conn.execute(
            "INSERT OR REPLACE INTO tasks (id, project_id, title, description, "
            "deadline, is_done, completed_at, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                task.id, task.project_id, task.title, task.description,
                task.deadline.isoformat() if task.deadline else None,
                int(task.is_done),
                task.completed_at.isoformat() if task.completed_at else None,
                task.created_at.isoformat() if task.created_at else None,
                task.updated_at.isoformat() if task.updated_at else None,
            ),
        )
        await self._conn.commit()

    async def get_by_id(self, task_id: str) -> Optional[TaskItem]:
        cursor = await self._conn.execute(
            "SELECT * FROM tasks WHERE id = ?", (task_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_task(row) if row else None

    async def list_open(self) -> list[TaskItem]:
        """List tasks not yet done, earliest deadline first.

        Tasks without a deadline sort last.
        """
        cursor = await self._conn.execute(
            "SELECT * FROM tasks WHERE is_done = 0 "
            "ORDER BY deadline IS NULL, deadline ASC, id ASC",
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(r) for r in rows]

    async def mark_done(self, task_id: str) -> bool:
        """Mark a task as done.

        Returns:
            True if an open task was updated.
        """
        now = datetime.now(timezone.utc).isoformat()
        cursor = await self._conn.execute(
            "UPDATE tasks SET is_done = 1, completed_at = ?, updated_at = ? "
            "WHERE id = ? AND is_done = 0",
            (now, now, task_id),
        )
        await self._conn.commit()
        return cursor.rowcount > 0

    async def delete(self, task_id: str) -> bool:
        cursor = await self._conn.execute(
            "DELETE FROM tasks WHERE id = ?", (task_id,),
        )
        await self._conn.commit()
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> TaskItem:
        """Convert a database row to a TaskItem."""
        def _dt(value: Optional[str]) -> Optional[datetime]:
            return datetime.fromisoformat(value) if value else None

        return TaskItem(
            id=row["id"],
            project_id=row["project_id"],
            title=row["title"],
            description=row["description"],
            deadline=date.fromisoformat(row["deadline"]) if row["deadline"] else None,
            is_done=bool(row["is_done"]),
            completed_at=_dt(row["completed_at"]),
            created_at=_dt(row["created_at"]),
            updated_at=_dt(row["updated_at"]),
        )
