"""In-memory stand-ins for the browser-storage databases behind the servers."""
import logging
import secrets
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


def generate_id() -> str:
    return f"{int(time.time() * 1000):x}{secrets.token_hex(4)}"


def timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class UserStore:
    def __init__(self) -> None:
        self._users: List[Dict] = []

    def get_by_id(self, user_id: str) -> Optional[Dict]:
        return next((u for u in self._users if u["id"] == user_id), None)

    def get_by_email(self, email: str) -> Optional[Dict]:
        email = email.lower()
        return next((u for u in self._users if u["email"] == email), None)

    def exists(self, email: str) -> bool:
        return self.get_by_email(email) is not None

    def add(self, email: str, password: str, name: str = "") -> Dict:
        now = timestamp()
        # Passwords are kept in plain text; nothing here is meant to be secure.
        user = {
            "id": generate_id(),
            "email": email.lower(),
            "password": password,
            "name": name,
            "createdAt": now,
            "updatedAt": now,
        }
        self._users.append(user)
        logger.debug("user added: %s", user["id"])
        return user

    def validate_credentials(self, email: str, password: str) -> Optional[Dict]:
        user = self.get_by_email(email)
        if user is None or user["password"] != password:
            return None
        return user


class TaskStore:
    def __init__(self) -> None:
        self._tasks: List[Dict] = []

    def get(self, task_id: str) -> Optional[Dict]:
        return next((t for t in self._tasks if t["id"] == task_id), None)

    def list_for_user(self, user_id: str) -> List[Dict]:
        return [t for t in self._tasks if t["userId"] == user_id]

    def add(self, user_id: str, title: str, description: str = "", subject: str = "",
            due_date: Optional[str] = None, priority: str = "medium") -> Dict:
        now = timestamp()
        task = {
            "id": generate_id(),
            "userId": user_id,
            "title": title,
            "description": description or "",
            "subject": subject or "",
            "dueDate": due_date or None,
            "priority": priority or "medium",
            "completed": False,
            "createdAt": now,
            "updatedAt": now,
        }
        self._tasks.append(task)
        logger.debug("task added: %s", task["id"])
        return task

    def update(self, task_id: str, updates: Dict) -> Optional[Dict]:
        task = self.get(task_id)
        if task is None:
            return None
        owner = task["userId"]
        task.update(updates)
        task["id"] = task_id
        task["userId"] = owner
        task["updatedAt"] = timestamp()
        logger.debug("task updated: %s", task_id)
        return task

    def delete(self, task_id: str) -> bool:
        before = len(self._tasks)
        self._tasks = [t for t in self._tasks if t["id"] != task_id]
        return len(self._tasks) != before

    def toggle(self, task_id: str) -> Optional[Dict]:
        task = self.get(task_id)
        if task is None:
            return None
        return self.update(task_id, {"completed": not task["completed"]})

    def search(self, user_id: str, keyword: str) -> List[Dict]:
        keyword = keyword.lower()
        return [
            t for t in self.list_for_user(user_id)
            if keyword in t["title"].lower()
            or keyword in t["description"].lower()
            or keyword in t["subject"].lower()
        ]

    def by_status(self, user_id: str, completed: bool) -> List[Dict]:
        return [t for t in self.list_for_user(user_id) if t["completed"] == completed]

    def by_priority(self, user_id: str, priority: str) -> List[Dict]:
        return [t for t in self.list_for_user(user_id) if t["priority"] == priority]

    def overdue(self, user_id: str, now: Optional[datetime] = None) -> List[Dict]:
        now = now or datetime.now(timezone.utc)
        result = []
        for task in self.list_for_user(user_id):
            if task["completed"] or not task["dueDate"]:
                continue
            due = datetime.fromisoformat(task["dueDate"].replace("Z", "+00:00"))
            if due.tzinfo is None:
                due = due.replace(tzinfo=timezone.utc)
            if due < now:
                result.append(task)
        return result

    def count(self, user_id: str) -> int:
        return len(self.list_for_user(user_id))

    def clear_user(self, user_id: str) -> None:
        self._tasks = [t for t in self._tasks if t["userId"] != user_id]
