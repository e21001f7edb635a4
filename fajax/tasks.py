import re
from typing import Optional

from .auth import AuthServer
from .config import API, MESSAGES, STATUS
from .handler import JsonHandler
from .models import Method, RequestDescriptor, ResponseDescriptor
from .store import TaskStore

TASK_PATH_RE = re.compile(r"^/api/tasks/([^/]+)$")


class TasksServer(JsonHandler):
    """Task CRUD for the signed-in user under ``/api/tasks``."""

    name = "tasks"

    def __init__(self, tasks: TaskStore, auth: AuthServer) -> None:
        self.tasks = tasks
        self.auth = auth

    def handle(self, request: RequestDescriptor) -> ResponseDescriptor:
        user = self.auth.validate_user(self.session_user_id(request))
        if user is None:
            return self.respond(STATUS.UNAUTHORIZED, False, MESSAGES.UNAUTHORIZED_ACCESS)
        user_id = user["id"]

        path, method = request.path, request.method
        match = TASK_PATH_RE.match(path)
        task_id = match.group(1) if match else None

        if path == API.TASKS and method == Method.GET:
            return self.list_tasks(user_id, request)
        if path == API.TASKS and method == Method.POST:
            return self.create_task(user_id, request)
        if task_id and method == Method.GET:
            return self.get_task(user_id, task_id)
        if task_id and method == Method.PUT:
            return self.update_task(user_id, task_id, request)
        if task_id and method == Method.DELETE:
            return self.delete_task(user_id, task_id)
        return self.not_found()

    def list_tasks(self, user_id: str, request: RequestDescriptor) -> ResponseDescriptor:
        params = request.query
        if params.get("search"):
            tasks = self.tasks.search(user_id, params["search"])
        elif "completed" in params:
            tasks = self.tasks.by_status(user_id, params["completed"] == "true")
        elif params.get("priority"):
            tasks = self.tasks.by_priority(user_id, params["priority"])
        else:
            tasks = self.tasks.list_for_user(user_id)
        return self.respond(STATUS.OK, True, MESSAGES.TASKS_RETRIEVED, {"tasks": tasks})

    def get_task(self, user_id: str, task_id: str) -> ResponseDescriptor:
        task, error = self._owned(user_id, task_id)
        if error is not None:
            return error
        return self.respond(STATUS.OK, True, MESSAGES.TASK_RETRIEVED, {"task": task})

    def create_task(self, user_id: str, request: RequestDescriptor) -> ResponseDescriptor:
        data = self.json_body(request)
        if data is None:
            return self.respond(STATUS.BAD_REQUEST, False, MESSAGES.INVALID_DATA)
        if not data.get("title"):
            return self.respond(STATUS.BAD_REQUEST, False, MESSAGES.MISSING_FIELDS)

        task = self.tasks.add(
            user_id,
            data["title"],
            description=data.get("description", ""),
            subject=data.get("subject", ""),
            due_date=data.get("dueDate"),
            priority=data.get("priority", "medium"),
        )
        return self.respond(STATUS.CREATED, True, MESSAGES.TASK_CREATED, {"task": task})

    def update_task(self, user_id: str, task_id: str, request: RequestDescriptor) -> ResponseDescriptor:
        _, error = self._owned(user_id, task_id)
        if error is not None:
            return error
        data = self.json_body(request)
        if data is None:
            return self.respond(STATUS.BAD_REQUEST, False, MESSAGES.INVALID_DATA)
        task = self.tasks.update(task_id, data)
        return self.respond(STATUS.OK, True, MESSAGES.TASK_UPDATED, {"task": task})

    def delete_task(self, user_id: str, task_id: str) -> ResponseDescriptor:
        _, error = self._owned(user_id, task_id)
        if error is not None:
            return error
        self.tasks.delete(task_id)
        return self.respond(STATUS.OK, True, MESSAGES.TASK_DELETED, {"taskId": task_id})

    def _owned(self, user_id: str, task_id: str):
        task: Optional[dict] = self.tasks.get(task_id)
        if task is None:
            return None, self.respond(STATUS.NOT_FOUND, False, MESSAGES.TASK_NOT_FOUND)
        if task["userId"] != user_id:
            return None, self.respond(STATUS.UNAUTHORIZED, False, MESSAGES.UNAUTHORIZED_ACCESS)
        return task, None
