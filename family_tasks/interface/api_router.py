"""HTTP routes for todo tasks and periodic tasks.

Every response uses the envelope {"success": bool, "data": ..., "error": str}.
"""

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from family_tasks.core.date_utils import today_local
from family_tasks.core.errors import (
    FamilyTasksError,
    NotFoundError,
    classify_error_with_response,
    parse_payload,
)
from family_tasks.core.logging import log_with_context
from family_tasks.core.recurrence_parser import describe_recurrence
from family_tasks.domain.create_models import PeriodicTaskCreate, TodoTaskCreate
from family_tasks.domain.periodic_task import PeriodicTask
from family_tasks.domain.task import TodoTask
from family_tasks.domain.update_models import (
    AudioPathBody,
    DateRangeRequest,
    ImagePathBody,
    PeriodicTaskUpdate,
    StatusUpdate,
    TodoTaskUpdate,
    ToggleUpdate,
)
from family_tasks.models.service_models import RangeGenerationResult
from family_tasks.services.periodic_task_service import PeriodicTaskService
from family_tasks.services.recurrence_engine import RecurrenceEngine, next_occurrences
from family_tasks.services.task_store import TaskStore


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["tasks"])

TASK = "Task"
PERIODIC_TASK = "Periodic task"


def get_task_store(request: Request) -> TaskStore:
    return request.app.state.task_store


def get_periodic_tasks(request: Request) -> PeriodicTaskService:
    return request.app.state.periodic_tasks


def get_engine(request: Request) -> RecurrenceEngine:
    return request.app.state.recurrence_engine


def ok(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}


def _task_out(task: TodoTask) -> dict[str, Any]:
    return task.to_document()


def _rule_out(rule: PeriodicTask) -> dict[str, Any]:
    doc = rule.to_document()
    doc["state"] = rule.state.value
    doc["scheduleText"] = describe_recurrence(rule.recurrence)
    return doc


def _require(value: Any, entity: str, entity_id: str) -> Any:
    if value is None:
        raise NotFoundError(entity, entity_id)
    return value


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return None


def register_exception_handlers(app: FastAPI) -> None:
    """Render domain and request validation errors in the response envelope."""

    @app.exception_handler(FamilyTasksError)
    async def handle_domain_error(request: Request, exc: FamilyTasksError) -> JSONResponse:
        response = classify_error_with_response(exc)
        log_with_context(
            logger,
            "warning" if response.http_status < 500 else "error",  # noqa: PLR2004
            "Request failed",
            path=request.url.path,
            code=response.code,
            error=str(exc),
        )
        return JSONResponse(
            status_code=response.http_status,
            content={"success": False, "error": response.message, "code": response.code},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        reasons = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', 'invalid value')}" for err in exc.errors()
        )
        log_with_context(logger, "warning", "Rejected request", path=request.url.path, error=reasons)
        return JSONResponse(status_code=400, content={"success": False, "error": reasons, "code": "ERR_VALIDATION"})


# ============ Todo tasks ============


@router.get("/tasks")
async def list_tasks(store: TaskStore = Depends(get_task_store)) -> dict[str, Any]:
    return ok([_task_out(t) for t in await store.list_all()])


@router.get("/tasks/by-date")
async def tasks_by_date(day: date = Query(..., alias="date"), store: TaskStore = Depends(get_task_store)) -> dict[str, Any]:
    return ok([_task_out(t) for t in await store.query_by_date(day)])


@router.get("/tasks/by-month")
async def tasks_by_month(
    year: int = Query(...),
    month: int = Query(...),
    store: TaskStore = Depends(get_task_store),
) -> dict[str, Any]:
    return ok([_task_out(t) for t in await store.query_by_month(year, month)])


@router.get("/tasks/by-executor/{member_id}")
async def tasks_by_executor(
    member_id: str,
    day: date | None = Query(default=None, alias="date"),
    store: TaskStore = Depends(get_task_store),
) -> dict[str, Any]:
    return ok([_task_out(t) for t in await store.query_by_executor(member_id, day)])


@router.get("/tasks/{task_id}")
async def get_task(task_id: str, store: TaskStore = Depends(get_task_store)) -> dict[str, Any]:
    task = _require(await store.get_by_id(task_id), TASK, task_id)
    return ok(_task_out(task))


@router.post("/tasks")
async def create_task(request: Request, store: TaskStore = Depends(get_task_store)) -> dict[str, Any]:
    payload = parse_payload(TodoTaskCreate, await _json_body(request))
    return ok(_task_out(await store.create_from(payload)))


@router.put("/tasks/{task_id}")
async def update_task(task_id: str, request: Request, store: TaskStore = Depends(get_task_store)) -> dict[str, Any]:
    changes = parse_payload(TodoTaskUpdate, await _json_body(request))
    task = _require(await store.update(task_id, changes), TASK, task_id)
    return ok(_task_out(task))


@router.delete("/tasks/{task_id}")
async def delete_task(task_id: str, store: TaskStore = Depends(get_task_store)) -> dict[str, Any]:
    if not await store.delete(task_id):
        raise NotFoundError(TASK, task_id)
    return {"success": True}


@router.put("/tasks/{task_id}/status")
async def set_task_status(task_id: str, request: Request, store: TaskStore = Depends(get_task_store)) -> dict[str, Any]:
    body = parse_payload(StatusUpdate, await _json_body(request))
    task = _require(await store.set_status(task_id, body.status), TASK, task_id)
    return ok(_task_out(task))


@router.put("/tasks/{task_id}/executor/{member_id}/status")
async def set_executor_status(
    task_id: str,
    member_id: str,
    request: Request,
    store: TaskStore = Depends(get_task_store),
) -> dict[str, Any]:
    body = parse_payload(StatusUpdate, await _json_body(request))
    task = _require(await store.set_executor_status(task_id, member_id, body.status), TASK, task_id)
    return ok(_task_out(task))


@router.post("/tasks/{task_id}/images")
async def add_task_image(task_id: str, request: Request, store: TaskStore = Depends(get_task_store)) -> dict[str, Any]:
    """Attach an image already stored under the media root."""
    body = parse_payload(ImagePathBody, await _json_body(request))
    task = _require(await store.add_image(task_id, body.image_path), TASK, task_id)
    return ok(_task_out(task))


@router.delete("/tasks/{task_id}/images")
async def remove_task_image(task_id: str, request: Request, store: TaskStore = Depends(get_task_store)) -> dict[str, Any]:
    body = parse_payload(ImagePathBody, await _json_body(request))
    task = _require(await store.remove_image(task_id, body.image_path), TASK, task_id)
    return ok(_task_out(task))


@router.put("/tasks/{task_id}/audio")
async def set_task_audio(task_id: str, request: Request, store: TaskStore = Depends(get_task_store)) -> dict[str, Any]:
    body = parse_payload(AudioPathBody, await _json_body(request))
    task = _require(await store.set_audio(task_id, body.audio_path), TASK, task_id)
    return ok(_task_out(task))


@router.delete("/tasks/{task_id}/audio")
async def remove_task_audio(task_id: str, store: TaskStore = Depends(get_task_store)) -> dict[str, Any]:
    current = await store.get_by_id(task_id)
    if current is None or not current.audio_path:
        raise NotFoundError("Task recording", task_id)
    task = _require(await store.set_audio(task_id, None), TASK, task_id)
    return ok(_task_out(task))


# ============ Periodic tasks ============


@router.get("/periodic-tasks")
async def list_periodic_tasks(rules: PeriodicTaskService = Depends(get_periodic_tasks)) -> dict[str, Any]:
    return ok([_rule_out(r) for r in await rules.list_all()])


@router.post("/periodic-tasks")
async def create_periodic_task(
    request: Request,
    rules: PeriodicTaskService = Depends(get_periodic_tasks),
) -> dict[str, Any]:
    payload = parse_payload(PeriodicTaskCreate, await _json_body(request))
    return ok(_rule_out(await rules.create(payload)))


@router.post("/periodic-tasks/generate-today")
async def generate_today(engine: RecurrenceEngine = Depends(get_engine)) -> dict[str, Any]:
    return ok({"generatedCount": await engine.generate_today()})


@router.post("/periodic-tasks/generate-range")
async def generate_range(request: Request, engine: RecurrenceEngine = Depends(get_engine)) -> dict[str, Any]:
    body = parse_payload(DateRangeRequest, await _json_body(request))
    generated = await engine.generate_for_date_range(body.start_date, body.end_date)
    result = RangeGenerationResult(start_date=body.start_date, end_date=body.end_date, generated=generated)
    return ok(result.model_dump(mode="json", by_alias=True))


@router.get("/periodic-tasks/{rule_id}")
async def get_periodic_task(rule_id: str, rules: PeriodicTaskService = Depends(get_periodic_tasks)) -> dict[str, Any]:
    rule = _require(await rules.get_by_id(rule_id), PERIODIC_TASK, rule_id)
    return ok(_rule_out(rule))


@router.put("/periodic-tasks/{rule_id}")
async def update_periodic_task(
    rule_id: str,
    request: Request,
    rules: PeriodicTaskService = Depends(get_periodic_tasks),
) -> dict[str, Any]:
    changes = parse_payload(PeriodicTaskUpdate, await _json_body(request))
    rule = _require(await rules.update(rule_id, changes), PERIODIC_TASK, rule_id)
    return ok(_rule_out(rule))


@router.delete("/periodic-tasks/{rule_id}")
async def delete_periodic_task(rule_id: str, rules: PeriodicTaskService = Depends(get_periodic_tasks)) -> dict[str, Any]:
    if not await rules.delete(rule_id):
        raise NotFoundError(PERIODIC_TASK, rule_id)
    return {"success": True}


@router.put("/periodic-tasks/{rule_id}/toggle")
async def toggle_periodic_task(
    rule_id: str,
    request: Request,
    rules: PeriodicTaskService = Depends(get_periodic_tasks),
) -> dict[str, Any]:
    body = parse_payload(ToggleUpdate, await _json_body(request))
    rule = _require(await rules.set_active(rule_id, body.is_active), PERIODIC_TASK, rule_id)
    return ok(_rule_out(rule))


@router.post("/periodic-tasks/{rule_id}/generate")
async def generate_for_rule(
    rule_id: str,
    rules: PeriodicTaskService = Depends(get_periodic_tasks),
    engine: RecurrenceEngine = Depends(get_engine),
) -> dict[str, Any]:
    rule = _require(await rules.get_by_id(rule_id), PERIODIC_TASK, rule_id)
    generated = await engine.generate_for_date(rule.id, today_local(engine.timezone))
    return ok({"generated": generated})


@router.get("/periodic-tasks/{rule_id}/stats")
async def periodic_task_stats(
    rule_id: str,
    rules: PeriodicTaskService = Depends(get_periodic_tasks),
    engine: RecurrenceEngine = Depends(get_engine),
) -> dict[str, Any]:
    rule = _require(await rules.get_by_id(rule_id), PERIODIC_TASK, rule_id)
    stats = await engine.stats(rule_id)
    return ok({"task": _rule_out(rule), "stats": stats.model_dump(by_alias=True)})


@router.get("/periodic-tasks/{rule_id}/generated-tasks")
async def periodic_task_generated(rule_id: str, engine: RecurrenceEngine = Depends(get_engine)) -> dict[str, Any]:
    return ok([_task_out(t) for t in await engine.generated_tasks(rule_id)])


@router.get("/periodic-tasks/{rule_id}/upcoming")
async def periodic_task_upcoming(
    rule_id: str,
    after: date | None = Query(default=None),
    limit: int = Query(default=5, ge=1),
    rules: PeriodicTaskService = Depends(get_periodic_tasks),
    engine: RecurrenceEngine = Depends(get_engine),
) -> dict[str, Any]:
    rule = _require(await rules.get_by_id(rule_id), PERIODIC_TASK, rule_id)
    start = after or today_local(engine.timezone)
    return ok([d.isoformat() for d in next_occurrences(rule, start, limit)])
