"""Todo API routes.

Learn: These routes are the HTTP interface to the owner-scoped service.
By the time a handler runs, the route guard has already resolved the
caller; get_identity just reads the result. Routes translate HTTP to
service calls and shape the response. Errors are raised by the service
and rendered by the handlers in responses.py.

  GET    /todos        → bare array of the caller's todos
  POST   /todos        → 201 {success, data}
  GET    /todos/{id}   → 200 {success, data} | 404
  PUT    /todos/{id}   → 200 {success, data} | 404   (full replace)
  PATCH  /todos/{id}   → 200 {success, data} | 404   (partial)
  DELETE /todos/{id}   → 200 {success, message} | 404
"""

from fastapi import APIRouter, Depends, Request

from todogate.api.responses import success, success_message, todo_payload
from todogate.auth.dependencies import get_identity
from todogate.auth.identity import Identity
from todogate.schemas.todo import TodoForm, TodoPatch
from todogate.services.todo_service import TodoService

router = APIRouter(prefix="/todos")

_responses = {
    400: {"description": "Validation error"},
    401: {"description": "Login required"},
    503: {"description": "Database not available"},
}


def _todo_svc(request: Request) -> TodoService:
    return TodoService(request.app.state.gate.store())


@router.get("", responses=_responses)
async def list_todos(
    identity: Identity = Depends(get_identity),
    svc: TodoService = Depends(_todo_svc),
):
    """Get the current user's todos."""
    todos = await svc.list(identity)
    return [todo_payload(t) for t in todos]


@router.post("", status_code=201, responses=_responses)
async def create_todo(
    body: TodoForm,
    identity: Identity = Depends(get_identity),
    svc: TodoService = Depends(_todo_svc),
):
    """Create a todo. startDate+startTime and endDate+endTime become startAt/endAt."""
    todo = await svc.create(identity, body)
    return success(todo_payload(todo), status_code=201)


@router.get("/{todo_id}", responses={**_responses, 404: {"description": "Not found"}})
async def get_todo(
    todo_id: int,
    identity: Identity = Depends(get_identity),
    svc: TodoService = Depends(_todo_svc),
):
    todo = await svc.get(identity, todo_id)
    return success(todo_payload(todo))


@router.put("/{todo_id}", responses={**_responses, 404: {"description": "Not found"}})
async def replace_todo(
    todo_id: int,
    body: TodoForm,
    identity: Identity = Depends(get_identity),
    svc: TodoService = Depends(_todo_svc),
):
    """Replace every field of a todo the caller owns."""
    todo = await svc.update(identity, todo_id, body)
    return success(todo_payload(todo))


@router.patch("/{todo_id}", responses={**_responses, 404: {"description": "Not found"}})
async def patch_todo(
    todo_id: int,
    body: TodoPatch,
    identity: Identity = Depends(get_identity),
    svc: TodoService = Depends(_todo_svc),
):
    """Update only the supplied fields of a todo the caller owns."""
    todo = await svc.patch(identity, todo_id, body)
    return success(todo_payload(todo))


@router.delete("/{todo_id}", responses={**_responses, 404: {"description": "Not found"}})
async def delete_todo(
    todo_id: int,
    identity: Identity = Depends(get_identity),
    svc: TodoService = Depends(_todo_svc),
):
    await svc.delete(identity, todo_id)
    return success_message("Deleted successfully")
