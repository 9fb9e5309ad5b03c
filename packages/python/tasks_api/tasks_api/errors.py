"""Translate task tree failures into HTTP responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from task_tree import TaskTreeError

STATUS_BY_CODE = {
    "not_found": 404,
    "invalid_parent": 422,
    "invalid_argument": 422,
    "position_collision": 409,
    "conflict": 409,
}


async def task_tree_error_handler(request: Request, exc: TaskTreeError) -> JSONResponse:
    status = STATUS_BY_CODE.get(exc.code, 400)
    logger.info(
        "{method} {path} failed with {code}: {error}",
        method=request.method,
        path=request.url.path,
        code=exc.code,
        error=exc,
    )
    return JSONResponse(status_code=status, content={"code": exc.code, "detail": str(exc)})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaskTreeError, task_tree_error_handler)
