"""Static OpenAPI document and Swagger UI"""
import logging
from pathlib import Path

from fastapi import APIRouter
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import HTMLResponse, Response
from starlette.concurrency import run_in_threadpool

from .errors import InternalError

logger = logging.getLogger(__name__)

OPENAPI_PATH = Path(__file__).with_name("openapi.yaml")

router = APIRouter(include_in_schema=False)


@router.get("/openapi.yaml")
@router.get("/api/openapi.yaml")
async def openapi_spec() -> Response:
    try:
        content = await run_in_threadpool(OPENAPI_PATH.read_bytes)
    except OSError as e:
        logger.error("Failed to read OpenAPI spec at %s: %s", OPENAPI_PATH, e)
        raise InternalError("Failed to read OpenAPI spec") from e
    return Response(content=content, media_type="application/yaml")


@router.get("/docs")
@router.get("/swagger")
@router.get("/api/docs")
async def swagger_ui() -> HTMLResponse:
    return get_swagger_ui_html(
        openapi_url="/api/openapi.yaml",
        title="Money Manager API - Swagger UI",
    )
