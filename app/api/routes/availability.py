import json
import logging
from typing import Any

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from app.core.config import get_settings
from app.schemas.availability import AvailableSlotsResponse, ErrorResponse
from app.services.availability_service import AvailabilityService
from app.services.calcom_api_client import CalComApiError

router = APIRouter(tags=["availability"])
logger = logging.getLogger(__name__)

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


@router.post(
    "/available-slots",
    response_model=AvailableSlotsResponse,
    responses=_ERROR_RESPONSES,
)
async def post_available_slots(request: Request) -> AvailableSlotsResponse | JSONResponse:
    body = await _load_optional_json_object(request)
    return await run_in_threadpool(
        _list_available_slots,
        request,
        days=body.get("days"),
        duration=body.get("duration"),
    )


@router.get(
    "/available-slots",
    response_model=AvailableSlotsResponse,
    responses=_ERROR_RESPONSES,
)
def get_available_slots(
    request: Request,
    days: str | None = None,
    duration: str | None = None,
) -> AvailableSlotsResponse | JSONResponse:
    return _list_available_slots(request, days=days, duration=duration)


@router.options("/available-slots", status_code=status.HTTP_204_NO_CONTENT)
def available_slots_options() -> Response:
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _list_available_slots(
    request: Request,
    *,
    days: Any,
    duration: Any,
) -> AvailableSlotsResponse | JSONResponse:
    service = AvailabilityService(get_settings())
    parameters = service.build_parameters(days=days, duration=duration)
    try:
        response = service.list_available_slots(parameters)
    except CalComApiError as exc:
        logger.warning(
            "Slot lookup failed path=%s days=%s duration=%s error=%s",
            str(request.url.path),
            parameters.days,
            parameters.duration,
            exc,
        )
        return _error_response(str(exc))
    except Exception as exc:
        logger.exception(
            "Slot lookup crashed path=%s days=%s duration=%s",
            str(request.url.path),
            parameters.days,
            parameters.duration,
        )
        return _error_response(str(exc) or exc.__class__.__name__)

    logger.info(
        "Slot lookup succeeded path=%s days=%s duration=%s slots=%s",
        str(request.url.path),
        parameters.days,
        parameters.duration,
        len(response.slots),
    )
    return response


def _error_response(details: str) -> JSONResponse:
    payload = ErrorResponse(message="Failed to fetch slots", error=details)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=payload.model_dump(),
    )


async def _load_optional_json_object(request: Request) -> dict[str, Any]:
    raw_body = await request.body()
    if not raw_body.strip():
        return {}
    try:
        parsed_payload = json.loads(raw_body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.info("No valid JSON body provided, using default values")
        return {}
    if not isinstance(parsed_payload, dict):
        logger.info("JSON body is not an object, using default values")
        return {}
    return parsed_payload
