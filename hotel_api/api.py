"""HTTP API: public dataset endpoints and the admin cache-control endpoint."""

import hmac
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from hotel_api.cache.control import ControlError
from hotel_api.datasets import DATASETS, DatasetSpec
from hotel_api.services import Services, get_services
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="hotel_api/api")

JSON_MEDIA_TYPE = "application/json; charset=utf-8"


def require_cache_admin(
    authorization: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> None:
    """
    Validate `Authorization: Bearer <CACHE_PRIVATE_KEY>`.

    With no key configured every request is rejected.
    """
    private_key = services.settings.cache_private_key
    if not private_key:
        logger.warning("Cache control request rejected; CACHE_PRIVATE_KEY is not set")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    expected = f"Bearer {private_key}"
    if not authorization or not hmac.compare_digest(str(authorization), expected):
        logger.warning("Unauthorized attempt to access cache control API")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


router = APIRouter()


class CacheControlRequest(BaseModel):
    """Admin cache-control payload."""
    action: Optional[str] = None
    targets: Optional[list[str]] = None
    duration: Optional[float] = None
    count: Optional[int] = None


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def _dataset_endpoint(spec: DatasetSpec):
    async def get_dataset(services: Services = Depends(get_services)) -> JSONResponse:
        data = await services.data_loader.load(spec.key)
        if data is None:
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"error": spec.not_found_message},
                media_type=JSON_MEDIA_TYPE,
                headers={"Cache-Control": "no-store"},
            )
        return JSONResponse(content={"data": data}, media_type=JSON_MEDIA_TYPE)

    get_dataset.__name__ = f"get_{spec.key}"
    get_dataset.__doc__ = f"Return the {spec.key} dataset from the freshest available tier."
    return get_dataset


for _spec in DATASETS.values():
    router.add_api_route(f"/{_spec.key}", _dataset_endpoint(_spec), methods=["GET"], name=f"get_{_spec.key}")


@router.post("/admin/cache", dependencies=[Depends(require_cache_admin)])
async def configure_cache(request: Request, services: Services = Depends(get_services)):
    """Flush cache entries or install bypass rules."""
    try:
        try:
            body = CacheControlRequest.model_validate(await request.json())
        except (ValueError, ValidationError) as exc:
            logger.info(f"Rejected cache control body: {exc}")
            return _error(status.HTTP_400_BAD_REQUEST, "Invalid request body")

        result = services.cache_controller.configure(
            action=body.action,
            targets=body.targets,
            duration=body.duration,
            count=body.count,
        )
        if not result.success:
            if result.error is ControlError.MISSING_KEYS:
                return _error(status.HTTP_400_BAD_REQUEST, result.message, missingKeys=result.missing_keys)
            return _error(status.HTTP_400_BAD_REQUEST, result.message)

        logger.info(
            f"Cache control action '{body.action}' executed "
            f"(targets={body.targets}, duration={body.duration}, count={body.count})"
        )
        return {"success": True}
    except Exception as exc:
        logger.exception("Error processing cache control request")
        services.reporter.report_in_background(exc, "api/admin/cache", critical=True)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")


@router.get("/admin/cache", dependencies=[Depends(require_cache_admin)])
async def cache_status(services: Services = Depends(get_services)):
    """Report cached datasets, active bypass rules, error-cache stats and upstream health."""
    return {
        **services.cache_controller.status(),
        "errors": services.error_cache.stats(),
        "upstream": await services.upstream_status.check(),
    }
