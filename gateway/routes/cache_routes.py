"""Cache-fronted read routes."""

from fastapi import APIRouter, Depends

from gateway.schemas.cache import CachedReadResponse
from gateway.schemas.common import ErrorResponse
from gateway.service_locator import GatewayServices, get_services

router = APIRouter(prefix="/cache", tags=["Cache"])


@router.get(
    "/{resource}",
    response_model=CachedReadResponse,
    responses={404: {"model": ErrorResponse}},
)
async def read_resource(
    resource: str,
    services: GatewayServices = Depends(get_services)
):
    """
    Read a slowly changing resource through its cache.

    Always answers 200 for known resources; degraded answers carry
    ``fallback: true``.

    Raises:
        - 404: Unknown resource
    """
    result = await services.cached_reads.read(resource)
    return CachedReadResponse.from_result(result)
