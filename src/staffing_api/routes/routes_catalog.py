"""Read-only HR catalog endpoints (profiles, languages, expertises)."""

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Request
from loguru import logger

from staffing_api.booking.store import BookingStore
from staffing_api.dependencies import get_booking_store
from staffing_api.schemas.schemas_booking import CatalogItemResponse
from staffing_api.schemas.schemas_booking import CatalogListResponse

ROUTER_CATALOG = APIRouter(tags=["Catalog"], prefix="/catalog")


@ROUTER_CATALOG.get("/profiles")
async def list_profiles(request: Request, store: BookingStore = Depends(get_booking_store)) -> CatalogListResponse:
    """List job profiles a seat can require."""
    async with store.transaction() as session:
        profiles = await session.list_profiles()

    logger.debug("Listed catalog profiles", count=len(profiles))
    return CatalogListResponse(
        Message=f"Fetched {len(profiles)} profiles!",
        Count=len(profiles),
        Items=[CatalogItemResponse(Id=p.profile_id, Name=p.name, Category=p.category_name) for p in profiles],
    )


@ROUTER_CATALOG.get("/languages")
async def list_languages(request: Request, store: BookingStore = Depends(get_booking_store)) -> CatalogListResponse:
    """List spoken languages."""
    async with store.transaction() as session:
        languages = await session.list_languages()

    return CatalogListResponse(
        Message=f"Fetched {len(languages)} languages!",
        Count=len(languages),
        Items=[CatalogItemResponse(Id=lang.language_id, Name=lang.name) for lang in languages],
    )


@ROUTER_CATALOG.get("/expertises")
async def list_expertises(request: Request, store: BookingStore = Depends(get_booking_store)) -> CatalogListResponse:
    """List technical and business expertises."""
    async with store.transaction() as session:
        expertises = await session.list_expertises()

    return CatalogListResponse(
        Message=f"Fetched {len(expertises)} expertises!",
        Count=len(expertises),
        Items=[CatalogItemResponse(Id=e.expertise_id, Name=e.name) for e in expertises],
    )
