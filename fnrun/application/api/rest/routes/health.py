"""Health check endpoint."""

from dishka.integrations.fastapi import DishkaRoute, FromDishka
from fastapi import APIRouter

from fnrun.domain.function.model.descriptor import FunctionDescriptor

router = APIRouter(tags=["health"], route_class=DishkaRoute)


@router.get("/healthz")
async def health(descriptor: FromDishka[FunctionDescriptor]) -> dict:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "function": descriptor.name,
        "version": descriptor.version,
    }
