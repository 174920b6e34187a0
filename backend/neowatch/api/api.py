from fastapi import APIRouter
from neowatch.api.endpoints import asteroids, budget

api_router = APIRouter()

api_router.include_router(asteroids.router, prefix="/asteroids", tags=["asteroids"])
api_router.include_router(budget.router, prefix="/budget", tags=["budget"])
