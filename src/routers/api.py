from fastapi import APIRouter

from routers import datapoints, system, websocket

router = APIRouter()

# include sub-routers
router.include_router(datapoints.router)
router.include_router(system.router)
router.include_router(websocket.router)
