from fastapi import APIRouter
from buspos.api.v1.routes.auth import router as auth_router
from buspos.api.v1.routes.public import router as public_router
from buspos.api.v1.routes.catalog import router as catalog_router
from buspos.api.v1.routes.machines import router as machines_router
from buspos.api.v1.routes.trips import router as trips_router
from buspos.api.v1.routes.tickets import router as tickets_router
from buspos.api.v1.routes.reviews import router as reviews_router
from buspos.api.v1.routes.admin import router as admin_router

api_router = APIRouter(prefix="/api")
api_router.include_router(auth_router)
api_router.include_router(public_router)
api_router.include_router(catalog_router)
api_router.include_router(machines_router)
api_router.include_router(trips_router)
api_router.include_router(tickets_router)
api_router.include_router(reviews_router)
api_router.include_router(admin_router)
