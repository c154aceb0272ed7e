from fastapi import APIRouter

from cleanplate.app.api.routes import parse

api_router = APIRouter()
api_router.include_router(parse.router)
