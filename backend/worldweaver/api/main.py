from fastapi import APIRouter

from worldweaver.api.routes import (
    ai,
    entities,
    folders,
    login,
    maps,
    members,
    relationships,
    templates,
    users,
    utils,
    worlds,
)

api_router = APIRouter()
api_router.include_router(login.router)
api_router.include_router(users.router)
api_router.include_router(utils.router)
api_router.include_router(worlds.router)
api_router.include_router(members.router)
api_router.include_router(templates.router)
api_router.include_router(folders.router)
api_router.include_router(entities.router)
api_router.include_router(relationships.router)
api_router.include_router(maps.router)
api_router.include_router(ai.router)
