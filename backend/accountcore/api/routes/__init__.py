from fastapi import APIRouter

from accountcore.api.routes import accounts, exports, reports, statistics


api_router = APIRouter()
api_router.include_router(accounts.router)
api_router.include_router(reports.router)
api_router.include_router(statistics.router)
api_router.include_router(exports.router)
