from fastapi import APIRouter

from tripdesk.api.auth.router import router as auth_router
from tripdesk.features.attachments.api.router import router as attachments_router
from tripdesk.features.expenses.api.router import router as expenses_router
from tripdesk.features.policy_import.api.router import router as policy_import_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(attachments_router)
api_router.include_router(expenses_router)
api_router.include_router(policy_import_router)
