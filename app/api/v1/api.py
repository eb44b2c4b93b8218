from fastapi import APIRouter
from app.api.v1.ipd_billing import routes as ipd_billing

api_router = APIRouter()
api_router.include_router(ipd_billing.router)
