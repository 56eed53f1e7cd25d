"""
API v1 Routes
Progetto: Timesink (Fatturazione Freelance)

Router versione 1 dell'API.
"""

from fastapi import APIRouter

from timesink.api.v1 import clients, entries, invoices, timer

# Router aggregato per v1
api_v1_router = APIRouter(prefix="/api/v1")

# Includi i router dei moduli
api_v1_router.include_router(clients.router)
api_v1_router.include_router(entries.router)
api_v1_router.include_router(timer.router)
api_v1_router.include_router(invoices.router)

# Esportazione
__all__ = ["api_v1_router"]
