"""
API Routes
Progetto: Timesink (Fatturazione Freelance)

Modulo per l'aggregazione dei router versionati.
"""

from timesink.api.v1 import api_v1_router

# Esportazione router
__all__ = ["api_v1_router"]
