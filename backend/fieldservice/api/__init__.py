"""
API Routes
Progetto: Field Service Manager (Gestionale Interventi)

Modulo per l'aggregazione dei router versionati.
"""

from fieldservice.api.v1 import api_v1_router

# Esportazione router
__all__ = ["api_v1_router"]
