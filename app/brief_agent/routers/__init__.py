"""
Routers package for FastAPI endpoints.

Organized by domain:
- analysis: Paid brief analysis and balance lookup
- checkout: PayPal order creation, capture and webhooks
- upload: PDF ingestion
"""

from . import analysis, checkout, upload

__all__ = ["analysis", "checkout", "upload"]
