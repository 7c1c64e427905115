"""
Project Brief Agent Backend.

A FastAPI service that ingests PDF briefs, sells analysis credits through
PayPal and spends them on structured brief analysis with OpenAI.
"""

__version__ = "1.0.0"
