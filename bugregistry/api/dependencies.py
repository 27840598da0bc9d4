"""
Shared FastAPI dependencies.
The engine is built once in main.create_app() and held on app.state.
"""
from fastapi import Request

from bugregistry.services.dedup_engine import DedupEngine


def get_engine(request: Request) -> DedupEngine:
    return request.app.state.engine
