"""
FastAPI routers grouped by resource.

Each module exposes an APIRouter included by the app factory. Handlers stay
mechanical: path/body in, repository call, record out. Error mapping lives in
the app's exception handlers.
"""
