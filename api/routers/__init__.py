"""
FastAPI routers grouped by domain (vcard, cards, upload).

Each file inside this package exposes an APIRouter that is included in the
main application (app.py). Routers fetch their services from app.state.
"""
