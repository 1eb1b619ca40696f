"""
EHO Pack FastAPI Service

HTTP surface for the report engine. ``ehopack.service.main:app`` is the
ASGI application; ``python -m ehopack.service`` runs it under uvicorn.
"""
