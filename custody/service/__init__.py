"""
HTTP service exposing the wallet command surface (FastAPI + uvicorn).
"""
