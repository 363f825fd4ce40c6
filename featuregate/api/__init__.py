"""Starlette / FastAPI integration surfaces."""
