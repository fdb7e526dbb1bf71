"""Chefdesk - HTTP surface (FastAPI)."""
