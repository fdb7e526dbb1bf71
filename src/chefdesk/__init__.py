"""
Chefdesk - Prep schedule service for private chefs.

Areas:
- Scheduling: time model, layout requests, timeline editor, auto-save
- Items: menu items joined with their recipes (the prep list source)
- Web: FastAPI routes for the prep assistant
"""

__version__ = "0.1.0"
