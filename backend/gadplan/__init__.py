"""
GAD Plan Workflow Backend Package

This package contains the backend for the municipal Gender and Development
(GAD) plan and budget workflow, including:

- lifecycle.py: proposal states, roles and the transition table
- services/lifecycle_service.py: the proposal lifecycle engine
- stores/: SQLAlchemy and Supabase record stores
- main.py: FastAPI application and API routers
"""

__version__ = "1.0.0"
