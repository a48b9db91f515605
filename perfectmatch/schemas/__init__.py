"""
Schemas module - Request/Response schemas for API endpoints.

All schemas live in perfectmatch.schemas.schemas.
"""
