"""
Pydantic schema definitions for API payloads.

Schemas are separated from the database rows so the API
representation can evolve independently of persistence.
"""
