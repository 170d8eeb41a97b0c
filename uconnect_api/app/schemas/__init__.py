"""
Pydantic schema definitions for API payloads.

Each domain (accounts, communities, publications, comments) defines
its own models for request and response bodies.  Schemas are separate
from the database tables so the API representation can evolve
independently of persistence.
"""
