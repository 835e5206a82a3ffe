"""
High-level use cases for the card API.

Each service module orchestrates repositories/adapters to implement a use
case (render a vCard, inline a photo, store an upload). Routers call these
services instead of touching SQLAlchemy sessions directly.
"""
