"""
Persistence adapters.

These modules encapsulate how profiles/cards are stored and retrieved.
Services depend on the CardStore interface rather than on SQLAlchemy sessions.
"""
