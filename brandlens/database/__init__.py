"""Database module for SQLAlchemy models and session management."""
