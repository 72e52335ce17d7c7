"""Persistence for report documents."""
