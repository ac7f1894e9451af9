"""Operational scripts for the created-id index."""
