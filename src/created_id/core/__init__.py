"""Configuration for the created-id index."""
