"""Wayfinder - workspace registry and directory-capability synchronization."""
