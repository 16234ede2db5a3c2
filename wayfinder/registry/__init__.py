"""Workspace registry service: the durable Record Store and its HTTP surface."""
