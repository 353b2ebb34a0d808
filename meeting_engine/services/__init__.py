"""Persistence-facing services: token encryption and repositories."""
