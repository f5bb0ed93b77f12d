# src/storage/__init__.py — v1
"""Backup snapshots and rollback."""
