"""Triage core services."""
