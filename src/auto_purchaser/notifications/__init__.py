"""Outcome notification channels."""
