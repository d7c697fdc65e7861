"""Minimal W3C WebDriver client and driver process management."""
