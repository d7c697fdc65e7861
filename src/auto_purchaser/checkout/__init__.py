"""Checkout state machine and price guard."""
