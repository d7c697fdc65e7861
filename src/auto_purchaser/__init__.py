"""Automated single-item store purchaser driven over WebDriver."""
