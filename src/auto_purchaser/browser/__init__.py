"""Element queries and the automation session lifecycle."""
