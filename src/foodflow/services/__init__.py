"""Order workflow services: identity, transitions, analytics."""
