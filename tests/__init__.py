"""Voice order resolver tests."""
