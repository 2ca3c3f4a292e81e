"""SQL schema migrations and their runner."""
