"""Request and response middleware."""
