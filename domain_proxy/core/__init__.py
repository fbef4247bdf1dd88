"""Settings, error taxonomy and shared request/response types."""
