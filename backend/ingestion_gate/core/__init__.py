"""Settings, logging, error taxonomy and domain value types."""
