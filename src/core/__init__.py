"""Domain models, error hierarchy and retry policy."""
