"""Core value types."""
