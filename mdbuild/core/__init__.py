"""Pipeline definition models and error types."""
