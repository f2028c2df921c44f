"""Configuration, structured logging and shared state enums."""
