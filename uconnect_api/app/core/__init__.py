"""Configuration, persistence, security and error handling shared by the API."""
