"""Configuration, logging, database engine and HTTP plumbing."""
