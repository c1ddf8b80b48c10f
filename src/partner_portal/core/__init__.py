"""Core infrastructure: configuration, logging, errors and storage plumbing."""
