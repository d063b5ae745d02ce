"""Core logic for lensmark: scheduling, annotation and configuration."""
