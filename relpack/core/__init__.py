"""Core: pipeline engine, policy, and domain models."""
