"""Persistence and concurrency adapters implementing the core interfaces."""
