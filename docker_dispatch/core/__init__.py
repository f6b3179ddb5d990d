"""Core services: contexts, settings, logging, subprocesses and cancellation."""
