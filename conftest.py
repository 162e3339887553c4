# type: ignore
"""Run the test suite against in-memory storage and the mock notifier."""
import os

os.environ.setdefault("REPOSITORY_BACKEND", "memory")
os.environ.setdefault("NOTIFIER_BACKEND", "mock")
os.environ.setdefault("LOG_LEVEL", "WARNING")
