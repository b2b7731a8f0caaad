"""Shared utilities."""

from drxa.utils.locks import LockTimeoutError, ReadWriteLock

__all__ = ["LockTimeoutError", "ReadWriteLock"]
