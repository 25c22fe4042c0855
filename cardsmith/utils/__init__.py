"""Shared utilities: errors, JSON extraction, validation, logging, circuit breaker."""
