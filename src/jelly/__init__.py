"""Jelly: account management service with a durable email job queue."""
