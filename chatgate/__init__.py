"""Quota-enforcing streaming chat gateway."""
