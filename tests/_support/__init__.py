"""Test doubles shared across the payspine test suite."""
