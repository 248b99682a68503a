"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Named constants for polling and the actions API
- context: Cancellable wait context with optional deadline
- exceptions: Exception taxonomy and wait outcomes
"""
