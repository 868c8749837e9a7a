"""Game domain services: the state machine, scoring and timers.

This package contains the authoritative game logic. Socket handlers and HTTP
routes only translate transport messages into commands for ``GameMachine``
and deliver the events it returns.
"""
