"""Room services: codes, throttling, the room directory and the round engine.

This package holds the room and round logic that the socket handlers and
HTTP routes call into, keeping transport concerns separated from the game
mechanics.
"""
