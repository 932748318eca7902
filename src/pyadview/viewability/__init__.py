"""Viewability layer.

Per-registration state machines decide when an ad has been on screen long
enough to count as viewed; the tracker owns the registry, the timers and
the refresh cooldown.
"""
