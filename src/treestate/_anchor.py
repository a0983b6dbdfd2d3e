"""Data anchor — plain Python structures that hold process-wide state.

Restoration entries live here rather than on the store objects, so the
behaviour modules can be reloaded during development while the last
written values persist for the containers that get rebuilt afterwards.
"""

# Restoration entries: key -> last value written
restoration: dict[str, object] = {}
