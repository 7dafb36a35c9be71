"""
Orisa client session layer.

Holds the pieces a thin client needs to talk to an Orisa world server: the
tagged message catalog, a resilient auto-reconnecting channel, and the session
reducer that folds server pushes and user intents into displayable state.
"""

__version__ = "0.1.0"
