"""
slotengine - availability resolution and slot generation for booking systems.
"""

__version__ = "0.1.0"
