"""Chat-driven and media-synchronized haptic device control"""

__version__ = "0.1.0"
