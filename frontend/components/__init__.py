"""
Frontend UI components for the face capture demo.
"""

from .camera_feed import CameraFeed

__all__ = ["CameraFeed"]
