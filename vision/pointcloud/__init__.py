"""Point cloud helper exports."""

from .generator import PointCloudGenerator

__all__ = ["PointCloudGenerator"]
