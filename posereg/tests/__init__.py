"""
Tests module - Unit and integration tests for the posereg package

Provides:
- Core module tests (config, exceptions, logging)
- Geometry and crop tracking tests
- Feature, matching, homography and affine tests
- Pose detector backend selection
- Pipeline, IO, visualization and CLI tests
"""

__all__ = []
