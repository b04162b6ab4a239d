from .api import register_contour_tools

__all__ = ["register_contour_tools"]
