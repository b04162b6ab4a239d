from .api import register_field_tools

__all__ = ["register_field_tools"]
