from .roles import router

__all__ = ["router"]
