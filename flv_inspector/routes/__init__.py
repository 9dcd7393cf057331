from .inspect import inspect_router

__all__ = ["inspect_router"]
