from .middleware import Middleware

__all__ = ['Middleware']
