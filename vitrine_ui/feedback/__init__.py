from .toast import Toast

__all__ = ["Toast"]
