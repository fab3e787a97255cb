from .endpoints import prices


__all__ = [
    "prices"
]
