from src.services import search_service


__all__ = [
    "search_service",
]
