from .common import chomp, random_string

__all__ = ["chomp", "random_string"]
