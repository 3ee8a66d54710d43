from .config import ConversionOptions

__all__ = ["ConversionOptions"]
