"""Build tasks wrapping tfx extension commands."""

from .package import package_extension
from .share import share_extension

__all__ = [
    "package_extension",
    "share_extension",
]
