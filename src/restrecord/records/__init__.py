"""Records layer: models, factories and repositories."""

from .factory import Factory
from .model import Model
from .repository import Repository

__all__ = ["Factory", "Model", "Repository"]
