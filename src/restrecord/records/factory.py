"""Factories build models, either blank or hydrated from raw response data."""

from typing import TYPE_CHECKING, Any, Generic, Mapping, Optional, Type, TypeVar

if TYPE_CHECKING:
    from ..api.driver import ApiDriver
    from .model import Model

M = TypeVar("M", bound="Model")


class Factory(Generic[M]):
    """
    Constructs instances of one model class.
    
    Subclass and override ``from_data`` to hydrate polymorphic relations, e.g.
    pick the model class from a ``type`` key in the payload.
    """
    
    def __init__(self, model_class: Type[M], driver: Optional["ApiDriver"] = None):
        self.model_class = model_class
        self.driver = driver
    
    def make(self, driver: Optional["ApiDriver"] = None) -> M:
        """Return a blank instance."""
        return self.model_class(driver=driver or self.driver)
    
    def from_data(self, data: Mapping[str, Any], driver: Optional["ApiDriver"] = None) -> M:
        """
        Return an instance loaded from ``data`` with its original values captured.
        
        Args:
            data: Raw snake_case payload for a single record
            driver: Driver for the new instance. Defaults to the factory's driver.
            
        Returns:
            Hydrated model
        """
        return self.model_class(data, driver=driver or self.driver)
    
    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.model_class.__name__})"
