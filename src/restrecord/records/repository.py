"""Repositories: filterable, fetchable ordered collections of models."""

from typing import TYPE_CHECKING, Any, ClassVar, Dict, Iterable, Iterator, List, Mapping, Optional, Type

from ..api.driver import ApiDriver
from ..utils.logging import get_logger
from .factory import Factory

if TYPE_CHECKING:
    from .model import Model

logger = get_logger(__name__)

# Operator suffixes appended to the filter key
EQUALS = ""
NOT_EQUALS = "-NOTEQ"
GREATER_THAN = "-GT"
GREATER_THAN_OR_EQUALS = "-GTE"
# where_less_than and where_less_than_or_equals both emit -LTE
LESS_THAN = "-LTE"
LESS_THAN_OR_EQUALS = "-LTE"
IS_NULL = "-ISNULL"
IS_NOT_NULL = "-ISNOTNULL"
BETWEEN = "-BETWEEN"
NOT_BETWEEN = "-NOTBETWEEN"
IN = "-IN"
NOT_IN = "-NOTIN"
STARTS_WITH = "-STARTSWITH"
ENDS_WITH = "-ENDSWITH"
CONTAINS = "-CONTAINS"

NULL_VALUE = "null"


class Repository:
    """
    Ordered collection of models backed by a list endpoint.

    Subclasses set ``endpoint``, ``response_field_name`` and ``model_class``
    (or override ``get_factory`` for polymorphic items)::

        class UserRepository(Repository):
            endpoint = "users"
            response_field_name = "users"
            model_class = User

        users = UserRepository(driver=api).where_equals("status", "active").get()
    """

    endpoint: ClassVar[str] = ""
    response_field_name: ClassVar[str] = ""
    model_class: ClassVar[Optional[Type["Model"]]] = None
    factory_class: ClassVar[Type[Factory]] = Factory

    def __init__(self, count: int = 0, *, driver: Optional[ApiDriver] = None):
        """
        Initialize the repository.

        Args:
            count: Number of blank models to pre-seed ``items`` with
            driver: Driver used for fetching and handed to created models
        """
        self.driver = driver
        self.items: List["Model"] = []
        self.filters: Dict[str, Any] = {}
        self.loading = False
        if count > 0:
            self.set_items_count(count)

    def get_api_driver(self) -> ApiDriver:
        if self.driver is None:
            raise RuntimeError(f"{type(self).__name__} has no ApiDriver; pass driver= or override get_api_driver()")
        return self.driver

    def bind_driver(self, driver: ApiDriver) -> "Repository":
        if self.driver is None:
            self.driver = driver
        for item in self.items:
            item.bind_driver(driver)
        return self

    def get_api_endpoint(self) -> str:
        return self.endpoint

    def get_response_field_name(self) -> str:
        return self.response_field_name

    def get_factory(self) -> Factory:
        if self.model_class is None:
            raise TypeError(f"{type(self).__name__} must set model_class or override get_factory()")
        return self.factory_class(self.model_class, driver=self.driver)

    # Filters
    def where(self, field: str, value: Any, suffix: str = EQUALS) -> "Repository":
        """Set ``field + suffix`` to ``value`` as given, falsy values included."""
        self.filters[f"{field}{suffix}"] = value
        return self

    def _where_truthy(self, field: str, value: Any, suffix: str) -> "Repository":
        if not _is_blank(value):
            self.where(field, value, suffix)
        return self

    def where_equals(self, field: str, value: Any) -> "Repository":
        return self._where_truthy(field, value, EQUALS)

    def where_not_equals(self, field: str, value: Any) -> "Repository":
        return self._where_truthy(field, value, NOT_EQUALS)

    def where_greater_than(self, field: str, value: Any) -> "Repository":
        return self._where_truthy(field, value, GREATER_THAN)

    def where_greater_than_or_equals(self, field: str, value: Any) -> "Repository":
        return self._where_truthy(field, value, GREATER_THAN_OR_EQUALS)

    def where_less_than(self, field: str, value: Any) -> "Repository":
        return self._where_truthy(field, value, LESS_THAN)

    def where_less_than_or_equals(self, field: str, value: Any) -> "Repository":
        return self._where_truthy(field, value, LESS_THAN_OR_EQUALS)

    def where_is_null(self, field: str) -> "Repository":
        return self.where(field, NULL_VALUE, IS_NULL)

    def where_is_not_null(self, field: str) -> "Repository":
        return self.where(field, NULL_VALUE, IS_NOT_NULL)

    def where_between(self, field: str, value: Iterable[Any]) -> "Repository":
        return self.where(field, _join(value), BETWEEN)

    def where_not_between(self, field: str, value: Iterable[Any]) -> "Repository":
        return self.where(field, _join(value), NOT_BETWEEN)

    def where_in(self, field: str, value: Iterable[Any]) -> "Repository":
        return self.where(field, _join(value), IN)

    def where_not_in(self, field: str, value: Iterable[Any]) -> "Repository":
        return self.where(field, _join(value), NOT_IN)

    def where_starts_with(self, field: str, value: str) -> "Repository":
        return self.where(field, value, STARTS_WITH)

    def where_ends_with(self, field: str, value: str) -> "Repository":
        return self.where(field, value, ENDS_WITH)

    def where_contains(self, field: str, value: str) -> "Repository":
        return self.where(field, value, CONTAINS)

    def get_filters(self) -> Dict[str, Any]:
        return self.filters

    def reset_filters(self) -> None:
        self.filters = {}

    # Items
    def set_items_count(self, count: int) -> "Repository":
        factory = self.get_factory()
        for _ in range(count):
            self.items.append(factory.make())
        return self

    def add_item(self, item: "Model") -> "Repository":
        self.items.append(item)
        return self

    def add_item_from_data(self, data: Mapping[str, Any]) -> "Repository":
        self.items.append(self.get_factory().from_data(data))
        return self

    def reset_items(self) -> None:
        self.items = []

    def __iter__(self) -> Iterator["Model"]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> "Model":
        return self.items[index]

    def get(self) -> List["Model"]:
        """
        Fetch the collection with the accumulated filters.

        Filters are cleared before the request is sent. ``items`` is replaced
        with the fetched models, in the order the server sent them.

        Returns:
            Fetched models (empty on failure or when the data key is missing)
        """
        filters = self.get_filters()
        self.reset_filters()
        self.loading = True
        try:
            response = self.get_api_driver().get(self.get_api_endpoint(), filters)
        finally:
            self.loading = False

        result: List["Model"] = []
        self.items = []
        name = self.get_response_field_name()
        if not response.is_successful() or not response.has_data(name):
            return result

        data = response.get_data(name) or []
        if isinstance(data, Mapping):
            entries = list(data.values())
        elif isinstance(data, (list, tuple)):
            entries = list(data)
        else:
            logger.warning(f"{type(self).__name__}: data '{name}' is not a collection: {data!r}")
            return result

        factory = self.get_factory()
        for value in entries:
            if not isinstance(value, Mapping):
                logger.warning(f"{type(self).__name__}: skipping non-object item in '{name}': {value!r}")
                continue
            record = factory.from_data(value)
            result.append(record)
            self.items.append(record)

        logger.debug(f"Fetched {len(result)} records from {self.get_api_endpoint()}")
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}(items={len(self.items)})"


def _is_blank(value: Any) -> bool:
    """None, False, "", 0 and NaN suppress a filter. Empty lists and dicts do not."""
    if value is None or value is False or (isinstance(value, str) and value == ""):
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0 or value != value
    return False


def _join(values: Iterable[Any]) -> str:
    return ",".join(_join_part(value) for value in values)


def _join_part(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
