"""Active-record style model: hydration, dirty tracking, relations and persistence."""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from types import MappingProxyType
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Union

from ..api.driver import ApiDriver, UploadFile
from ..api.models import ApiResponse
from ..utils.casing import camel_to_snake, snake_to_camel
from ..utils.dates import parse_us_date, to_date_string
from ..utils.logging import get_logger
from .factory import Factory
from .repository import Repository

logger = get_logger(__name__)

# Fields starting with this marker are bookkeeping and never sent to the server
RESERVED_PREFIX = "$"

_VALUE_TYPES = (str, bytes, int, float, complex, Decimal, date)


class _Missing:
    def __repr__(self) -> str:
        return "<missing>"


MISSING: Any = _Missing()


class Model(ABC):
    """
    A single remote entity.

    Subclasses declare their schema as class attributes and list their fields
    (with defaults) in ``define_fields``. Field names are CamelCase; payload keys
    are snake_case and converted on the way in and out::

        class User(Model):
            model_name = "user"
            create_endpoint = "users"
            edit_endpoint = "users/{Id}"
            date_columns = ("CreatedAt",)
            factories = {"Company": Company}

            def define_fields(self):
                return {"Id": 0, "Name": "", "CreatedAt": None, "Company": Company()}

    A field holding a nested Model is a relation and is rebuilt through the
    factory registered for it. A field holding a Repository is a collection and
    is repopulated item by item.
    """

    model_name: ClassVar[str] = ""
    create_endpoint: ClassVar[str] = ""
    edit_endpoint: ClassVar[str] = ""
    primary_key: ClassVar[str] = "Id"
    date_columns: ClassVar[Tuple[str, ...]] = ()
    file_columns: ClassVar[Tuple[str, ...]] = ()
    factories: ClassVar[Mapping[str, Factory]] = MappingProxyType({})

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.date_columns = tuple(cls.date_columns)
        cls.file_columns = tuple(cls.file_columns)
        cls.factories = MappingProxyType(
            {field: _as_factory(cls, field, factory) for field, factory in dict(cls.factories).items()}
        )

    def __init__(self, data: Optional[Mapping[str, Any]] = None, *, driver: Optional[ApiDriver] = None):
        object.__setattr__(self, "_values", {})
        self.driver = driver
        self.errors: Dict[str, Any] = {}
        self.original_values: Dict[str, Any] = {}

        for name, default in self.define_fields().items():
            self._values[name] = default
        if driver is not None:
            self.bind_driver(driver)

        if data:
            self.load(data)
        self.load_original_values()

    @abstractmethod
    def define_fields(self) -> Dict[str, Any]:
        """Return the declared fields in order, mapped to fresh default values."""
        pass

    # Attribute access
    def __getattr__(self, name: str) -> Any:
        values = self.__dict__.get("_values")
        if values is not None and name in values:
            return values[name]
        raise AttributeError(f"{type(self).__name__} has no field or attribute {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self._values or name[:1].isupper() or name.startswith(RESERVED_PREFIX):
            self.set_value(name, value)
        else:
            object.__setattr__(self, name, value)

    def get_value(self, field: str, default: Any = None) -> Any:
        return self._values.get(field, default)

    def set_value(self, field: str, value: Any) -> "Model":
        """Assign a field and clear its validation error."""
        self.errors.pop(field, None)
        self._values[field] = value
        return self

    @property
    def fields(self) -> Dict[str, Any]:
        """Copy of the current field values, in declaration order."""
        return dict(self._values)

    def get_api_driver(self) -> ApiDriver:
        if self.driver is None:
            raise RuntimeError(f"{type(self).__name__} has no ApiDriver; pass driver= or override get_api_driver()")
        return self.driver

    def bind_driver(self, driver: ApiDriver) -> "Model":
        """Use ``driver`` here and in nested models/repositories that have none."""
        if self.driver is None:
            self.driver = driver
        for value in self._values.values():
            if isinstance(value, (Model, Repository)):
                value.bind_driver(driver)
        return self

    def is_new(self) -> bool:
        """True while the primary key is absent, empty or not positive."""
        key = self._values.get(self.primary_key)
        if key is None or key == "":
            return True
        if isinstance(key, (int, float)) and not isinstance(key, bool):
            return key <= 0
        return False

    # Hydration
    def load(self, data: Mapping[str, Any]) -> "Model":
        """
        Load a snake_case payload into the model.

        ``user_id`` in data becomes ``UserId`` on the model. None values are
        skipped, so an explicit null never clears a field.

        Args:
            data: Raw payload for this entity

        Returns:
            self
        """
        for key, passed_value in data.items():
            field = snake_to_camel(key)
            if passed_value is None:
                continue

            current = self._values.get(field)
            if isinstance(current, Repository):
                self._load_repository(field, current, passed_value)
                continue
            if isinstance(current, Model) or (self.has_factory(field) and isinstance(passed_value, Mapping)):
                self._load_relation(field, passed_value)
                continue

            if field in self.date_columns:
                try:
                    passed_value = parse_us_date(passed_value)
                except ValueError as e:
                    logger.warning(f"Model {self.model_name or type(self).__name__}: skipping date field {field}: {e}")
                    continue

            self.set_value(field, passed_value)
        return self

    def _load_repository(self, field: str, repository: Repository, passed_value: Any) -> None:
        if not isinstance(passed_value, (list, tuple)):
            logger.warning(f"Repository for field {field} did not receive a list: {passed_value!r}")
            return
        repository.reset_items()
        for entry in passed_value:
            if not isinstance(entry, Mapping):
                logger.warning(f"Repository for field {field} skipped a non-object item: {entry!r}")
                continue
            repository.add_item_from_data(entry)

    def _load_relation(self, field: str, passed_value: Any) -> None:
        if not self.has_factory(field):
            logger.warning(
                f"Model {self.model_name or type(self).__name__} does not have a factory for field {field} "
                f"and the field received a value: {passed_value!r}"
            )
            return
        if not isinstance(passed_value, Mapping):
            logger.warning(f"Relation {field} expects an object, got: {passed_value!r}")
            return
        self.set_value(field, self.invoke_factory(field, passed_value))

    # Original values
    def get_own_property_names(self) -> List[str]:
        """
        Field names that take part in dirty tracking.

        Names starting with RESERVED_PREFIX and nested models are left out;
        date columns are always kept, even with the reserved prefix.
        """
        result = []
        for name, value in self._values.items():
            if name not in self.date_columns and (name.startswith(RESERVED_PREFIX) or isinstance(value, Model)):
                continue
            result.append(name)
        return result

    def load_original_values(self) -> "Model":
        """Snapshot the current values; changes are measured against this."""
        self.original_values = {name: self._values[name] for name in self.get_own_property_names()}
        return self

    def get_original_value(self, field: str) -> Any:
        return self.original_values.get(field, MISSING)

    def has_property_changed(self, field: str) -> bool:
        return _differs(self._values.get(field, MISSING), self.get_original_value(field))

    def get_changed_attributes(self) -> Dict[str, Any]:
        """Changed fields keyed by snake_case name, ready to be sent as a request body."""
        result: Dict[str, Any] = {}
        for name in self.get_own_property_names():
            if not self.has_property_changed(name):
                continue
            value = self._values[name]
            if name in self.date_columns and isinstance(value, date):
                value = to_date_string(value)
            result[camel_to_snake(name)] = value
        return result

    # Relations
    def has_factory(self, field: str) -> bool:
        return field in self.factories

    def invoke_factory(self, field: str, data: Mapping[str, Any]) -> "Model":
        """Build the related model for ``field``. Raises KeyError when none is registered."""
        return self.factories[field].from_data(data, driver=self.driver)

    # Api
    def resolve_endpoint(self, template: str) -> str:
        """Replace ``{FieldName}`` placeholders with current field values."""
        url = template
        for name, value in self._values.items():
            url = url.replace("{%s}" % name, str(value))
        return url

    def save(self, extra_fields: Optional[Dict[str, Any]] = None) -> ApiResponse:
        """
        Send changed fields to the server.

        New models POST to ``create_endpoint``, existing ones PATCH
        ``edit_endpoint``. ``extra_fields`` are merged into the body and win on
        key collisions. On success the model reloads from the response and
        re-snapshots its original values.

        Returns:
            The response, successful or not
        """
        driver = self.get_api_driver()
        is_new = self.is_new()
        url = self.resolve_endpoint(self.create_endpoint if is_new else self.edit_endpoint)
        params = {**self.get_changed_attributes(), **(extra_fields or {})}

        response = driver.post(url, params) if is_new else driver.patch(url, params)
        if response.is_successful():
            self._reload(response)
        return response

    def get_info(self) -> ApiResponse:
        """Fetch the model from ``edit_endpoint`` and reload it on success."""
        response = self.get_api_driver().get(self.resolve_endpoint(self.edit_endpoint))
        if response.is_successful():
            self._reload(response)
        return response

    def delete(self, extra_fields: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return self.get_api_driver().delete(self.resolve_endpoint(self.edit_endpoint), extra_fields)

    def upload(self, field: str, file: UploadFile, extra_fields: Optional[Dict[str, Any]] = None) -> ApiResponse:
        """
        Upload a file column to ``edit_endpoint``.

        The snake_case field name is sent as the ``field`` form value.

        Raises:
            ValueError: If ``field`` is not one of the file columns
        """
        if field not in self.file_columns:
            raise ValueError(f"{field} is not a file column of {type(self).__name__}")
        fields = {"field": camel_to_snake(field), **(extra_fields or {})}
        response = self.get_api_driver().upload(self.resolve_endpoint(self.edit_endpoint), file, fields)
        if response.is_successful():
            self._reload(response)
        return response

    def _reload(self, response: ApiResponse) -> None:
        data = response.get_data(self.model_name)
        if isinstance(data, Mapping):
            self.load(data)
        elif data is not None:
            logger.warning(f"Model {self.model_name}: response data is not an object: {data!r}")
        self.load_original_values()

    # Errors
    def set_errors(self, errors: Mapping[str, Any]) -> "Model":
        self.errors = dict(errors)
        return self

    def apply_field_errors(self, response: ApiResponse) -> "Model":
        self.errors.update(response.get_field_errors())
        return self

    def to_dict(self) -> Dict[str, Any]:
        """snake_case rendering of every field, nested records included."""
        return {camel_to_snake(name): _plain(value) for name, value in self._values.items()}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.primary_key}={self._values.get(self.primary_key)!r})"


def _as_factory(model_class: type, field: str, factory: Union[Factory, type]) -> Factory:
    if isinstance(factory, Factory):
        return factory
    if isinstance(factory, type) and issubclass(factory, Model):
        return Factory(factory)
    raise TypeError(f"{model_class.__name__}.factories[{field!r}] must be a Factory or Model subclass, got {factory!r}")


def _differs(current: Any, original: Any) -> bool:
    """Strict inequality: value comparison for immutable scalars, identity otherwise."""
    if current is original:
        return False
    if isinstance(current, bool) or isinstance(original, bool):
        return True
    if isinstance(current, _VALUE_TYPES) and isinstance(original, _VALUE_TYPES):
        return current != original
    return True


def _plain(value: Any) -> Any:
    if isinstance(value, Model):
        return value.to_dict()
    if isinstance(value, Repository):
        return [_plain(item) for item in value.items]
    if isinstance(value, date):
        return value.isoformat()
    return value
