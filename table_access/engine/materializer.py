"""
Row Materializer

Converts an untyped Row into an instance of a caller-chosen shape (a pydantic
model, a dataclass, or a plain class with annotated attributes).

Matching rules:
- Names match case-insensitively; pydantic aliases match too.
- Pass 1 assigns the Row's own metadata (partition_key, row_key, timestamp,
  etag). Pass 2 assigns the dynamic property bag and overwrites pass 1 when
  both match the same field.
- None values are never assigned.
- A value that cannot be coerced to the field's type, or cannot be assigned,
  is skipped and the remaining fields are still filled in.

Materialization is best effort: it never raises for field data. The caller
sees a skipped field only as the field keeping its default value.

Each shape gets a mapping table (lower-cased name -> setter) built once and
cached, so type introspection is not repeated per row.
"""

import dataclasses
import logging
from typing import Annotated, Any, Dict, Iterable, List, Optional, Type, TypeVar, get_type_hints

from pydantic import BaseModel, TypeAdapter

from ..exceptions import InvalidArgument
from ..guard import require_non_null
from ..models import Row

logger = logging.getLogger(__name__)

S = TypeVar('S')


class FieldSetter:
    """Coerces a value to one field's type and assigns it."""

    __slots__ = ('field_name', 'adapter')

    def __init__(self, field_name: str, adapter: TypeAdapter):
        self.field_name = field_name
        self.adapter = adapter

    def __call__(self, instance: Any, value: Any) -> None:
        setattr(instance, self.field_name, self.adapter.validate_python(value))


class ShapeMapping:
    """Case-insensitive name -> setter table for one target shape."""

    def __init__(self, shape: type, setters: Dict[str, FieldSetter]):
        self.shape = shape
        self.setters = setters

    def find(self, name: str) -> Optional[FieldSetter]:
        return self.setters.get(name.lower())

    def __len__(self) -> int:
        return len(self.setters)


def _adapter_for(annotation: Any, metadata: Iterable[Any] = ()) -> TypeAdapter:
    metadata = tuple(metadata)
    if metadata:
        return TypeAdapter(Annotated[(annotation, *metadata)])
    return TypeAdapter(annotation)


def _shape_fields(shape: type) -> Dict[str, tuple]:
    """Field name -> (annotation, constraint metadata, extra lookup names)."""
    if isinstance(shape, type) and issubclass(shape, BaseModel):
        fields = {}
        for name, info in shape.model_fields.items():
            aliases = [a for a in (info.alias, info.validation_alias) if isinstance(a, str)]
            fields[name] = (info.annotation, info.metadata, aliases)
        return fields

    hints = get_type_hints(shape)
    if dataclasses.is_dataclass(shape):
        return {f.name: (hints.get(f.name, Any), (), []) for f in dataclasses.fields(shape)}
    return {name: (annotation, (), []) for name, annotation in hints.items()}


def build_shape_mapping(shape: type) -> ShapeMapping:
    """
    Build the mapping table for ``shape``.

    Raises:
        InvalidArgument: the shape cannot be constructed without arguments,
            or its annotations cannot be resolved
    """
    shape_name = getattr(shape, '__name__', shape)
    try:
        shape()
    except Exception as e:
        raise InvalidArgument(
            f"Target shape {shape_name!r} must be constructible without arguments: {e}",
            "shape",
            original_error=e
        ) from e

    try:
        fields = _shape_fields(shape)
    except Exception as e:
        raise InvalidArgument(
            f"Field types of target shape {shape_name!r} cannot be resolved: {e}",
            "shape",
            original_error=e
        ) from e

    setters: Dict[str, FieldSetter] = {}
    for name, (annotation, metadata, aliases) in fields.items():
        try:
            setter = FieldSetter(name, _adapter_for(annotation, metadata))
        except Exception as e:
            logger.debug(f"Field '{name}' of {shape.__name__} has no usable type adapter, it will never be assigned: {e}")
            continue
        for lookup in (name, *aliases):
            setters.setdefault(lookup.lower(), setter)

    return ShapeMapping(shape, setters)


class RowMaterializer:
    """
    Converts Rows into shape instances using cached mapping tables.

    Example:
        class Customer(BaseModel):
            name: str = ""
            age: int = 0

        customer = RowMaterializer().materialize(row, Customer)
    """

    def __init__(self):
        self._mappings: Dict[type, ShapeMapping] = {}

    def mapping_for(self, shape: type) -> ShapeMapping:
        mapping = self._mappings.get(shape)
        if mapping is None:
            mapping = build_shape_mapping(shape)
            self._mappings[shape] = mapping
        return mapping

    def materialize(self, row: Optional[Row], shape: Type[S]) -> S:
        """
        Convert one row into a new ``shape`` instance.

        Args:
            row: Row to convert; None yields the shape's default instance
            shape: Target shape

        Returns:
            A new instance owned by the caller

        Raises:
            InvalidArgument: shape is None or cannot be built without arguments
        """
        require_non_null(shape, "shape")
        mapping = self.mapping_for(shape)
        instance = shape()

        if row is None:
            return instance

        metadata = {
            'partition_key': row.partition_key,
            'row_key': row.row_key,
            'timestamp': row.timestamp,
            'etag': row.etag,
        }
        self._assign(instance, mapping, metadata)
        self._assign(instance, mapping, row.properties)
        return instance

    def materialize_all(self, rows: Iterable[Optional[Row]], shape: Type[S]) -> List[S]:
        """Materialize every row, preserving order."""
        return [self.materialize(row, shape) for row in rows]

    @staticmethod
    def _assign(instance: Any, mapping: ShapeMapping, values: Dict[str, Any]) -> None:
        for name, value in values.items():
            if value is None:
                continue
            setter = mapping.find(name)
            if setter is None:
                continue
            try:
                setter(instance, value)
            except Exception as e:
                logger.debug(f"Skipping '{name}' -> {mapping.shape.__name__}.{setter.field_name}: {e}")


_default_materializer = RowMaterializer()


def materialize(row: Optional[Row], shape: Type[S]) -> S:
    """Convert one row into ``shape`` with the shared materializer."""
    return _default_materializer.materialize(row, shape)


def materialize_all(rows: Iterable[Optional[Row]], shape: Type[S]) -> List[S]:
    """Convert rows into ``shape`` with the shared materializer."""
    return _default_materializer.materialize_all(rows, shape)
