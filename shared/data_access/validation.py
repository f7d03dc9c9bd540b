from sqlalchemy import inspect
from sqlalchemy.orm import MANYTOONE

from shared.exceptions import ValidationError


class ValidatedModel:
    """Mixin for the declarative Base: every entity can check itself.

    Required columns are the non-nullable ones the database or the mapper
    cannot fill in (primary keys, defaults and version counters are skipped).
    A foreign key counts as present when its related object is attached.
    Entities add their own rules by overriding `_collect_errors`.
    """

    def validate(self) -> None:
        mapper = inspect(type(self))
        errors: dict[str, list[str]] = {}

        attached = set()
        for rel in mapper.relationships:
            if rel.direction is MANYTOONE and getattr(self, rel.key) is not None:
                attached.update(rel.local_columns)

        for column in mapper.columns:
            if column.nullable or column.primary_key or column is mapper.version_id_col:
                continue
            if column.default is not None or column.server_default is not None:
                continue
            if column in attached:
                continue
            attr = mapper.get_property_by_column(column).key
            value = getattr(self, attr)
            if value is None or (isinstance(value, str) and not value.strip()):
                errors.setdefault(attr, []).append("This field is required.")

        self._collect_errors(errors)
        if errors:
            raise ValidationError(errors)

    def _collect_errors(self, errors: dict[str, list[str]]) -> None:
        pass
