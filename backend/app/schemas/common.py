"""Common Marshmallow schemas shared across resources."""

from __future__ import annotations

from typing import Any

from marshmallow import EXCLUDE, Schema, fields, pre_load


def Money(**kwargs: Any) -> fields.Decimal:  # noqa: N802 - reads like a field class
    """Decimal amount dumped as a string with two places (``"10.00"``)."""
    return fields.Decimal(as_string=True, places=2, **kwargs)


class RequestSchema(Schema):
    """Base for request payloads: unknown keys are dropped, strings stripped."""

    class Meta:
        unknown = EXCLUDE

    @pre_load
    def strip_strings(self, data: Any, **_: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return {k: v.strip() if isinstance(v, str) else v for k, v in data.items()}


class PageMetaSchema(Schema):
    """Metadata block for paginated responses."""

    page = fields.Integer(required=True)
    per_page = fields.Integer(required=True)
    total = fields.Integer(required=True)
    total_pages = fields.Integer(required=True)
    has_next = fields.Boolean()
    has_prev = fields.Boolean()
