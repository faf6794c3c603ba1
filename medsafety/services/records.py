"""Polars-powered loading of imported medicine and household tables.

Imported spreadsheets and exports carry list fields in every shape the
normalizer understands ("a, b", ``["a", "b"]``, ``{name=a}``, placeholders).
This module normalizes whole columns at once and turns rows into validated
:class:`Medicine` / :class:`Person` models.
"""
from __future__ import annotations

import logging
from typing import Iterable, TypeVar

import polars as pl
from pydantic import BaseModel, ValidationError

from medsafety.models.medicine import Medicine
from medsafety.models.person import Person
from medsafety.services.text_normalizer import clean_text, parse_list_field

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def normalize_list_series(series: pl.Series) -> pl.Series:
    """
    Apply ``parse_list_field`` to a Polars :class:`~polars.Series` of strings.

    Returns a ``List(Utf8)`` Series (``None`` → empty list).
    """
    filled = series.cast(pl.Utf8).fill_null("")
    return filled.map_elements(
        parse_list_field,
        return_dtype=pl.List(pl.Utf8),
    )


def normalize_dataframe_list_columns(df: pl.DataFrame, cols: Iterable[str]) -> pl.DataFrame:
    """
    Return *df* with an additional ``<col>_normalized`` column for each of
    *cols*, holding the parsed list values.
    """
    return df.with_columns([
        normalize_list_series(df[col]).alias(f"{col}_normalized") for col in cols
    ])


def _rows_to_models(df: pl.DataFrame, model: type[ModelT]) -> list[ModelT]:
    out: list[ModelT] = []
    for idx, row in enumerate(df.to_dicts()):
        if clean_text(row.get("name")) is None:
            logger.warning("Row %d skipped: missing %s name", idx, model.__name__)
            continue
        try:
            out.append(model.model_validate(row))
        except ValidationError as exc:
            logger.warning("Row %d skipped: invalid %s (%s)", idx, model.__name__, exc)
    logger.debug("Loaded %d/%d %s rows", len(out), df.height, model.__name__)
    return out


def medicines_from_frame(df: pl.DataFrame) -> list[Medicine]:
    """Rows of *df* (camelCase or snake_case columns) as :class:`Medicine` models."""
    return _rows_to_models(df, Medicine)


def people_from_frame(df: pl.DataFrame) -> list[Person]:
    """Rows of *df* (camelCase or snake_case columns) as :class:`Person` models."""
    return _rows_to_models(df, Person)
