"""Pydantic data models for graphsieve."""

from graphsieve.models.filter_options import FilterOptions
from graphsieve.models.page_record import PageRecord
from graphsieve.models.preview import PreviewContent, PreviewState

__all__ = ["FilterOptions", "PageRecord", "PreviewContent", "PreviewState"]
