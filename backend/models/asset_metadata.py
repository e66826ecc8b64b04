"""
Metadata stored on text-response assets, keyed by the originating field type.
"""
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator


class TextInputMetadata(BaseModel):
    field_type: Literal["text_input"] = "text_input"
    content: str


class UrlFieldMetadata(BaseModel):
    field_type: Literal["url_field"] = "url_field"
    content: str

    @field_validator("content")
    @classmethod
    def must_be_http_url(cls, value: str) -> str:
        value = value.strip()
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return value


class CodeSnippetMetadata(BaseModel):
    field_type: Literal["code_snippet"] = "code_snippet"
    content: str
    language: Optional[str] = None


AssetMetadata = Annotated[
    Union[TextInputMetadata, UrlFieldMetadata, CodeSnippetMetadata],
    Field(discriminator="field_type"),
]

asset_metadata_adapter = TypeAdapter(AssetMetadata)


def parse_asset_metadata(data: dict):
    """Validate a raw metadata dict into its tagged variant."""
    return asset_metadata_adapter.validate_python(data)
