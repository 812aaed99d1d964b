"""Typed views of Magento REST payloads.

Only the fields the sync reads are declared; everything else in the
payload is ignored.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.constants import URL_KEY_ATTRIBUTE


class CustomAttribute(BaseModel):
    """One ``{attribute_code, value}`` pair from ``custom_attributes``."""

    model_config = ConfigDict(extra="ignore")

    attribute_code: str
    value: Any = None


class _HasCustomAttributes(BaseModel):
    model_config = ConfigDict(extra="ignore")

    custom_attributes: list[CustomAttribute] = Field(default_factory=list)

    def get_custom_attribute(self, code: str) -> Any | None:
        """Return the value of the first attribute with ``code``, if any."""
        for attribute in self.custom_attributes:
            if attribute.attribute_code == code:
                return attribute.value
        return None

    @property
    def url_key(self) -> str:
        value = self.get_custom_attribute(URL_KEY_ATTRIBUTE)
        return str(value) if value else ""


class SourceCategory(_HasCustomAttributes):
    """Category record from ``GET /categories/list``."""

    id: int
    name: str
    parent_id: int | None = None
    position: int = 0
    is_active: bool | None = None

    @field_validator("parent_id", mode="before")
    @classmethod
    def root_parent_to_none(cls, v: Any) -> Any:
        # Magento uses 0 for the tree root
        if v in (0, "0", ""):
            return None
        return v


class CategoryList(BaseModel):
    """Search result envelope for categories."""

    items: list[SourceCategory] = Field(default_factory=list)
    total_count: int = 0


class SourceProduct(_HasCustomAttributes):
    """Product record from ``GET /products``."""

    id: int
    sku: str
    name: str = ""
    type_id: str = "simple"
    status: int = 1
    visibility: int = 4
    price: float | None = None
    extension_attributes: dict[str, Any] = Field(default_factory=dict)

    @property
    def stock_quantity(self) -> int:
        stock_item = self.extension_attributes.get("stock_item") or {}
        return int(stock_item.get("qty") or 0)

    @property
    def configurable_options(self) -> list[dict[str, Any]]:
        return self.extension_attributes.get("configurable_product_options") or []

    @property
    def configurable_attribute_ids(self) -> set[str]:
        """Ids of the attributes a configurable product varies on."""
        return {
            str(option["attribute_id"])
            for option in self.configurable_options
            if option.get("attribute_id") is not None
        }


class AttributeOption(BaseModel):
    model_config = ConfigDict(extra="ignore")

    label: str = ""
    value: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, v: Any) -> str:
        return "" if v is None else str(v)


class AttributeMetadata(BaseModel):
    """Product attribute definition from ``GET /products/attributes/{code}``."""

    model_config = ConfigDict(extra="ignore")

    attribute_id: int | None = None
    attribute_code: str
    default_frontend_label: str | None = None
    options: list[AttributeOption] = Field(default_factory=list)

    @property
    def label(self) -> str:
        return self.default_frontend_label or self.attribute_code

    def label_for(self, value: Any) -> str:
        """Translate a stored option id into its human-readable label."""
        key = "" if value is None else str(value)
        for option in self.options:
            if option.value == key and option.label.strip():
                return option.label
        return key
