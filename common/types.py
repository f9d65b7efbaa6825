from __future__ import annotations

"""
ERC-721 JSON metadata with OpenSea extensions.

Variant decoding is "infer from the fields present" and the order in which
variants are tried is fixed:

  attributes:  StringAttribute -> IntegerAttribute -> FloatAttribute
  images:      ImageUrl        -> ImageData

The first variant that validates wins. Integers never reach FloatAttribute,
and an `image` key that is not a URL falls through to `image_data`.
"""

import re
from enum import Enum
from typing import Annotated, Any, Dict, Optional, Tuple, Union

from pydantic import (
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_serializer,
    model_validator,
)


_ADDRESS = re.compile(r"0x[0-9a-fA-F]{40}")
_URL = TypeAdapter(AnyUrl)


class DisplayType(str, Enum):
    DATE = "date"
    NUMBER = "number"
    BOOST_PERCENTAGE = "boost_percentage"
    BOOST_NUMBER = "boost_number"


class _Attribute(BaseModel):
    model_config = ConfigDict(frozen=True)

    trait_type: Optional[StrictStr] = None

    @model_serializer(mode="wrap")
    def _omit_absent(self, handler) -> Dict[str, Any]:
        return {k: v for k, v in handler(self).items() if v is not None}


class StringAttribute(_Attribute):
    value: StrictStr


class IntegerAttribute(_Attribute):
    value: StrictInt
    display_type: Optional[DisplayType] = None
    max_value: Optional[StrictInt] = None


class FloatAttribute(_Attribute):
    # NaN and Infinity are not JSON numbers
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    value: float
    display_type: Optional[DisplayType] = None
    max_value: Optional[float] = None

    @field_validator("value", "max_value", mode="before")
    @classmethod
    def _numbers_only(cls, v: Any) -> Any:
        # float would otherwise coerce "1.5" and True
        if v is None:
            return v
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("expected a JSON number")
        return v


Attribute = Annotated[
    Union[StringAttribute, IntegerAttribute, FloatAttribute],
    Field(union_mode="left_to_right"),
]


class ImageUrl(BaseModel):
    model_config = ConfigDict(frozen=True)

    image: AnyUrl


class ImageData(BaseModel):
    """Raw image payload, typically an inline SVG."""

    model_config = ConfigDict(frozen=True)

    image_data: StrictStr


NftImage = Annotated[Union[ImageUrl, ImageData], Field(union_mode="left_to_right")]


def image_from_str(s: str) -> Union[ImageUrl, ImageData]:
    """URL if `s` parses as one, inline data otherwise."""
    try:
        return ImageUrl(image=_URL.validate_python(s))
    except ValidationError:
        return ImageData(image_data=s)


class TokenMetadata(BaseModel):
    """
    Metadata document for a single token.

    Attributes:
        name, description: display text.
        external_url: link to the token's page on the project site.
        image: ImageUrl or ImageData. Flattened on the wire, i.e. the JSON
            object carries a top-level `image` or `image_data` key.
        attributes: ordered trait list (order is what marketplaces display).
        background_color: six-character hex without '#', OpenSea extension.
        animation_url, youtube_url: OpenSea media extensions.

    Optional fields that are None are omitted from the serialized form.
    """

    model_config = ConfigDict(frozen=True)

    name: StrictStr
    description: StrictStr
    external_url: AnyUrl
    image: NftImage
    attributes: Tuple[Attribute, ...] = ()
    background_color: Optional[StrictStr] = None
    animation_url: Optional[AnyUrl] = None
    youtube_url: Optional[AnyUrl] = None

    @model_validator(mode="before")
    @classmethod
    def _lift_image(cls, data: Any) -> Any:
        if not isinstance(data, dict) or isinstance(data.get("image"), (ImageUrl, ImageData)):
            return data
        flat = {k: data[k] for k in ("image", "image_data") if k in data}
        lifted = {k: v for k, v in data.items() if k not in flat}
        lifted["image"] = flat
        return lifted

    @model_serializer(mode="wrap")
    def _flatten_image(self, handler) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for k, v in handler(self).items():
            if k == "image" and isinstance(v, dict):
                out.update(v)
            elif v is not None:
                out[k] = v
        return out


class CollectionMetadata(BaseModel):
    """
    Contract-level metadata in the OpenSea format.

    Attributes:
        image: ImageUrl or ImageData, kept as a nested object on the wire.
            A bare string is accepted on input (see `image_from_str`).
        seller_fee_basis_points: royalty, 100 == 1%.
        fee_recipient: royalty payee, normalized to lower-case hex.
    """

    model_config = ConfigDict(frozen=True)

    name: StrictStr
    description: StrictStr
    image: NftImage
    external_link: AnyUrl
    seller_fee_basis_points: Annotated[StrictInt, Field(ge=0)]
    fee_recipient: StrictStr

    @field_validator("image", mode="before")
    @classmethod
    def _image_from_bare_string(cls, v: Any) -> Any:
        if isinstance(v, str):
            return image_from_str(v)
        return v

    @field_validator("fee_recipient")
    @classmethod
    def _address(cls, v: str) -> str:
        if not _ADDRESS.fullmatch(v):
            raise ValueError("fee_recipient must be a 0x-prefixed 20-byte hex address")
        return v.lower()
