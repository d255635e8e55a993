"""FleetYards API record schema.

This is the trust boundary between the external API and the pipeline. Only
``id``, ``name``, ``slug`` and ``manufacturer`` are required; every other
field is optional and falls back to a default so that a sparsely populated
record still yields a usable document. Unknown fields are accepted and
ignored so upstream additions never break ingestion.
"""

from typing import Annotated, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"

FleetYardsId = Annotated[str, StringConstraints(strip_whitespace=True, pattern=UUID_PATTERN)]
NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class _Passthrough(BaseModel):
    # NaN and Infinity parse from JSON but are never valid ship specs
    model_config = ConfigDict(extra="allow", populate_by_name=True, allow_inf_nan=False)


class FleetYardsManufacturer(_Passthrough):
    name: str
    code: str
    slug: str


class FleetYardsCrew(_Passthrough):
    min: float = 0
    max: float = 0

    @field_validator("min", "max", mode="before")
    @classmethod
    def _null_to_zero(cls, value):
        return 0 if value is None else value


class FleetYardsView(_Passthrough):
    """Nested image layout with one URL per resolution."""

    source: Optional[str] = None
    small: Optional[str] = None
    medium: Optional[str] = None
    large: Optional[str] = None


# Older API responses carry a plain URL string where newer ones nest a view object
ImageField = Optional[Union[FleetYardsView, str]]

_STRING_DEFAULTS = (
    "classification",
    "classification_label",
    "focus",
    "production_status",
    "size",
    "last_updated_at",
    "created_at",
    "updated_at",
)
_NUMBER_DEFAULTS = ("cargo", "mass", "length", "beam", "height")
_BOOL_DEFAULTS = ("on_sale", "has_images", "has_paints")


class FleetYardsShip(_Passthrough):
    # Required fields
    id: FleetYardsId
    name: NonEmptyStr
    slug: NonEmptyStr
    manufacturer: FleetYardsManufacturer

    sc_identifier: Optional[str] = Field(None, alias="scIdentifier")
    rsi_id: Optional[int] = Field(None, alias="rsiId")
    rsi_name: Optional[str] = Field(None, alias="rsiName")

    classification: str = ""
    classification_label: str = Field("", alias="classificationLabel")
    focus: str = ""
    production_status: str = Field("", alias="productionStatus")
    size: str = ""

    crew: FleetYardsCrew = Field(default_factory=FleetYardsCrew)
    cargo: float = 0
    mass: float = 0
    length: float = 0
    beam: float = 0
    height: float = 0

    scm_speed: Optional[float] = Field(None, alias="scmSpeed")
    hydrogen_fuel_tank_size: Optional[float] = Field(None, alias="hydrogenFuelTankSize")
    quantum_fuel_tank_size: Optional[float] = Field(None, alias="quantumFuelTankSize")
    pledge_price: Optional[float] = Field(None, alias="pledgePrice")
    price: Optional[float] = None

    description: Optional[str] = None
    store_url: Optional[str] = Field(None, alias="storeUrl")

    store_image: ImageField = Field(None, alias="storeImage")
    angled_view: ImageField = Field(None, alias="angledView")
    side_view: ImageField = Field(None, alias="sideView")
    top_view: ImageField = Field(None, alias="topView")
    front_view: ImageField = Field(None, alias="frontView")
    fleetchart_image: ImageField = Field(None, alias="fleetchartImage")

    on_sale: bool = Field(False, alias="onSale")
    has_images: bool = Field(False, alias="hasImages")
    has_paints: bool = Field(False, alias="hasPaints")

    last_updated_at: str = Field("", alias="lastUpdatedAt")
    created_at: str = Field("", alias="createdAt")
    updated_at: str = Field("", alias="updatedAt")

    @field_validator(*_STRING_DEFAULTS, mode="before")
    @classmethod
    def _null_to_empty(cls, value):
        return "" if value is None else value

    @field_validator(*_NUMBER_DEFAULTS, mode="before")
    @classmethod
    def _null_to_zero(cls, value):
        return 0 if value is None else value

    @field_validator(*_BOOL_DEFAULTS, mode="before")
    @classmethod
    def _null_to_false(cls, value):
        return False if value is None else value

    @field_validator("crew", mode="before")
    @classmethod
    def _null_crew(cls, value):
        return {} if value is None else value
