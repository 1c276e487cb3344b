"""Per-endpoint query parameter tables and listing configuration.

Each catalog endpoint declares the parameters it accepts (built once, at
import, so an inconsistent table fails at startup), the public sort options
and the record field each one orders by, its default ordering and the cache
lifetimes of its list and detail responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from cosmic_index.services.cursor_codec import Direction
from cosmic_index.services.parameter_validator import FieldKind, FieldSpec, QuerySpec
from cosmic_index.utils.cache_control import DAY, HOUR

MAX_CURSOR_LENGTH = 500


def paging_fields(sort_options: tuple[str, ...]) -> tuple[FieldSpec, ...]:
    """Paging and ordering parameters shared by every list endpoint.

    ``limit`` has no upper bound here: oversized values are clamped by the
    pagination layer, never rejected.
    """
    return (
        FieldSpec("page", FieldKind.INTEGER, minimum=1),
        FieldSpec("limit", FieldKind.INTEGER, minimum=1),
        FieldSpec("cursor", FieldKind.STRING, max_length=MAX_CURSOR_LENGTH),
        FieldSpec("paginationMode", FieldKind.ENUM, choices=("offset", "cursor"), case="lower"),
        FieldSpec("sort", FieldKind.ENUM, choices=sort_options),
        FieldSpec("order", FieldKind.ENUM, choices=("asc", "desc"), case="lower"),
    )


@dataclass(frozen=True)
class EndpointConfig:
    """Listing configuration of one catalog endpoint.

    Attributes:
        catalog: Catalog name, also the URL segment under ``/v1``.
        query_spec: Accepted list parameters.
        sort_fields: Public sort option -> record field it orders by.
        default_sort: Sort option used when the request names none.
        default_order: Direction used when the request names none.
        list_ttl: Cache lifetime (seconds) of list responses.
        detail_ttl: Cache lifetime (seconds) of detail responses.
    """

    catalog: str
    query_spec: QuerySpec
    sort_fields: Mapping[str, str]
    default_sort: str
    default_order: Direction = "asc"
    list_ttl: int = 12 * HOUR
    detail_ttl: int = DAY
    tags: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        if self.default_sort not in self.sort_fields:
            raise ValueError(f"{self.catalog}: default sort {self.default_sort!r} is not a sort option")
        declared = self.query_spec.get("sort")
        if declared is None or set(declared.choices) != set(self.sort_fields):
            raise ValueError(f"{self.catalog}: sort choices do not match sort_fields")

    def sort_column(self, sort_option: str) -> str:
        return self.sort_fields[sort_option]


_EXOPLANET_SORTS = MappingProxyType(
    {
        "name": "name",
        "discovered": "discoveryYear",
        "distance": "distancePc",
        "radius": "radiusEarth",
        "mass": "massEarth",
    }
)

_STAR_SORTS = MappingProxyType(
    {
        "name": "name",
        "distance": "distancePc",
        "vmag": "vmag",
        "planetCount": "planetCount",
    }
)

_SMALL_BODY_SORTS = MappingProxyType(
    {
        "name": "name",
        "diameter": "diameterKm",
    }
)

EXOPLANETS = EndpointConfig(
    catalog="exoplanets",
    query_spec=QuerySpec(
        "exoplanets",
        (
            FieldSpec("query", FieldKind.STRING, max_length=128),
            FieldSpec("discoveryMethod", FieldKind.STRING, max_length=64),
            FieldSpec("year", FieldKind.INTEGER, minimum=1900, maximum=2100),
            FieldSpec("hasRadius", FieldKind.BOOLEAN),
            FieldSpec("hasMass", FieldKind.BOOLEAN),
            FieldSpec(
                "sizeCategory",
                FieldKind.ENUM,
                choices=("earth", "super-earth", "neptune", "jupiter"),
                case="lower",
            ),
            FieldSpec("facility", FieldKind.STRING, max_length=64),
            FieldSpec("multiPlanet", FieldKind.BOOLEAN),
            FieldSpec("maxDistancePc", FieldKind.NUMBER, exclusive_minimum=0, maximum=100_000),
            *paging_fields(tuple(_EXOPLANET_SORTS)),
        ),
    ),
    sort_fields=_EXOPLANET_SORTS,
    default_sort="name",
    tags=("Exoplanets",),
)

STARS = EndpointConfig(
    catalog="stars",
    query_spec=QuerySpec(
        "stars",
        (
            FieldSpec("query", FieldKind.STRING, max_length=128),
            FieldSpec(
                "spectralClass",
                FieldKind.ENUM,
                choices=("O", "B", "A", "F", "G", "K", "M"),
                case="upper",
            ),
            FieldSpec("minPlanets", FieldKind.INTEGER, minimum=1, maximum=50),
            FieldSpec("multiPlanet", FieldKind.BOOLEAN),
            FieldSpec("maxDistancePc", FieldKind.NUMBER, exclusive_minimum=0, maximum=100_000),
            *paging_fields(tuple(_STAR_SORTS)),
        ),
    ),
    sort_fields=_STAR_SORTS,
    default_sort="name",
    tags=("Stars",),
)

SMALL_BODIES = EndpointConfig(
    catalog="small-bodies",
    query_spec=QuerySpec(
        "small-bodies",
        (
            FieldSpec("query", FieldKind.STRING, max_length=100),
            FieldSpec("kind", FieldKind.ENUM, choices=("asteroid", "comet"), case="lower"),
            FieldSpec("neo", FieldKind.BOOLEAN),
            FieldSpec("pha", FieldKind.BOOLEAN),
            FieldSpec("orbitClass", FieldKind.STRING, max_length=10),
            *paging_fields(tuple(_SMALL_BODY_SORTS)),
        ),
    ),
    sort_fields=_SMALL_BODY_SORTS,
    default_sort="name",
    detail_ttl=7 * DAY,
    tags=("Small Bodies",),
)

ENDPOINTS: Mapping[str, EndpointConfig] = MappingProxyType(
    {config.catalog: config for config in (EXOPLANETS, STARS, SMALL_BODIES)}
)
