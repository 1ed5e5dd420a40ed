"""
Vehicle catalog store.

Defines the read contract the engine needs from a catalog backend and an
in-memory implementation seeded with the showroom line-up. In production
the same contract would be served by the dealership's inventory database.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Protocol

from sales_assistant.schemas.catalog_schema import (
    CatalogMedia,
    CatalogModel,
    CatalogVariant,
    MediaType,
)

logger = logging.getLogger(__name__)


class CatalogStore(Protocol):
    """Read-only catalog contract."""

    def find_model_by_name(self, name: str) -> Optional[CatalogModel]: ...

    def get_model(self, model_id: int) -> Optional[CatalogModel]: ...

    def list_models(self) -> list[CatalogModel]: ...

    def get_variant(self, variant_id: int) -> Optional[CatalogVariant]: ...

    def list_variants(self) -> list[CatalogVariant]: ...

    def get_variant_media(self, variant_id: int, media_type: MediaType) -> list[CatalogMedia]: ...


class InMemoryCatalogStore:
    """Catalog held in process memory.

    Every read returns a deep copy so callers can never mutate the
    stored catalog through a returned object.
    """

    def __init__(self, models: Optional[list[CatalogModel]] = None) -> None:
        self._models: dict[int, CatalogModel] = {}
        for model in models or []:
            self.add_model(model)

    def add_model(self, model: CatalogModel) -> None:
        """Register a model. Used by seeding and by test fixtures."""
        if any(m.name.lower() == model.name.lower() for m in self._models.values()
               if m.id != model.id):
            raise ValueError(f"Duplicate model name: {model.name}")
        self._models[model.id] = model.model_copy(deep=True)
        logger.debug("Catalog model stored: %s (%d variants)", model.name, len(model.variants))

    def find_model_by_name(self, name: str) -> Optional[CatalogModel]:
        """First model (alphabetical) whose name contains ``name``, ignoring case."""
        needle = name.lower().strip()
        if not needle:
            return None
        for model in self.list_models():
            if needle in model.name.lower():
                return model
        return None

    def get_model(self, model_id: int) -> Optional[CatalogModel]:
        model = self._models.get(model_id)
        return model.model_copy(deep=True) if model else None

    def list_models(self) -> list[CatalogModel]:
        return [
            m.model_copy(deep=True)
            for m in sorted(self._models.values(), key=lambda m: m.name.lower())
        ]

    def get_variant(self, variant_id: int) -> Optional[CatalogVariant]:
        for model in self._models.values():
            for variant in model.variants:
                if variant.id == variant_id:
                    return variant.model_copy(deep=True)
        return None

    def list_variants(self) -> list[CatalogVariant]:
        return [variant for model in self.list_models() for variant in model.variants]

    def get_variant_media(self, variant_id: int, media_type: MediaType) -> list[CatalogMedia]:
        variant = self.get_variant(variant_id)
        if variant is None:
            return []
        return sorted(
            (m for m in variant.media if m.type == media_type),
            key=lambda m: m.id,
        )


# --------------------------------------------------------------------------- #
# Seed data
# --------------------------------------------------------------------------- #

_MEDIA_BASE = "https://www.mitsubishi-motors.com.ph/content/dam/mitsubishi-motor/images/cars"

SEED_CATALOG: list[dict[str, Any]] = [
    {
        "id": 1,
        "name": "Xpander",
        "segment": "MPV",
        "description": "The reliable family MPV.",
        "variants": [
            {
                "id": 101,
                "name": "GLX M/T",
                "price": "1068000",
                "transmission": "M/T",
                "fuel": "Gasoline",
                "specs": {"engine": "1.5L MIVEC", "seats": 7},
            },
            {
                "id": 102,
                "name": "GLS A/T",
                "price": "1198000",
                "transmission": "A/T",
                "fuel": "Gasoline",
                "specs": {
                    "engine": "1.5L MIVEC",
                    "seats": 7,
                    "features": ["Touchscreen", "Reverse Camera"],
                },
                "media": [
                    {"id": 1, "type": "IMAGE", "label": "Front View",
                     "url": f"{_MEDIA_BASE}/xpander/2023/gls/primary/exterior/xpander-gls-red-1.jpg"},
                    {"id": 2, "type": "IMAGE", "label": "Side View",
                     "url": f"{_MEDIA_BASE}/xpander/2023/gls/primary/exterior/xpander-gls-red-2.jpg"},
                    {"id": 3, "type": "IMAGE", "label": "Interior",
                     "url": f"{_MEDIA_BASE}/xpander/2023/gls/primary/interior/xpander-gls-interior-1.jpg"},
                    {"id": 4, "type": "PDF", "label": "Xpander Spec Sheet",
                     "url": f"{_MEDIA_BASE}/xpander/2023/xpander-spec-sheet.pdf"},
                ],
            },
        ],
    },
    {
        "id": 2,
        "name": "Montero Sport",
        "segment": "SUV",
        "description": "Elevate your journey.",
        "variants": [
            {
                "id": 201,
                "name": "GLX 2WD M/T",
                "price": "1568000",
                "transmission": "M/T",
                "fuel": "Diesel",
                "specs": {"engine": "2.4L Clean Diesel", "seats": 7},
            },
            {
                "id": 202,
                "name": "Black Series",
                "price": "2100000",
                "transmission": "A/T",
                "fuel": "Diesel",
                "specs": {
                    "engine": "2.4L Clean Diesel",
                    "seats": 7,
                    "features": ["Black Accents", "Advanced Safety"],
                },
            },
        ],
    },
    {
        "id": 3,
        "name": "Mirage G4",
        "segment": "Sedan",
        "description": "Efficient city sedan.",
        "variants": [
            {
                "id": 301,
                "name": "GLX CVT",
                "price": "938000",
                "transmission": "CVT",
                "fuel": "Gasoline",
                "specs": {"engine": "1.2L MIVEC", "seats": 5},
            },
        ],
    },
    {
        "id": 4,
        "name": "Strada",
        "segment": "Pickup",
        "description": "Built tough for work and play.",
        "variants": [
            {
                "id": 401,
                "name": "GLX 4x2 M/T",
                "price": "1179000",
                "transmission": "M/T",
                "fuel": "Diesel",
                "specs": {},
            },
            {
                "id": 402,
                "name": "Athlete 4x4 A/T",
                "price": "1870000",
                "transmission": "A/T",
                "fuel": "Diesel",
                "specs": {"engine": "2.4L MIVEC Diesel", "seats": 5,
                          "features": ["Super Select 4WD-II", "LED Headlamps"]},
            },
        ],
    },
]


def build_catalog_models(
    data: list[dict[str, Any]], updated_at: Optional[datetime] = None
) -> list[CatalogModel]:
    """Turn raw catalog dicts into validated models."""
    stamp = updated_at or datetime.now(timezone.utc)
    models: list[CatalogModel] = []
    for raw in data:
        variants = [
            CatalogVariant(
                id=v["id"],
                model_id=raw["id"],
                model_name=raw["name"],
                name=v["name"],
                price=Decimal(v["price"]),
                transmission=v.get("transmission"),
                fuel=v.get("fuel"),
                specs=v.get("specs", {}),
                media=[CatalogMedia(**m) for m in v.get("media", [])],
                updated_at=v.get("updated_at", stamp),
            )
            for v in raw.get("variants", [])
        ]
        models.append(CatalogModel(
            id=raw["id"],
            name=raw["name"],
            segment=raw.get("segment"),
            description=raw.get("description", ""),
            variants=variants,
        ))
    return models


def seed_catalog(store: InMemoryCatalogStore, updated_at: Optional[datetime] = None) -> None:
    """Load the showroom line-up. Safe to call more than once."""
    for model in build_catalog_models(SEED_CATALOG, updated_at):
        store.add_model(model)
    logger.info("Seeded %d catalog models", len(SEED_CATALOG))
