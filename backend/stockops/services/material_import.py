"""One-time import of the raw-material catalog from the upstream store."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stockops.models.material import MaterialType
from stockops.repositories.material_repository import MaterialRepository

logger = logging.getLogger(__name__)


class RawMaterialSource(Protocol):
    async def fetch_raw_materials(self) -> list[dict[str, Any]]: ...


@dataclass
class ImportReport:
    imported: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        text = f"Imported {self.imported} materials, skipped {self.skipped} already existing."
        if self.errors:
            text += f" {len(self.errors)} errors occurred."
        return text


def _variation_fields(variation: dict[str, Any]) -> dict[str, Any]:
    attributes = variation.get("attributes") or []
    name = " - ".join(str(a.get("option", "")) for a in attributes if a.get("option"))
    return {
        "external_id": variation["id"],
        "name": name or f"Variation {variation['id']}",
        "sku": variation.get("sku") or None,
        "stock_quantity": variation.get("stock_quantity") or 0,
        "manage_stock": variation.get("manage_stock") is not False,
        "low_stock_threshold": variation.get("low_stock_amount") or 5,
        "attributes": json.dumps(attributes) if attributes else None,
    }


class MaterialImporter:
    """Creates local materials for upstream raw materials not yet imported.

    Existing materials (matched on ``external_id``) are left untouched, so
    running the import again only picks up new upstream products.
    """

    def __init__(self, session: AsyncSession, source: RawMaterialSource):
        self.session = session
        self.source = source
        self.materials = MaterialRepository(session)

    async def run(self) -> ImportReport:
        report = ImportReport()
        for upstream in await self.source.fetch_raw_materials():
            name = upstream.get("name", "")
            try:
                if await self.materials.get_by_external_id(upstream["id"]) is not None:
                    report.skipped += 1
                    continue

                is_variable = upstream.get("type") == MaterialType.VARIABLE.value
                await self.materials.create(
                    external_id=upstream["id"],
                    name=name,
                    sku=upstream.get("sku") or None,
                    type=MaterialType.VARIABLE.value if is_variable else MaterialType.SIMPLE.value,
                    stock_quantity=upstream.get("stock_quantity") or 0,
                    manage_stock=upstream.get("manage_stock") is not False,
                    low_stock_threshold=upstream.get("low_stock_amount") or 5,
                    image_url=upstream.get("image_url"),
                    variations=[_variation_fields(v) for v in upstream.get("variations") or []]
                    if is_variable else [],
                )
                report.imported += 1
            except (SQLAlchemyError, KeyError, TypeError, ValueError) as e:
                await self.session.rollback()
                logger.error(f"Error importing material {upstream.get('id')} ({name}): {e}")
                report.errors.append(f"{name or upstream.get('id')}: {e}")

        logger.info(report.message)
        return report
