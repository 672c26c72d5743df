from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter

from .schemas import CatalogProduct, SeriesRef, vector_number

logger = logging.getLogger(__name__)

_PRODUCTS = TypeAdapter(list[CatalogProduct])


class Catalog:
    """Read-only product catalog loaded once from a JSON document."""

    def __init__(self, products: list[CatalogProduct]):
        self.products: tuple[CatalogProduct, ...] = tuple(products)
        self._by_vector: dict[int, SeriesRef] = {}
        for p in self.products:
            for v in p.vectors:
                ref = SeriesRef(vector_id=v.vector_id, product_id=p.product_id, label=v.text)
                self._by_vector.setdefault(ref.vector_id, ref)

    @classmethod
    def from_path(cls, path: str | Path) -> "Catalog":
        raw = Path(path).read_text(encoding="utf-8")
        products = _PRODUCTS.validate_python(json.loads(raw))
        logger.info("loaded catalog: products=%d path=%s", len(products), path)
        return cls(products)

    def search(self, query: str | None) -> list[CatalogProduct]:
        q = (query or "").strip().lower()
        if not q:
            return list(self.products)

        def _hit(p: CatalogProduct) -> bool:
            if q in p.product_id.lower() or q in p.description.lower():
                return True
            return any(q in v.text.lower() or q in v.vector_id.lower() for v in p.vectors)

        return [p for p in self.products if _hit(p)]

    def series_ref(self, vector_id: str | int) -> SeriesRef:
        vid = vector_number(vector_id)
        try:
            return self._by_vector[vid]
        except KeyError:
            raise KeyError(f"vector v{vid} is not in the catalog") from None
