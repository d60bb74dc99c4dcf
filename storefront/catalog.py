from typing import Dict, Iterable, List, Optional

from .models import Product

DEFAULT_PRODUCTS = (
    Product(id="npe", name="NullPointerException", description="The classic. Points at nothing, every time.", price_minor=1299),
    Product(id="typeerror", name="TypeError", description="undefined is not a function, gift wrapped.", price_minor=999),
    Product(id="segfault", name="Segmentation Fault", description="Core dumped, lovingly hand-crafted.", price_minor=1999),
    Product(id="syntax", name="SyntaxError", description="Unexpected token, expected satisfaction.", price_minor=599),
    Product(id="oom", name="OutOfMemoryError", description="Grows until there is no room left for anything else.", price_minor=2499),
)


class Catalog:
    """Read-only product lookup, fixed at construction."""

    def __init__(self, products: Iterable[Product] = DEFAULT_PRODUCTS):
        self._products: Dict[str, Product] = {}
        for product in products:
            if product.id in self._products:
                raise ValueError(f"Duplicate product id: {product.id}")
            self._products[product.id] = product

    def get(self, product_id: str) -> Optional[Product]:
        return self._products.get(product_id)

    def products(self) -> List[Product]:
        return list(self._products.values())

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._products

    def __len__(self) -> int:
        return len(self._products)
