"""Product catalog contract and the bundled demo catalog."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Protocol


@dataclass(slots=True)
class Product:
    id: str
    name: str
    price: float
    category: str
    subcategory: str = ""
    keywords: list[str] = field(default_factory=list)
    description: str = ""

    def summary(self) -> dict[str, object]:
        return {"id": self.id, "name": self.name, "price": self.price, "category": self.category}


class ProductCatalog(Protocol):
    """Read-only product lookup used by context extraction and the shopping handler."""

    def get(self, product_id: str) -> Product | None: ...

    def search(self, query: str, category: str | None = None, limit: int = 20) -> list[Product]: ...

    def categories(self) -> list[str]: ...

    def find_by_name(self, name: str) -> Product | None: ...


DEMO_PRODUCTS: tuple[Product, ...] = (
    Product(
        id="p1",
        name="Apple iPhone 15 Pro Max",
        price=1199.99,
        category="electronics",
        subcategory="smartphones",
        keywords=["phone", "apple", "iphone", "smartphone", "mobile"],
        description="The latest iPhone with advanced camera and performance features",
    ),
    Product(
        id="p2",
        name="Sony WH-1000XM5 Wireless Headphones",
        price=349.99,
        category="electronics",
        subcategory="headphones",
        keywords=["headphones", "wireless", "sony", "noise cancelling", "audio"],
        description="Premium noise cancelling wireless headphones with exceptional sound quality",
    ),
    Product(
        id="p3",
        name="MacBook Air M2",
        price=1099.99,
        category="electronics",
        subcategory="laptops",
        keywords=["laptop", "macbook", "apple", "computer"],
        description="Ultra-thin and lightweight laptop with M2 chip",
    ),
    Product(
        id="p4",
        name='Samsung 55" QLED 4K Smart TV',
        price=649.99,
        category="electronics",
        subcategory="televisions",
        keywords=["tv", "television", "samsung", "smart tv", "4k"],
        description="55-inch QLED smart TV with 4K resolution",
    ),
    Product(
        id="p5",
        name="Bose QuietComfort Wireless Earbuds",
        price=279.99,
        category="electronics",
        subcategory="headphones",
        keywords=["earbuds", "wireless", "bose", "headphones", "noise cancelling"],
        description="Wireless earbuds with noise cancellation technology",
    ),
    Product(
        id="p6",
        name="Nike Air Max 270 Running Shoes",
        price=150.00,
        category="fashion",
        subcategory="shoes",
        keywords=["shoes", "running", "nike", "sneakers"],
        description="Comfortable running shoes with air cushioning",
    ),
    Product(
        id="p7",
        name="Instant Pot Duo 7-in-1 Pressure Cooker",
        price=89.99,
        category="home",
        subcategory="kitchen",
        keywords=["kitchen", "cooker", "pressure cooker", "instant pot", "appliance"],
        description="Multi-functional pressure cooker for quick and easy meals",
    ),
    Product(
        id="p8",
        name="PlayStation 5 Console",
        price=499.99,
        category="electronics",
        subcategory="gaming",
        keywords=["gaming", "playstation", "ps5", "console"],
        description="Next-generation gaming console with ultra-fast SSD",
    ),
)


class InMemoryProductCatalog:
    """Catalog over a fixed product list with substring and keyword search."""

    def __init__(self, products: Iterable[Product] = DEMO_PRODUCTS) -> None:
        self._products = list(products)

    def get(self, product_id: str) -> Product | None:
        for product in self._products:
            if product.id == product_id:
                return product
        return None

    def categories(self) -> list[str]:
        seen: list[str] = []
        for product in self._products:
            if product.category not in seen:
                seen.append(product.category)
        return seen

    def find_by_name(self, name: str) -> Product | None:
        needle = name.strip().lower()
        if not needle:
            return None
        for product in self._products:
            if needle == product.name.lower():
                return product
        for product in self._products:
            if needle in product.name.lower():
                return product
        matches = self.search(needle, limit=1)
        return matches[0] if matches else None

    def search(self, query: str, category: str | None = None, limit: int = 20) -> list[Product]:
        normalized = query.strip().lower()
        wanted_category = category.strip().lower() if category else None
        results: list[Product] = []
        for product in self._products:
            if wanted_category and product.category.lower() != wanted_category:
                continue
            if normalized and not self._matches(product, normalized):
                continue
            results.append(product)
            if len(results) >= limit:
                break
        return results

    @staticmethod
    def _matches(product: Product, query: str) -> bool:
        if query in product.name.lower():
            return True
        if query in product.category.lower() or query in product.subcategory.lower():
            return True
        terms = query.split()
        if any(term in keyword for keyword in product.keywords for term in terms):
            return True
        return query in product.description.lower()
