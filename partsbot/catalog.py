"""
Product catalog browsing.
Loads the static product list and implements the storefront's search,
brand filter, sort and pagination.
"""

import json
import logging
import math
import re
from pathlib import Path
from typing import Iterable, List, NamedTuple, Optional, Sequence, Union

from pydantic import ValidationError

from .models import Product

logger = logging.getLogger(__name__)

ITEMS_PER_PAGE = 24
ELLIPSIS = "..."
ALL_BRANDS = "all"
AFTERMARKET = "Aftermarket"

# Display order of the genuine parts page
GENUINE_BRANDS = [
    "Ford Parts",
    "Isuzu Parts",
    "Toyota Parts",
    "Mazda Parts",
    "Mitsubishi Parts",
    "Nissan Parts",
    "Honda Parts",
    "Suzuki Parts",
    AFTERMARKET,
]

SORT_ORDERS = ("default", "name-asc", "name-desc", "price-asc", "price-desc")


class Page(NamedTuple):
    items: List[Product]
    page: int
    total_pages: int
    total_items: int


def load_products_from_file(products_file: Union[str, Path]) -> List[Product]:
    """
    Load products from a JSON file

    Args:
        products_file: Path to a JSON list of products, or an object with a "products" list

    Returns:
        List of validated Product instances
    """
    try:
        with open(products_file, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.error(f"Products file not found: {products_file}")
        raise
    except json.JSONDecodeError as e:
        logger.error(f"Error parsing products JSON: {e}")
        raise

    records = data.get('products', []) if isinstance(data, dict) else data

    products = []
    for record in records:
        try:
            products.append(Product(**record))
        except (ValidationError, TypeError) as e:
            product_id = record.get('id', 'unknown') if isinstance(record, dict) else 'unknown'
            logger.error(f"Error validating product {product_id}: {e}")
            continue

    logger.info(f"Loaded {len(products)} valid products")
    return products


def parse_price(price: str) -> float:
    """Numeric value of a display price such as "$1,234.50"; 0.0 when unparseable"""
    cleaned = re.sub(r'[^\d.-]', '', price or '')
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def filter_products(
    products: Iterable[Product],
    search_term: str = "",
    brand: Optional[str] = None,
) -> List[Product]:
    """Products of the given brand whose name, description, brand or part number contain the search term"""
    term = (search_term or "").strip().lower()
    wanted_brand = None if not brand or brand == ALL_BRANDS else brand.lower()

    results = []
    for product in products:
        if wanted_brand and product.brand.lower() != wanted_brand:
            continue
        if term and not any(
            term in field.lower()
            for field in (product.name, product.description, product.brand, product.part_number)
        ):
            continue
        results.append(product)
    return results


def sort_products(products: Sequence[Product], sort_order: str = "default") -> List[Product]:
    """Sorted copy of the products; unknown orders keep the input order"""
    if sort_order not in SORT_ORDERS or sort_order == "default":
        return list(products)

    sort_by, order = sort_order.split('-')
    reverse = order == "desc"
    if sort_by == "name":
        return sorted(products, key=lambda p: p.name.lower(), reverse=reverse)
    return sorted(products, key=lambda p: parse_price(p.price), reverse=reverse)


def paginate(items: Sequence[Product], page: int = 1, per_page: int = ITEMS_PER_PAGE) -> Page:
    """Slice out one page, clamping the page number into range"""
    if per_page < 1:
        raise ValueError("per_page must be at least 1")

    total_items = len(items)
    total_pages = math.ceil(total_items / per_page)
    page = min(max(page, 1), max(total_pages, 1))
    start = (page - 1) * per_page
    return Page(list(items[start:start + per_page]), page, total_pages, total_items)


def page_numbers(current: int, total: int, max_pages: int = 5) -> List[Union[int, str]]:
    """
    Page buttons to show: first, a window around the current page, and last,
    with "..." standing in for skipped runs.
    """
    if total <= max_pages:
        return list(range(1, total + 1))

    numbers: List[Union[int, str]] = [1]
    start = max(2, current - (max_pages - 3) // 2)
    end = min(total - 1, current + math.ceil((max_pages - 3) / 2))

    if current <= max_pages // 2 + 1:
        end = max_pages - 1
    elif current >= total - max_pages // 2:
        start = total - max_pages + 2

    if start > 2:
        numbers.append(ELLIPSIS)
    numbers.extend(range(start, end + 1))
    if end < total - 1:
        numbers.append(ELLIPSIS)
    if total not in numbers:
        numbers.append(total)
    return numbers


def unique_brands(products: Iterable[Product], allowed: Optional[Sequence[str]] = None) -> List[str]:
    """Distinct brands in first-seen order, optionally limited to an allowed list"""
    brands: List[str] = []
    for product in products:
        if product.brand in brands:
            continue
        if allowed is not None and product.brand not in allowed:
            continue
        brands.append(product.brand)
    return brands


def order_by_brand(products: Iterable[Product], brand_order: Sequence[str] = GENUINE_BRANDS) -> List[Product]:
    """Listed brands first in their listed order, then the rest alphabetically by brand"""
    position = {brand: index for index, brand in enumerate(brand_order)}
    return sorted(
        products,
        key=lambda p: (0, position[p.brand], "") if p.brand in position else (1, 0, p.brand.lower()),
    )


def normalize_brand_param(brand: Optional[str], allowed: Sequence[str] = GENUINE_BRANDS) -> Optional[str]:
    """Turn a short brand such as "Isuzu" into its full name "Isuzu Parts" when that is allowed"""
    if not brand:
        return brand
    if brand in allowed:
        return brand
    if not brand.endswith(" Parts") and brand != AFTERMARKET:
        full_name = f"{brand} Parts"
        if full_name in allowed:
            return full_name
    return brand


class ProductCatalog:
    """Searchable view over a list of products"""

    def __init__(self, products: Optional[List[Product]] = None, per_page: int = ITEMS_PER_PAGE):
        self.products = list(products or [])
        self.per_page = per_page

    @classmethod
    def from_file(cls, products_file: Union[str, Path]) -> 'ProductCatalog':
        return cls(load_products_from_file(products_file))

    def get(self, product_id: str) -> Optional[Product]:
        for product in self.products:
            if product.id == str(product_id):
                return product
        return None

    def brands(self, allowed: Optional[Sequence[str]] = None) -> List[str]:
        return unique_brands(self.products, allowed)

    def search(
        self,
        search_term: str = "",
        brand: Optional[str] = None,
        sort_order: str = "default",
        page: int = 1,
    ) -> Page:
        """
        Filter, sort and paginate the catalog

        Args:
            search_term: Free text matched against name, description, brand and part number
            brand: Brand to limit to, "all" or None for every brand
            sort_order: One of SORT_ORDERS
            page: 1-based page number

        Returns:
            The requested page of results
        """
        brand = normalize_brand_param(brand)
        matches = filter_products(self.products, search_term, brand)
        results = sort_products(matches, sort_order)
        logger.info(f"Catalog search '{search_term}' brand={brand or ALL_BRANDS} matched {len(results)} products")
        return paginate(results, page, self.per_page)

    def __len__(self) -> int:
        return len(self.products)
