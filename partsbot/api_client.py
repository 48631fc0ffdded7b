"""
Client for the storefront content API.

Every endpoint answers with a {"success", "data", "message"} envelope.
Product reads fall back to the static catalog when the API is down or empty.
"""

import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
import tenacity
from pydantic import BaseModel, ValidationError

from .cache import TTLCache
from .catalog import load_products_from_file
from .config import Settings, get_settings
from .exceptions import ApiError
from .models import Contact, Faq, HomeSettings, Policy, Product, ShippingInfo, Slider

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class ApiService:
    """Read access to settings, sliders, shipping, policies, FAQs, contacts and products"""

    def __init__(self,
                 settings: Optional[Settings] = None,
                 client: Optional[httpx.Client] = None,
                 cache: Optional[TTLCache] = None,
                 static_products: Optional[List[Product]] = None,
                 retry_wait_seconds: float = 1.0):
        """
        Initialize the API service

        Args:
            settings: Base URL, timeout, retry and cache configuration
            client: Preconfigured HTTP client, built from settings when omitted
            cache: Cache for list reads
            static_products: Fallback products, loaded from settings.products_path when omitted
            retry_wait_seconds: Multiplier of the exponential backoff between retries
        """
        self.settings = settings or get_settings()
        self.client = client or httpx.Client(
            base_url=self.settings.api_base_url,
            timeout=httpx.Timeout(self.settings.api_timeout, connect=5.0),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
        self.cache = cache or TTLCache()
        self.cache_ttl = self.settings.cache_ttl_seconds
        self._static_products = static_products

        self._retrying = tenacity.Retrying(
            retry=tenacity.retry_if_exception_type(httpx.TransportError),
            stop=tenacity.stop_after_attempt(self.settings.api_retry_attempts),
            wait=tenacity.wait_exponential(multiplier=retry_wait_seconds, max=10),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> 'ApiService':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _handle_response(self, response: httpx.Response) -> Dict[str, Any]:
        if response.is_error:
            status = response.status_code
            message = f"HTTP {status}: {response.reason_phrase}"
            try:
                error_data = response.json()
                if isinstance(error_data, dict) and error_data.get("message"):
                    message = error_data["message"]
            except ValueError:
                pass

            if status == 401:
                message = "API authentication required. Using fallback data."
            elif status == 404:
                message = "API endpoint not found. Using fallback data."
            elif status >= 500:
                message = "Server error. Using fallback data."
            raise ApiError(message, status=status, response=response.text)

        try:
            payload = response.json()
        except ValueError:
            raise ApiError("Invalid JSON response", status=response.status_code)
        if not isinstance(payload, dict):
            raise ApiError("Invalid JSON response", status=response.status_code)
        return payload

    def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """Send a request, retrying transport failures"""
        try:
            response = self._retrying(self.client.request, method, endpoint, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Network error calling {endpoint}: {e}")
            raise ApiError(f"Network error: {e}", status=0) from e
        return self._handle_response(response)

    def _get_list(self, endpoint: str, model: Type[RecordT], cache_key: str, failure_message: str) -> List[RecordT]:
        cached = self.cache.get(cache_key)
        if cached is not None:
            return list(cached)

        payload = self._request("GET", endpoint)
        if not payload.get("success"):
            raise ApiError(payload.get("message") or failure_message)

        try:
            records = [model(**item) for item in payload.get("data") or []]
        except (ValidationError, TypeError) as e:
            raise ApiError(f"{failure_message}: unexpected record shape ({e})") from e

        self.cache.set(cache_key, records, self.cache_ttl)
        return list(records)

    def _get_one(self, endpoint: str, model: Type[RecordT], failure_message: str) -> RecordT:
        payload = self._request("GET", endpoint)
        if not payload.get("success"):
            raise ApiError(payload.get("message") or failure_message)
        data = payload.get("data")
        if not data:
            raise ApiError("No data received")
        try:
            return model(**data)
        except (ValidationError, TypeError) as e:
            raise ApiError(f"{failure_message}: unexpected record shape ({e})") from e

    def invalidate(self, key: str) -> None:
        """Drop one cached list so the next read refetches it"""
        self.cache.invalidate(key)

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def get_home_settings(self) -> List[HomeSettings]:
        return self._get_list("/public/settings", HomeSettings, "home_settings", "Failed to fetch home settings")

    def get_home_setting_by_id(self, setting_id: int) -> HomeSettings:
        return self._get_one(f"/public/settings/{setting_id}", HomeSettings, "Failed to fetch home setting")

    def get_sliders(self) -> List[Slider]:
        sliders = self._get_list("/public/sliders", Slider, "sliders", "Failed to fetch sliders")
        return sorted(sliders, key=lambda slider: slider.ordering)

    def get_slider_by_id(self, slider_id: int) -> Slider:
        return self._get_one(f"/public/sliders/{slider_id}", Slider, "Failed to fetch slider")

    def get_shipping(self) -> List[ShippingInfo]:
        return self._get_list("/public/shipping", ShippingInfo, "shipping", "Failed to fetch shipping data")

    def get_shipping_by_id(self, shipping_id: int) -> ShippingInfo:
        return self._get_one(f"/public/shipping/{shipping_id}", ShippingInfo, "Failed to fetch shipping data")

    def get_policies(self) -> List[Policy]:
        return self._get_list("/public/policies", Policy, "policies", "Failed to fetch policy data")

    def get_policy_by_id(self, policy_id: int) -> Policy:
        return self._get_one(f"/public/policies/{policy_id}", Policy, "Failed to fetch policy data")

    def get_faqs(self) -> List[Faq]:
        return self._get_list("/public/faqs", Faq, "faqs", "Failed to fetch FAQ data")

    def get_faq_by_id(self, faq_id: int) -> Faq:
        return self._get_one(f"/public/faqs/{faq_id}", Faq, "Failed to fetch FAQ data")

    def get_contacts(self) -> List[Contact]:
        return self._get_list("/contacts", Contact, "contacts", "Failed to fetch contacts")

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    @property
    def static_products(self) -> List[Product]:
        if self._static_products is None:
            try:
                self._static_products = load_products_from_file(self.settings.products_path)
            except (OSError, ValueError) as e:
                logger.error(f"Static product catalog unavailable: {e}")
                self._static_products = []
        return self._static_products

    def _from_api(self, record: Dict[str, Any]) -> Product:
        product = Product.from_api(record)
        return product.model_copy(update={
            "images": [self.settings.image_url(path) for path in product.images],
            "videos": [self.settings.image_url(path) for path in product.videos],
        })

    def list_products(self) -> List[Product]:
        """Products from the API, or the static catalog on failure or when the API has none"""
        cached = self.cache.get("products")
        if cached is not None:
            return list(cached)

        try:
            payload = self._request("GET", "/products")
            if not payload.get("success"):
                raise ApiError(payload.get("message") or "Failed to fetch products")
            records = payload.get("data") or []
            products = [self._from_api(record) for record in records]
        except (ApiError, ValidationError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to fetch products, falling back to static data: {e}")
            return list(self.static_products)

        if not products:
            logger.info("API returned no products, falling back to static data")
            return list(self.static_products)

        self.cache.set("products", products, self.cache_ttl)
        return list(products)

    def get_product(self, product_id: str) -> Optional[Product]:
        """One product from the API, or from the static catalog when the API cannot provide it"""
        try:
            payload = self._request("GET", f"/products/{product_id}")
            if not payload.get("success"):
                raise ApiError(payload.get("message") or "Failed to fetch product")
            record = payload.get("data")
            if not record:
                raise ApiError("Product not found in API", status=404)
            return self._from_api(record)
        except (ApiError, ValidationError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to fetch product {product_id} from API, falling back to static data: {e}")

        for product in self.static_products:
            if product.id == str(product_id):
                return product
        logger.warning(f"Product with ID {product_id} not found")
        return None
