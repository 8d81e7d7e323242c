"""Site profiles: per-site field-name dictionaries and pagination rules.

Profiles are data: which embedded-data locations to probe first, which raw
keys hold each schema field, and which card selectors to fall back on when
adaptive discovery finds nothing. No extraction logic lives here.
"""

from __future__ import annotations

from typing import Literal
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from pydantic import BaseModel, Field

from harvester.config.settings import DEFAULT_LOCATIONS, CandidateLocation


class SiteProfile(BaseModel):
    """Everything site-specific the extraction engine consumes."""

    name: str
    hostnames: list[str]
    base_url: str
    listings_per_page: int = 24
    pagination: Literal["offset", "page_number"] = "offset"
    pagination_param: str = "index"
    listing_path_markers: list[str] = Field(default_factory=list)
    listing_url_template: str = ""
    format_price: bool = False
    # Empty means the extraction config's default probe order.
    locations: list[CandidateLocation] = Field(default_factory=list)
    # Schema field -> dotted key paths on a raw listing object, in priority order.
    field_paths: dict[str, list[str]] = Field(default_factory=dict)
    image_list_paths: list[str] = Field(default_factory=list)
    main_image_paths: list[str] = Field(default_factory=list)
    card_selectors: list[str] = Field(default_factory=list)
    # Schema field -> selectors relative to a card element, in priority order.
    card_fields: dict[str, list[str]] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def matches_host(self, hostname: str) -> bool:
        hostname = hostname.lower().rstrip(".")
        return any(hostname == h or hostname.endswith(f".{h}") for h in self.hostnames)

    def is_valid_url(self, url: str) -> bool:
        """True for this site's listing search URLs."""
        parsed = urlparse(url)
        if parsed.scheme not in {"http", "https"} or not parsed.hostname:
            return False
        if not self.matches_host(parsed.hostname):
            return False
        if not self.listing_path_markers:
            return True
        return any(marker in parsed.path for marker in self.listing_path_markers)

    def build_page_url(self, base_url: str, page_index: int) -> str:
        """URL of the zero-based ``page_index``-th results page."""
        if page_index == 0:
            return base_url
        if self.pagination == "offset":
            value = page_index * self.listings_per_page
        else:
            value = page_index + 1
        parsed = urlparse(base_url)
        query = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True)
                 if k != self.pagination_param]
        query.append((self.pagination_param, str(value)))
        return urlunparse(parsed._replace(query=urlencode(query)))

    def listing_url(self, listing_id: str) -> str | None:
        if not self.listing_url_template or not listing_id:
            return None
        return self.base_url + self.listing_url_template.format(id=listing_id)


RIGHTMOVE = SiteProfile(
    name="rightmove",
    hostnames=["rightmove.co.uk"],
    base_url="https://www.rightmove.co.uk",
    listings_per_page=24,
    pagination="offset",
    pagination_param="index",
    listing_url_template="/properties/{id}",
    field_paths={
        "id": ["id", "propertyId"],
        "url": ["propertyUrl"],
        "address": ["displayAddress", "address.displayAddress", "address"],
        "display_address": ["displayAddress", "address.displayAddress"],
        "price": [
            "price.displayPrice",
            "price.displayPrices.0.displayPrice",
            "price.amount",
            "displayPrice",
            "price",
        ],
        "description": ["summary", "description", "text", "propertyDescription"],
        "bedrooms": ["bedrooms"],
        "bathrooms": ["bathrooms"],
        "property_type": ["propertyType", "propertySubType", "type"],
        "added_on": ["addedOn", "firstVisibleDate", "listingUpdate.listingUpdateDate"],
        "first_visible_date": ["firstVisibleDate"],
        "listing_update_date": ["listingUpdate.listingUpdateDate", "listingUpdateDate"],
        "outcode": ["address.outcode", "outcode"],
        "incode": ["address.incode", "incode"],
        "country_code": ["countryCode", "location.countryCode"],
        "latitude": ["location.latitude", "latitude"],
        "longitude": ["location.longitude", "longitude"],
        "tenure": ["tenure.tenureType", "tenure"],
        "council_tax_band": ["councilTaxBand"],
        "agent": ["customer.brandTradingName", "agent.name", "contactInfo.name"],
        "agent_phone": ["customer.branchDisplayNumber", "agent.phone", "contactInfo.phone"],
        "agent_logo": ["customer.brandPlusLogoUrl", "agent.logo"],
        "agent_display_address": ["customer.branchAddress", "agent.address"],
        "agent_profile_url": ["customer.branchUrl", "agent.url"],
        "features": ["keyFeatures", "features"],
    },
    image_list_paths=["propertyImages.images", "propertyImages", "images"],
    main_image_paths=["propertyImages.mainImageSrc", "mainImage"],
    card_selectors=[
        ".propertyCard",
        ".property-card",
        '[data-test="property-card"]',
        ".l-searchResult",
        ".propertyCard-wrapper",
        'div[class^="propertyCard"]',
        'article[class^="propertyCard"]',
        '[class*="SearchResult"]',
        'div[id^="property-"]',
        ".searchResult",
    ],
    card_fields={
        "url": [
            "a.propertyCard-link",
            'a[href*="/properties/"]',
            "a.propertyCard-priceLink",
            ".propertyCard-details a",
            'a[data-test="property-link"]',
        ],
        "address": [
            ".propertyCard-address",
            ".property-address",
            "address",
            '[data-test="property-address"]',
            ".propertyCard-title",
        ],
        "price": [
            ".propertyCard-priceValue",
            ".price",
            ".propertyCard-price",
            '[data-test="property-price"]',
            ".propertyCard-priceLink",
        ],
        "description": [
            ".propertyCard-description",
            ".property-description",
            '[data-test="property-description"]',
            ".propertyCard-details",
        ],
        "added_on": [
            ".propertyCard-contactsItem",
            '[data-test="property-added"]',
            ".propertyCard-branchSummary-addedOrReduced",
            ".propertyCard-contactsAddedOrReduced",
            'span[class*="added"]',
        ],
        "image": [
            "img.propertyCard-img",
            ".property-image img",
            'img[class*="property"]',
            '[data-test="property-image"] img',
            ".propertyCard-image img",
        ],
    },
)

ZOOPLA = SiteProfile(
    name="zoopla",
    hostnames=["zoopla.co.uk"],
    base_url="https://www.zoopla.co.uk",
    listings_per_page=25,
    pagination="page_number",
    pagination_param="pn",
    listing_path_markers=["/for-sale/", "/to-rent/"],
    listing_url_template="/for-sale/details/{id}/",
    format_price=True,
    locations=[
        CandidateLocation(kind="binding", query="__PRELOADED_STATE__"),
        CandidateLocation(kind="binding", query="__INITIAL_STATE__"),
        CandidateLocation(kind="binding", query="__NEXT_DATA__.props.pageProps"),
        DEFAULT_LOCATIONS[-1],
    ],
    field_paths={
        "id": ["listing_id", "listingId"],
        "url": ["details_url", "listingUris.detail"],
        "address": ["displayable_address", "address"],
        "display_address": ["display_address", "displayable_address"],
        "price": ["price", "pricing.label"],
        "description": ["detailed_description", "description", "summaryDescription"],
        "bedrooms": ["num_bedrooms", "attributes.bedrooms"],
        "bathrooms": ["num_bathrooms", "attributes.bathrooms"],
        "property_type": ["property_type", "propertyType"],
        "added_on": ["first_published_date", "publishedOn"],
        "listing_update_date": ["last_published_date"],
        "latitude": ["latitude", "location.coordinates.latitude"],
        "longitude": ["longitude", "location.coordinates.longitude"],
        "tenure": ["tenure"],
        "agent": ["agent_name", "branch.name"],
        "agent_phone": ["agent_phone", "branch.phone"],
        "agent_logo": ["agent_logo", "branch.logoUrl"],
        "features": ["features"],
    },
    image_list_paths=["image_urls", "images"],
    main_image_paths=["image_url", "image.src"],
    card_selectors=[
        '[data-testid="regular-listings"] > div',
        '[data-testid="search-result"]',
        'div[id^="listing_"]',
    ],
    card_fields={
        "url": ['a[href*="/details/"]', "a"],
        "address": ["address", '[data-testid="listing-address"]', "h3"],
        "price": ['[data-testid="listing-price"]', 'p[class*="price"]'],
        "description": ['[data-testid="listing-description"]', 'p[class*="summary"]'],
        "image": ["picture img", "img"],
    },
)

BUILTIN_PROFILES: tuple[SiteProfile, ...] = (RIGHTMOVE, ZOOPLA)
