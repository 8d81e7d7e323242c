"""Site registry: resolves a site name or search URL to its profile."""

from __future__ import annotations

from urllib.parse import urlparse

from harvester.sites.profiles import BUILTIN_PROFILES, SiteProfile

_PROFILES: dict[str, SiteProfile] = {profile.name: profile for profile in BUILTIN_PROFILES}


def supported_sites() -> list[str]:
    return list(_PROFILES)


def register_profile(profile: SiteProfile) -> None:
    """Add or replace a profile, e.g. for a site tuned outside this package."""
    _PROFILES[profile.name] = profile


def detect_site(site_or_url: str) -> str:
    """Return the site name for a URL or a site name.

    Raises:
        ValueError: empty input, unknown host, or unknown site name.
    """
    if not site_or_url or not isinstance(site_or_url, str):
        raise ValueError("Site name or URL is required")

    lowered = site_or_url.strip().lower()
    if lowered.startswith(("http://", "https://")):
        hostname = urlparse(lowered).hostname
        if not hostname:
            raise ValueError(f"Invalid URL: {site_or_url}")
        for profile in _PROFILES.values():
            if profile.matches_host(hostname):
                return profile.name
        raise ValueError(f"Unknown listing site: {hostname}")

    if lowered in _PROFILES:
        return lowered
    raise ValueError(
        f"Unknown site name: {site_or_url}. Supported sites: {', '.join(supported_sites())}"
    )


def get_profile(site_or_url: str) -> SiteProfile:
    return _PROFILES[detect_site(site_or_url)]


def is_site_supported(site_or_url: str) -> bool:
    try:
        detect_site(site_or_url)
    except ValueError:
        return False
    return True
