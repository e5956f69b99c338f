import re

from app.core.slugs import generate_slug, generate_unique_slug


def test_generate_slug_normalizes_text() -> None:
    assert generate_slug("  Spice Garden & Grill ") == "spice-garden-grill"
    assert generate_slug("Home_Services -- Plumbing") == "home-services-plumbing"
    assert generate_slug("!!!") == ""


def test_generate_unique_slug_appends_random_suffix() -> None:
    slug = generate_unique_slug("Spice Garden")

    assert re.fullmatch(r"spice-garden-[a-z0-9]{6}", slug)
    assert generate_unique_slug("Spice Garden") != slug


def test_generate_unique_slug_without_base_is_suffix_only() -> None:
    assert re.fullmatch(r"[a-z0-9]{6}", generate_unique_slug("***"))
