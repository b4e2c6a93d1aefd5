from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from nexus.errors import GenerationError, ValidationError
from nexus.generator import (
    DEFAULT_CONTENT,
    component_identifier,
    generate_site,
    normalize_format,
    strip_generated_at,
)
from nexus.models import ComponentRecord, SiteDescriptor


def as_map(files) -> dict[str, str]:
    return {file.path: file.data.decode("utf-8") for file in files}


def test_static_site_has_expected_layout(site, components) -> None:
    files = as_map(generate_site(site, components))

    assert {
        "index.html",
        "css/styles.css",
        "js/main.js",
        "images/favicon.svg",
        "pages/home.html",
        "pages/about.html",
        "netlify.toml",
        "README.md",
    } <= set(files)
    assert 'from = "/*"' in files["netlify.toml"]
    assert 'to = "/index.html"' in files["netlify.toml"]
    assert "status = 200" in files["netlify.toml"]


def test_sections_render_in_component_order(site, components) -> None:
    index = as_map(generate_site(site, components))["index.html"]

    positions = [index.index(f'data-component-id="{cid}"') for cid in ("c1", "c2", "c3")]
    assert positions == sorted(positions)
    assert "Bread" in index
    assert '<a href="#about">About</a>' in index


def test_generation_is_deterministic_without_timestamp(site, components) -> None:
    first = generate_site(site, components, generated_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
    second = generate_site(site, components, generated_at=datetime(2025, 6, 30, 12, 0, tzinfo=timezone.utc))

    first_map, second_map = as_map(first), as_map(second)
    assert first_map["index.html"] != second_map["index.html"]
    assert {p: strip_generated_at(c) for p, c in first_map.items()} == {
        p: strip_generated_at(c) for p, c in second_map.items()
    }
    assert as_map(generate_site(site, components)) == as_map(generate_site(site, components))


def test_empty_pages_synthesize_welcome_page() -> None:
    files = as_map(generate_site(SiteDescriptor(name="Empty Site"), []))

    assert "pages/home.html" in files
    assert 'data-welcome="true"' in files["pages/home.html"]
    assert "Welcome to Empty Site" in files["index.html"]


def test_unknown_component_type_degrades_to_placeholder(site) -> None:
    unknown = ComponentRecord(id="u1", type="unknown-type", properties={})
    index = as_map(generate_site(site, [unknown]))["index.html"]

    assert 'data-component-type="unknown-type"' in index
    assert DEFAULT_CONTENT in index


def test_placeholder_uses_title_and_content_like_properties(site) -> None:
    unknown = ComponentRecord(id="u1", type="pricing-table", properties={"title": "Plans", "text": "Pick one"})
    index = as_map(generate_site(site, [unknown]))["index.html"]

    assert "<h2>Plans</h2>" in index
    assert "<p>Pick one</p>" in index


def test_section_properties_are_escaped(site) -> None:
    hero = ComponentRecord(id="h1", type="centered-hero", properties={"heading": "<script>alert(1)</script>"})
    index = as_map(generate_site(site, [hero]))["index.html"]

    assert "<script>alert(1)</script>" not in index
    assert "&lt;script&gt;" in index


def test_missing_site_raises_generation_error() -> None:
    with pytest.raises(GenerationError):
        generate_site(None, [])


def test_unknown_format_is_rejected(site) -> None:
    with pytest.raises(ValidationError):
        normalize_format("flash")
    with pytest.raises(ValidationError):
        generate_site(site, [], "flash")


def test_format_aliases_resolve() -> None:
    assert normalize_format(None) == "html"
    assert normalize_format("static-html") == "html"
    assert normalize_format("framework-project-A") == "nextjs"
    assert normalize_format("framework-project-B") == "astro"


def test_component_identifier_capitalizes_each_word() -> None:
    assert component_identifier("simple-navbar") == "SimpleNavbar"
    assert component_identifier("hero") == "Hero"
    assert component_identifier("about_image-text") == "AboutImageText"
    assert component_identifier("3d-scene") == "Component3dScene"
    assert component_identifier("") == "Component"


def test_nextjs_project_writes_one_file_per_component_type(site, components) -> None:
    duplicate = ComponentRecord(id="c4", type="centered-hero", order=3, properties={"heading": "Again"})
    files = as_map(generate_site(site, components + [duplicate], "nextjs"))

    component_files = sorted(path for path in files if path.startswith("components/"))
    assert component_files == [
        "components/CenteredHero.js",
        "components/SimpleFooter.js",
        "components/SimpleNavbar.js",
    ]
    assert json.loads(files["package.json"])["name"] == "nexus-site"
    assert "next.config.js" in files
    assert "pages/_app.js" in files
    assert files["pages/index.js"].count("<CenteredHero ") == 2
    assert 'publish = "out"' in files["netlify.toml"]


def test_framework_manifest_depends_only_on_format(site, components) -> None:
    other = SiteDescriptor(name="Something Else")
    for fmt in ("nextjs", "react", "astro"):
        first = as_map(generate_site(site, components, fmt))
        second = as_map(generate_site(other, [], fmt))
        assert first["package.json"] == second["package.json"]


def test_react_and_astro_layouts(site, components) -> None:
    react = as_map(generate_site(site, components, "react"))
    astro = as_map(generate_site(site, components, "astro"))

    assert "src/components/SimpleNavbar.jsx" in react
    assert "src/main.jsx" in react
    assert "vite.config.js" in react
    assert "src/components/SimpleNavbar.astro" in astro
    assert "src/layouts/Layout.astro" in astro
    assert "src/pages/index.astro" in astro


def test_unknown_type_in_project_gets_placeholder_component(site) -> None:
    unknown = ComponentRecord(id="u1", type="mystery-box", properties={})
    files = as_map(generate_site(site, [unknown], "react"))

    assert DEFAULT_CONTENT in files["src/components/MysteryBox.jsx"]
