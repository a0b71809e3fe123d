"""Unit tests for the source registry and the agency adapters."""

import sys
from pathlib import Path

# Add parent directory to path to import project modules
sys.path.insert(0, str(Path(__file__).parent.parent))

import asyncio
import json
from datetime import datetime

import pytest

from conftest import FakeSite, scrape_with
from errors import FetchError, RegistryError, UnknownSourceError
from models.listing import PropertyType
from sources import SOURCE_REGISTRY, create_adapter, validate_registry
from sources.base import CrawlToolkit
from sources.casaamola.adapter import CasaAmolaAdapter
from sources.config import (
    DEFAULT_MAX_PAGES,
    DEFAULT_REQUEST_DELAY,
    SOURCES,
    SourceConfig,
    get_active_regions,
    get_active_sources,
    get_source_by_id,
    get_sources_for_region,
)
from sources.gesticasa.adapter import GesticasaAdapter
from sources.professioneimmobiliare.adapter import (
    ProfessioneImmobiliareAdapter,
    extract_embedded_array,
)
from sources.vittori.adapter import VittoriAdapter
from utils.fetcher import PageFetcher


class TestSourceRegistry:
    """Test configuration lookups and the adapter registry."""

    def test_every_configured_source_has_an_adapter(self):
        validate_registry(SOURCES.values())
        assert set(SOURCES) <= set(SOURCE_REGISTRY)

    def test_missing_adapter_fails_fast(self):
        config = SourceConfig(id="nuova", name="Nuova Agenzia", base_url="https://nuova.example", regions=("puglia",))
        with pytest.raises(RegistryError, match="nuova"):
            validate_registry([config])

    def test_inactive_source_without_adapter_is_allowed(self):
        config = SourceConfig(
            id="nuova", name="Nuova Agenzia", base_url="https://nuova.example",
            regions=("puglia",), is_active=False,
        )
        validate_registry([config])

    def test_create_adapter(self):
        async def run():
            async with PageFetcher(transport=FakeSite().transport()) as fetcher:
                return create_adapter(SOURCES["vittori"], CrawlToolkit(fetcher))

        adapter = asyncio.run(run())
        assert isinstance(adapter, VittoriAdapter)
        assert adapter.toolkit.request_delay == SOURCES["vittori"].request_delay

    def test_create_adapter_unknown_source(self):
        config = SourceConfig(id="nuova", name="Nuova", base_url="https://nuova.example", regions=())
        with pytest.raises(UnknownSourceError):
            create_adapter(config, CrawlToolkit(fetcher=None))

    def test_get_source_by_id(self):
        assert get_source_by_id("casaamola").regions == ("puglia",)
        with pytest.raises(UnknownSourceError):
            get_source_by_id("immobiliare")

    def test_region_lookups(self):
        calabria = {s.id for s in get_sources_for_region("calabria")}
        assert calabria == {"gesticasa", "professioneimmobiliare"}
        assert set(get_active_regions()) == {"tuscany", "calabria", "puglia"}

    def test_inactive_sources_excluded(self):
        catalog = {
            "a": SourceConfig(id="a", name="A", base_url="https://a.example", regions=("tuscany",)),
            "b": SourceConfig(id="b", name="B", base_url="https://b.example", regions=("puglia",), is_active=False),
        }
        assert [s.id for s in get_active_sources(catalog)] == ["a"]
        assert get_active_regions(catalog) == ["tuscany"]

    def test_config_defaults(self):
        config = SourceConfig(id="nuova", name="Nuova", base_url="https://nuova.example", regions=("puglia",))
        assert config.max_pages == DEFAULT_MAX_PAGES
        assert config.request_delay == DEFAULT_REQUEST_DELAY
        assert config.listing_path("puglia", "/immobili") == "/immobili"

    def test_max_pages_override(self):
        config = SOURCES["vittori"]
        assert config.with_max_pages(None) is config
        assert config.with_max_pages(2).max_pages == 2
        assert config.max_pages == 20


# ---------------------------------------------------------------------------
# Vittori
# ---------------------------------------------------------------------------

VITTORI = SourceConfig(
    id="vittori", name="Vittori", base_url="https://vittori.example",
    regions=("tuscany",), max_pages=5, request_delay=0,
)
VITTORI_INDEX = "https://vittori.example/it/immobili-in-vendita?order_by=insert_ts_desc"


def vittori_card(slug, title, price, description="", sqm="120", beds="3", baths="2"):
    return f"""
    <div class="property-container">
      <div class="image-wrapper" style="background-image: url('https://images.gestionaleimmobiliare.it/foto/annunci/{slug}/thumb.jpg')"></div>
      <div class="property-text">
        <h3><a href="/it/immobile/{slug}" title="{title}">{title}</a></h3>
        <h4><span>{price}</span></h4>
        <p class="line-clamp">{description}</p>
      </div>
      <div class="property-features">
        <span><i class="fa fa-ruler-combined"></i> {sqm} mq</span>
        <span><i class="fa fa-bed"></i> {beds}</span>
        <span><i class="fa fa-bath"></i> {baths}</span>
      </div>
    </div>"""


def vittori_index(cards, max_page=1):
    pages = "".join(
        f'<li><a href="?order_by=insert_ts_desc&amp;page={n}">{n}</a></li>' for n in range(2, max_page + 1)
    )
    return f'<html><body>{"".join(cards)}<ul class="pagination">{pages}</ul></body></html>'


VITTORI_DETAIL = """
<html><body>
  <div id="slider-property">
    <a class="rsImg" data-rsBigImg="https://images.gestionaleimmobiliare.it/foto/annunci/101/1280x1280/a.jpg" href="#">1</a>
    <a class="rsImg" data-rsBigImg="https://images.gestionaleimmobiliare.it/foto/annunci/101/1280x1280/b.jpg" href="#">2</a>
  </div>
  <div class="description-wrapper">
    Villetta a schiera con giardino privato, camino e posto auto.
    Classe energetica: D.
  </div>
</body></html>
"""


class TestVittoriAdapter:
    def setup_method(self):
        self.site = FakeSite()

    def test_scrape_paginated_grid(self):
        self.site.add(VITTORI_INDEX, vittori_index([
            vittori_card("101", "Lucignano (AR), Villetta a schiera", "€ 179.000"),
            vittori_card("102", "Sinalunga (SI), Appartamento", "Trattativa riservata"),
        ], max_page=2))
        self.site.add(f"{VITTORI_INDEX}&page=2", vittori_index([
            vittori_card("103", "Torrita di Siena (SI), Casale con piscina", "€ 450.000", description="Casale con piscina."),
        ], max_page=2))
        self.site.add("https://vittori.example/it/immobile/101", VITTORI_DETAIL)
        # 103 has no detail page: card data is used instead

        adapter, listings = asyncio.run(scrape_with(VittoriAdapter, VITTORI, self.site, "tuscany"))

        assert [l.listing_url for l in listings] == [
            "https://vittori.example/it/immobile/101",
            "https://vittori.example/it/immobile/103",
        ]
        assert not adapter.incomplete

        villa, casale = listings
        assert villa.city == "Lucignano"
        assert villa.price_eur == 179000
        assert (villa.bedrooms, villa.bathrooms, villa.living_area_sqm) == (3, 2, 120)
        assert villa.property_type == PropertyType.TOWNHOUSE
        assert len(villa.image_urls) == 2
        assert villa.has_garden is True
        assert villa.has_fireplace is True
        assert villa.energy_class == "D"
        assert villa.description_en is None

        assert casale.image_urls == ["https://images.gestionaleimmobiliare.it/foto/annunci/103/thumb.jpg"]
        assert casale.description_it == "Casale con piscina."
        assert casale.has_pool is True
        assert casale.property_type == PropertyType.FARMHOUSE
        # Recency order survives as timestamps
        assert villa.source_updated_at > casale.source_updated_at

    def test_later_page_failure_marks_scrape_incomplete(self):
        self.site.add(VITTORI_INDEX, vittori_index(
            [vittori_card("101", "Lucignano (AR), Villetta", "€ 179.000")], max_page=3,
        ))
        self.site.add(f"{VITTORI_INDEX}&page=2", "error", status=500)

        adapter, listings = asyncio.run(scrape_with(VittoriAdapter, VITTORI, self.site, "tuscany"))

        assert len(listings) == 1
        assert adapter.incomplete

    def test_first_page_failure_propagates(self):
        self.site.add(VITTORI_INDEX, "error", status=503)
        with pytest.raises(FetchError):
            asyncio.run(scrape_with(VittoriAdapter, VITTORI, self.site, "tuscany"))

    def test_page_cap(self):
        config = VITTORI.with_max_pages(1)
        self.site.add(VITTORI_INDEX, vittori_index(
            [vittori_card("101", "Lucignano (AR), Villetta", "€ 179.000")], max_page=4,
        ))

        adapter, listings = asyncio.run(scrape_with(VittoriAdapter, config, self.site, "tuscany"))

        assert len(listings) == 1
        assert not any("page=2" in url for url in self.site.requested)

    def test_gallery_regex_fallback(self):
        adapter = VittoriAdapter(VITTORI, CrawlToolkit(fetcher=None))
        html = (
            '<script>var imgs = ["https://images.gestionaleimmobiliare.it/foto/annunci/9/1280x1280/x.jpg",'
            '"https://images.gestionaleimmobiliare.it/foto/annunci/9/200x200/x.jpg"];</script>'
        )
        detail = adapter.parse_detail_page(html)
        assert detail.image_urls == ["https://images.gestionaleimmobiliare.it/foto/annunci/9/1280x1280/x.jpg"]


# ---------------------------------------------------------------------------
# Gesticasa
# ---------------------------------------------------------------------------

GESTICASA = SourceConfig(
    id="gesticasa", name="Gesticasa", base_url="https://gesticasa.example",
    regions=("calabria",), max_pages=1, request_delay=0,
)
GESTICASA_INDEX = "https://gesticasa.example/index.php?action=immobili"


def gesticasa_url(property_id):
    return f"https://gesticasa.example/index.php?action=schedaImmobile&immobile={property_id}"


def gesticasa_index(ids):
    cards = "".join(
        f"""<div class="card-box-a card-shadow" onclick="document.form.immobile.value='{pid}';document.form.submit();">
        <span>Scheda</span></div>"""
        for pid in ids
    )
    return f"<html><body><form name='form'><input name='immobile'></form>{cards}</body></html>"


def gesticasa_detail(property_id, price="€145.000,00"):
    return f"""
    <html><body>
      <div class="property-price"><span class="title-c">{price}</span></div>
      <h3 class="title-d">Ubicazione</h3>
      <p>BELVEDERE MARITTIMO, Contrada Oracchio - Mappa | Google</p>
      <div class="summary-list"><ul class="list">
        <li><strong>Tipologia:</strong><span>Appartamento</span></li>
        <li><strong>Superficie:</strong><span>95 mq</span></li>
        <li><strong>Locali:</strong><span>3</span></li>
        <li><strong>Bagni:</strong><span>1</span></li>
        <li><strong>Piano:</strong><span>primo</span></li>
      </ul></div>
      <div class="property-description">
        <p class="description">Appartamento con vista mare e box auto. CODICE DI RIFERIMENTO: GC{property_id}</p>
      </div>
      <img src="img/immobili/{property_id}_1.jpg"><img src="img/immobili/{property_id}_2.jpg">
      <img src="img/immobili/999_1.jpg">
    </body></html>"""


class TestGesticasaAdapter:
    def setup_method(self):
        self.site = FakeSite()

    def test_scrape_detail_pages(self):
        self.site.add(GESTICASA_INDEX, gesticasa_index(["101", "102", "101"]))
        self.site.add(gesticasa_url("101"), gesticasa_detail("101"))
        self.site.add(gesticasa_url("102"), gesticasa_detail("102", price="Trattativa riservata"))

        adapter, listings = asyncio.run(scrape_with(GesticasaAdapter, GESTICASA, self.site, "calabria"))

        assert len(listings) == 1
        assert not adapter.incomplete
        listing = listings[0]
        assert listing.listing_url == gesticasa_url("101")
        assert listing.city == "Belvedere Marittimo"
        assert listing.address == "Contrada Oracchio"
        assert listing.price_eur == 145000
        assert listing.living_area_sqm == 95
        assert listing.bedrooms == 3
        assert listing.floor_number == 1
        assert listing.property_type == PropertyType.APARTMENT
        assert listing.description_it == "Appartamento con vista mare e box auto."
        assert listing.image_urls == [
            "https://gesticasa.example/img/immobili/101_1.jpg",
            "https://gesticasa.example/img/immobili/101_2.jpg",
        ]
        assert listing.has_sea_view is True
        assert listing.has_garage is True
        assert listing.has_parking is True

    def test_failed_detail_page_skips_listing(self):
        self.site.add(GESTICASA_INDEX, gesticasa_index(["101", "102"]))
        self.site.add(gesticasa_url("101"), gesticasa_detail("101"))

        adapter, listings = asyncio.run(scrape_with(GesticasaAdapter, GESTICASA, self.site, "calabria"))

        assert len(listings) == 1
        assert adapter.incomplete

    def test_empty_index(self):
        self.site.add(GESTICASA_INDEX, "<html><body>Nessun immobile</body></html>")
        adapter, listings = asyncio.run(scrape_with(GesticasaAdapter, GESTICASA, self.site, "calabria"))
        assert listings == []

    @pytest.mark.parametrize("text,expected", [("2", 2), ("Terra", 0), ("primo piano", 1), ("", None)])
    def test_parse_floor(self, text, expected):
        adapter = GesticasaAdapter(GESTICASA, CrawlToolkit(fetcher=None))
        assert adapter.parse_floor(text) == expected


# ---------------------------------------------------------------------------
# Casa Amola
# ---------------------------------------------------------------------------

CASAAMOLA = SourceConfig(
    id="casaamola", name="Casa Amola", base_url="https://casaamola.example",
    regions=("puglia",), max_pages=1, request_delay=0,
)
CASAAMOLA_INDEX = "https://casaamola.example/immobili-disponibili/"


def casaamola_card(slug, title, price, address, meta="Area 180 Camere da letto 4 Bagni 2 Garage 1", kind="Villa"):
    return f"""
    <article class="property-listing-simple">
      <div class="property-thumbnail"><img src="https://casaamola.example/wp-content/uploads/2023/05/{slug}-thumb.jpg"></div>
      <h3 class="entry-title"><a href="https://casaamola.example/immobile/{slug}/">{title}</a></h3>
      <p class="property-address">map-marker {address}</p>
      <span class="price">{price}</span>
      <div class="property-meta">{meta}</div>
      <span class="meta-property-type">{kind}</span>
    </article>"""


CASAAMOLA_DETAIL = """
<html><body>
  <div class="property-gallery">
    <a href="https://casaamola.example/wp-content/uploads/2024/03/full1.jpg">
      <img src="https://casaamola.example/wp-content/uploads/2024/03/full1-300x200.jpg">
    </a>
  </div>
  <div class="property-description">
    <p>Villa con superficie abitabile di 130 mq, ampio giardino e piscina.</p>
  </div>
</body></html>
"""


class TestCasaAmolaAdapter:
    def setup_method(self):
        self.site = FakeSite()

    def test_scrape_skips_rentals(self):
        self.site.add(CASAAMOLA_INDEX, "<html><body>" + "".join([
            casaamola_card("villa-mare", "Villa sul mare", "€ 320.000", "Via del Porto 3, Mola di Bari"),
            casaamola_card("bilocale", "Bilocale arredato", "€ 600 / mese", "Via Roma 1, Conversano", kind="Appartamento"),
        ]) + "</body></html>")
        self.site.add("https://casaamola.example/immobile/villa-mare/", CASAAMOLA_DETAIL)

        adapter, listings = asyncio.run(scrape_with(CasaAmolaAdapter, CASAAMOLA, self.site, "puglia"))

        assert len(listings) == 1
        listing = listings[0]
        assert listing.city == "Mola di Bari"
        assert listing.address == "Via del Porto 3, Mola di Bari"
        assert listing.price_eur == 320000
        assert listing.bedrooms == 4
        assert listing.bathrooms == 2
        # Habitable surface from the description beats the listed total
        assert listing.living_area_sqm == 130
        assert listing.property_type == PropertyType.VILLA
        assert listing.image_urls == ["https://casaamola.example/wp-content/uploads/2024/03/full1.jpg"]
        assert listing.source_updated_at == datetime(2024, 3, 28)
        assert listing.has_garden is True
        assert listing.has_pool is True
        assert listing.has_garage is True
        assert listing.has_parking is True

    def test_failed_detail_page_falls_back_to_card(self):
        self.site.add(CASAAMOLA_INDEX, casaamola_card(
            "casa", "Casa indipendente", "€ 99.000", "Noiccataro", meta="Area 90 Camere 2 Bagni 1",
            kind="Casa indipendente",
        ))

        adapter, listings = asyncio.run(scrape_with(CasaAmolaAdapter, CASAAMOLA, self.site, "puglia"))

        listing = listings[0]
        assert listing.city == "Noiccataro"
        assert listing.living_area_sqm == 90
        assert listing.image_urls == ["https://casaamola.example/wp-content/uploads/2023/05/casa-thumb.jpg"]
        assert listing.description_it is None
        assert listing.property_type == PropertyType.TOWNHOUSE
        assert listing.source_updated_at == datetime(2023, 5, 28)


# ---------------------------------------------------------------------------
# Professione Immobiliare
# ---------------------------------------------------------------------------

PROFESSIONE = SourceConfig(
    id="professioneimmobiliare", name="Professione Immobiliare", base_url="https://pi.example",
    regions=("calabria",), max_pages=3, request_delay=0,
)


def estate(estate_id, price="€ 145.000", link=True, city="Tropea"):
    return {
        "id": estate_id,
        "name": f"Appartamento {estate_id}",
        "link": f"https://pi.example/immobile/{estate_id}/" if link else "",
        "excerpt": "Bilocale [ristrutturato] a due passi dal mare...",
        "price": [{"price": price}] if price else [],
        "image": f"https://pi.example/wp-content/uploads/2024/01/{estate_id}-a-300x200.jpg",
        "gallery": [{"image": f"https://pi.example/wp-content/uploads/2024/01/{estate_id}-b-1024x768.jpg"}],
        "attributes": [
            {"slug": "citt", "values": [{"value": city}]},
            {"slug": "tipo-propriet", "values": [{"value": "Appartamento"}]},
            {"slug": "bedrooms", "values": [{"value": "2"}]},
            {"slug": "bathrooms", "values": [{"value": "1"}]},
            {"slug": "property-size", "values": [{"value": "80"}]},
            {"slug": "caratteristiche", "values": [{"value": "Terrazzo"}, {"value": "Posto auto"}]},
        ],
    }


def city_archive(estates):
    return f'<html><script>var MyHome = {{"estates": {json.dumps(estates)}, "other": [1, 2]}};</script></html>'


class TestProfessioneImmobiliareAdapter:
    def setup_method(self):
        self.site = FakeSite()
        self.site.add(
            "https://pi.example/wp-json/wp/v2/estate?per_page=100&page=1",
            [{"id": 11, "modified": "2024-04-02T10:00:00"}, {"id": 12, "modified": "2024-03-01T08:30:00"}],
        )
        self.site.add("https://pi.example/wp-json/wp/v2/estate?per_page=100&page=2", [])
        self.site.add(
            "https://pi.example/wp-json/wp/v2/citt?per_page=100",
            [
                {"name": "Tropea", "slug": "tropea", "count": 3},
                {"name": "Pizzo", "slug": "pizzo", "count": 0},
            ],
        )

    def test_scrape_city_archives(self):
        self.site.add("https://pi.example/citt/tropea/", city_archive([
            estate(11),
            estate(11),
            estate(12, link=False),
            estate(13, price=None),
        ]))
        self.site.add(
            "https://pi.example/immobile/11/",
            '<div class="mh-estate__section--description"><p>Appartamento con terrazzo vista mare, '
            "classe energetica B.</p></div>",
        )

        adapter, listings = asyncio.run(
            scrape_with(ProfessioneImmobiliareAdapter, PROFESSIONE, self.site, "calabria")
        )

        assert len(listings) == 1
        assert not adapter.incomplete
        assert not any("pizzo" in url for url in self.site.requested)

        listing = listings[0]
        assert listing.listing_url == "https://pi.example/immobile/11/"
        assert listing.city == "Tropea"
        assert listing.price_eur == 145000
        assert (listing.bedrooms, listing.bathrooms, listing.living_area_sqm) == (2, 1, 80)
        assert listing.image_urls == [
            "https://pi.example/wp-content/uploads/2024/01/11-a.jpg",
            "https://pi.example/wp-content/uploads/2024/01/11-b.jpg",
        ]
        assert listing.description_it.startswith("Appartamento con terrazzo")
        assert listing.has_terrace is True
        assert listing.has_parking is True
        assert listing.has_sea_view is True
        assert listing.energy_class == "B"
        assert listing.source_updated_at == datetime(2024, 4, 2, 10, 0)

    def test_excerpt_used_when_detail_page_fails(self):
        self.site.add("https://pi.example/citt/tropea/", city_archive([estate(11)]))

        adapter, listings = asyncio.run(
            scrape_with(ProfessioneImmobiliareAdapter, PROFESSIONE, self.site, "calabria")
        )

        assert listings[0].description_it == "Bilocale [ristrutturato] a due passi dal mare"

    def test_city_page_failure_marks_incomplete(self):
        adapter, listings = asyncio.run(
            scrape_with(ProfessioneImmobiliareAdapter, PROFESSIONE, self.site, "calabria")
        )
        assert listings == []
        assert adapter.incomplete

    def test_city_page_without_estates_marks_incomplete(self):
        # Tropea reports 3 estates but the archive page carries no payload
        self.site.add("https://pi.example/citt/tropea/", "<html><body>redesigned</body></html>")

        adapter, listings = asyncio.run(
            scrape_with(ProfessioneImmobiliareAdapter, PROFESSIONE, self.site, "calabria")
        )

        assert listings == []
        assert adapter.incomplete

    def test_city_list_failure_propagates(self):
        self.site.add("https://pi.example/wp-json/wp/v2/citt?per_page=100", "down", status=500)
        with pytest.raises(FetchError):
            asyncio.run(scrape_with(ProfessioneImmobiliareAdapter, PROFESSIONE, self.site, "calabria"))


class TestEmbeddedArray:
    def test_brackets_inside_strings(self):
        html = '<script>x = {"estates": [{"name": "a ] b [", "n": [1, 2]}], "more": []}</script>'
        assert extract_embedded_array(html) == [{"name": "a ] b [", "n": [1, 2]}]

    def test_missing_key(self):
        assert extract_embedded_array("<html></html>") == []

    def test_unterminated_array(self):
        assert extract_embedded_array('"estates": [{"id": 1}, {"id": 2}', limit=1000) == []
