from app.services.scan.extraction import SnapshotExtractor


PAGE = """
<html>
<head>
  <title> Acme Running Shoes </title>
  <meta name="description" content="Shoes for every runner">
  <meta name="robots" content="index,follow">
  <meta name="generator" content="WordPress 6.4">
  <link rel="canonical" href="https://acme.com/">
  <link rel="stylesheet" href="/wp-content/themes/acme/style.css">
  <link rel="icon" href="/favicon.ico">
  <script src="https://www.googletagmanager.com/gtag/js?id=G-1"></script>
  <script type="application/ld+json">{"@type": "Organization"}</script>
</head>
<body>
  <h1>Run further</h1>
  <h2>Road</h2><h2>Trail</h2><h3>Sizes</h3>
  <p>Built for long distance comfort.</p>
  <script>var hidden = "not counted words here";</script>
  <a href="/pricing">Pricing</a>
  <a href="https://blog.acme.com/post">Blog</a>
  <a href="https://partner.io">Partner</a>
  <a href="mailto:hi@acme.com">Mail</a>
  <a href="#top">Top</a>
  <img src="a.png" alt="Trail shoe">
  <img src="b.png" alt="  ">
  <img src="c.png">
</body>
</html>
"""


def test_extracts_core_fields():
    fields = SnapshotExtractor().extract(PAGE, "https://acme.com/")
    assert fields.title == "Acme Running Shoes"
    assert fields.meta_description == "Shoes for every runner"
    assert fields.h1 == "Run further"
    assert fields.h2_count == 2
    assert fields.h3_count == 1
    assert fields.images == 3
    assert fields.images_with_alt == 1
    assert fields.schema_markup is True
    assert fields.canonical_url == "https://acme.com/"
    assert fields.meta_robots == "index,follow"


def test_links_are_classified_by_root_domain():
    fields = SnapshotExtractor().extract(PAGE, "https://acme.com/")
    # "/pricing", "#top" and the blog subdomain are internal; mailto is ignored.
    assert fields.internal_links == 3
    assert fields.external_links == 1


def test_word_count_ignores_script_bodies():
    fields = SnapshotExtractor().extract(PAGE, "https://acme.com/")
    words = "Run further Road Trail Sizes Built for long distance comfort. Pricing Blog Partner Mail Top"
    assert fields.word_count == len(words.split())


def test_tech_clues_collect_scripts_stylesheets_and_generator():
    clues = SnapshotExtractor().extract(PAGE, "https://acme.com/").tech_clues
    assert clues.scripts == ["https://www.googletagmanager.com/gtag/js?id=G-1"]
    assert clues.stylesheets == ["/wp-content/themes/acme/style.css"]
    assert clues.generator == "WordPress 6.4"
    assert not clues.is_empty()


def test_missing_fields_use_placeholders():
    fields = SnapshotExtractor().extract("<html><body></body></html>", "https://empty.com")
    assert fields.title == "No title found"
    assert fields.meta_description == "No meta description found"
    assert fields.h1 == "No H1 found"
    assert fields.word_count == 0
    assert fields.schema_markup is False
    assert fields.canonical_url is None
    assert fields.tech_clues.is_empty()


def test_structured_data_in_body_is_detected_alongside_word_count():
    html = """<html><head><title>Acme</title></head><body>
    <h1>Run further</h1>
    <script type="application/ld+json">{"@type": "Product", "name": "Trail shoe"}</script>
    <script src="https://cdn.shopify.com/s/app.js"></script>
    <p>Two words</p>
    </body></html>"""
    fields = SnapshotExtractor().extract(html, "https://acme.com/")
    assert fields.schema_markup is True
    assert fields.word_count == 4
    assert fields.tech_clues.scripts == ["https://cdn.shopify.com/s/app.js"]
